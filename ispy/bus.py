"""
Multicast event bus.

Listeners are called synchronously, in registration order, on the calling
thread. Every dispatch iterates over a snapshot of the listener list, so a
listener added or removed during a notify only affects later notifies.

Not thread safe: add/remove/notify are expected on one thread.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .errors import ListenerError, ListenerErrorGroup

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]
ContextFn = Callable[..., "tuple[Any, Any]"]

# Process-wide default for listener isolation; see set_default_isolation().
_DEFAULT_ISOLATE = True


def set_default_isolation(isolate: bool) -> None:
    """Set whether buses created afterwards isolate failing listeners."""
    global _DEFAULT_ISOLATE
    _DEFAULT_ISOLATE = bool(isolate)


def get_default_isolation() -> bool:
    return _DEFAULT_ISOLATE


class EventBus:
    """
    Synchronous multicast notification primitive.

    Args:
        name: Label used in log messages
        isolate: When True (default), a failing listener does not stop
            delivery to the listeners after it; failures are logged and
            raised together once dispatch completes. When False the first
            failure propagates immediately.
        context: Optional function mapping a payload to (subject, attribute),
            attached to any ListenerError raised for that payload.
    """

    def __init__(
        self,
        name: str = "event",
        *,
        isolate: bool | None = None,
        context: ContextFn | None = None,
    ):
        self.name = name
        self.isolate = _DEFAULT_ISOLATE if isolate is None else isolate
        self._context = context
        self._listeners: list[Listener] = []

    def add(self, listener: Listener) -> None:
        """Register a listener. Adding the same listener twice delivers twice."""
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")
        self._listeners.append(listener)

    def remove(self, listener: Listener) -> None:
        """Remove the most recent registration of `listener`; no-op if absent."""
        for index in range(len(self._listeners) - 1, -1, -1):
            if self._listeners[index] == listener:
                del self._listeners[index]
                return

    def clear(self) -> None:
        self._listeners.clear()

    @property
    def listeners(self) -> tuple[Listener, ...]:
        return tuple(self._listeners)

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, listener: object) -> bool:
        return listener in self._listeners

    def __bool__(self) -> bool:
        # A bus with no listeners is still a bus.
        return True

    def notify(self, *payload: Any) -> None:
        """
        Deliver `payload` to every listener registered when notify begins.

        Raises:
            ListenerError: one listener failed (isolated mode)
            ListenerErrorGroup: several listeners failed (isolated mode)
        """
        snapshot = tuple(self._listeners)
        if not snapshot:
            return

        if not self.isolate:
            for listener in snapshot:
                listener(*payload)
            return

        failures: list[ListenerError] = []
        for listener in snapshot:
            try:
                listener(*payload)
            except Exception as exc:
                failures.append(self._wrap_failure(listener, exc, payload))

        if len(failures) == 1:
            failure = failures[0]
            raise failure from failure.error
        if failures:
            raise ListenerErrorGroup(failures)

    def _wrap_failure(self, listener: Listener, exc: Exception, payload: tuple[Any, ...]) -> ListenerError:
        subject, attribute = None, None
        if self._context is not None:
            try:
                subject, attribute = self._context(*payload)
            except Exception:
                logger.debug("%s bus: context extraction failed", self.name, exc_info=True)

        error = ListenerError(listener, exc, subject=subject, attribute=attribute)
        logger.error(
            "%s bus: %s (subject=%r, attribute=%r)",
            self.name,
            error,
            subject,
            attribute,
            exc_info=exc,
        )
        return error

    def __repr__(self) -> str:
        return f"EventBus({self.name!r}, listeners={len(self._listeners)})"
