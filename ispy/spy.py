"""
Spies bind one subject's mutation stream to a log or custom listeners.

A Spy subscribes its PropertyLog's `append_mutation` to the subject (or a
caller-supplied listener instead) and can attach further listeners to the
same stream without disturbing that binding.

Every Spy is also recorded in a SpyRegistry for introspection. The
registry is process-wide, append-only and never used for dispatch. Opt out
with `set_spy_registry(None)` or per Spy with `registry=None`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator

from .clock import Clock
from .log import PropertyLog
from .resolve import ValueResolver

logger = logging.getLogger(__name__)

MutationListener = Callable[[Any, Any], Any]


class SpyRegistry:
    """Append-only record of every Spy created while it is installed."""

    def __init__(self) -> None:
        self._spies: list[Spy] = []

    def register(self, spy: "Spy") -> None:
        self._spies.append(spy)
        logger.debug("registered %r (%d total)", spy, len(self._spies))

    def spies_for(self, subject: Any) -> list["Spy"]:
        """Spies bound to `subject` (matched by identity)."""
        return [spy for spy in self._spies if spy.subject is subject]

    def clear(self) -> None:
        """Forget every registered Spy (for testing)."""
        self._spies.clear()

    def __iter__(self) -> Iterator["Spy"]:
        return iter(list(self._spies))

    def __len__(self) -> int:
        return len(self._spies)


# Process-wide registry; None means registration is switched off.
_REGISTRY: SpyRegistry | None = SpyRegistry()

# Sentinel so Spy(registry=None) can mean "do not register".
_DEFAULT = object()


def get_spy_registry() -> SpyRegistry | None:
    """Return the installed registry, or None if registration is disabled."""
    return _REGISTRY


def set_spy_registry(registry: SpyRegistry | None) -> SpyRegistry | None:
    """
    Install `registry` as the process-wide Spy registry.

    Pass None to stop retaining Spies. Returns the previously installed
    registry so callers can restore it.
    """
    global _REGISTRY
    previous = _REGISTRY
    _REGISTRY = registry
    return previous


class Spy:
    """
    Tracks changes to one Spyable subject.

    Args:
        subject: Object exposing subscribe_to_mutations/unsubscribe_from_mutations
        listener: Called as listener(subject, attribute) instead of the
            default log append. The log is still created, but stays empty.
        resolver: Value resolver for the default log
        clock: Clock for the default log's keys
        registry: Registry to record this Spy in (defaults to the process-wide
            one; None skips registration)
    """

    def __init__(
        self,
        subject: Any,
        listener: MutationListener | None = None,
        *,
        resolver: ValueResolver | None = None,
        clock: Clock | None = None,
        registry: Any = _DEFAULT,
    ):
        if not hasattr(subject, "subscribe_to_mutations"):
            raise TypeError(f"{type(subject).__name__} is not spyable")

        self.subject = subject
        self.log = PropertyLog(resolver, clock, name=f"spy:{type(subject).__name__}")
        self._listener: MutationListener = listener if listener is not None else self.log.append_mutation
        self._attached = True
        subject.subscribe_to_mutations(self._listener)

        target = get_spy_registry() if registry is _DEFAULT else registry
        if target is not None:
            target.register(self)

    @property
    def listener(self) -> MutationListener:
        """The primary listener bound at construction."""
        return self._listener

    @property
    def attached(self) -> bool:
        return self._attached

    def add(self, listener: MutationListener) -> None:
        """Add another listener to the subject's mutation stream."""
        self.subject.subscribe_to_mutations(listener)

    def remove(self, listener: MutationListener) -> None:
        """Remove a listener from the subject's mutation stream (no-op if absent)."""
        self.subject.unsubscribe_from_mutations(listener)

    def detach(self) -> None:
        """Unbind the primary listener. Safe to call more than once."""
        if self._attached:
            self.subject.unsubscribe_from_mutations(self._listener)
            self._attached = False
            logger.debug("detached %r", self)

    def __repr__(self) -> str:
        state = "attached" if self._attached else "detached"
        return f"Spy({type(self.subject).__name__}, {state}, entries={len(self.log)})"
