"""
Error kinds raised by the spy, log and tracker layers.

Every error carries the subject and attribute it concerns so failures can be
diagnosed from the log line alone.
"""

from __future__ import annotations

from typing import Any


class SpyError(Exception):
    """Base class for all ispy errors."""

    def __init__(self, message: str, *, subject: Any = None, attribute: Any = None):
        super().__init__(message)
        self.subject = subject
        self.attribute = attribute

    def context(self) -> dict[str, str]:
        """Subject/attribute context rendered for logging."""
        ctx: dict[str, str] = {}
        if self.subject is not None:
            ctx["subject"] = repr(self.subject)
        if self.attribute is not None:
            ctx["attribute"] = repr(self.attribute)
        return ctx


class AttributeResolutionError(SpyError, LookupError):
    """A value resolver could not map an attribute to a value."""

    def __init__(self, subject: Any, attribute: Any, reason: str = "unknown attribute"):
        super().__init__(
            f"cannot resolve {attribute!r} on {type(subject).__name__}: {reason}",
            subject=subject,
            attribute=attribute,
        )
        self.reason = reason


class InvalidSubjectError(SpyError):
    """A watched subject is no longer valid (destroyed, deleted, ...)."""

    def __init__(self, subject: Any, reason: str = "subject is no longer valid"):
        super().__init__(reason, subject=subject)
        self.reason = reason


class ListenerError(SpyError):
    """A listener raised while a notification was being dispatched."""

    def __init__(
        self,
        listener: Any,
        error: BaseException,
        *,
        subject: Any = None,
        attribute: Any = None,
    ):
        name = getattr(listener, "__qualname__", None) or repr(listener)
        super().__init__(
            f"listener {name} failed: {type(error).__name__}: {error}",
            subject=subject,
            attribute=attribute,
        )
        self.listener = listener
        self.error = error


class ListenerErrorGroup(SpyError):
    """Several listeners failed during a single dispatch."""

    def __init__(self, errors: list[ListenerError]):
        first = errors[0] if errors else None
        super().__init__(
            f"{len(errors)} listeners failed during dispatch",
            subject=first.subject if first else None,
            attribute=first.attribute if first else None,
        )
        self.errors = list(errors)
