"""
Change records: the unit of change accounting.

A ChangeRecord says that `attribute` of `subject` now holds `value`. Records
are produced by a Spyable's mutation notification or by a Tracker's diff step
and consumed by logs and listeners.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, eq=False)
class ChangeRecord:
    """A single change in object state.

    Equality is left to identity; callers that need deduplication define
    it themselves.
    """

    subject: Any
    attribute: Any
    value: Any

    def __post_init__(self) -> None:
        if self.subject is None:
            raise ValueError("ChangeRecord subject must not be None")

    @property
    def attribute_name(self) -> str:
        """Human-readable attribute identifier."""
        if isinstance(self.attribute, str):
            return self.attribute
        if isinstance(self.attribute, type):
            return self.attribute.__name__
        return getattr(self.attribute, "name", None) or repr(self.attribute)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary (subject/value via repr)."""
        value = self.value
        if hasattr(value, "to_dict"):
            value = value.to_dict()
        elif not isinstance(value, (str, int, float, bool, type(None))):
            value = repr(value)
        return {
            "subject": repr(self.subject),
            "attribute": self.attribute_name,
            "value": value,
        }


def format_record(key: Any, record: ChangeRecord) -> str:
    """Format a logged record for human-readable display."""
    stamp = f"{key:.3f}" if isinstance(key, float) else str(key)
    return f"[{stamp}] {record.subject!r}.{record.attribute_name} = {record.value!r}"
