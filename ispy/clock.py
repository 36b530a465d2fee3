"""
Clock sources used as log keys.

Any object with a `now() -> float` method works. Values must never decrease
within a thread, otherwise log order stops meaning "happened before".
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol for ordered timestamp sources."""

    def now(self) -> float:
        ...


class MonotonicClock:
    """Seconds elapsed since the clock was created (like a frame clock)."""

    def __init__(self) -> None:
        self._origin = time.monotonic()

    def now(self) -> float:
        return time.monotonic() - self._origin

    def __repr__(self) -> str:
        return f"MonotonicClock(now={self.now():.3f})"


class ManualClock:
    """
    Logical clock driven by the caller.

    Used for deterministic runs and tests: nothing reads system time.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def set(self, value: float) -> float:
        """Jump to `value`. Moving backwards is rejected."""
        value = float(value)
        if value < self._now:
            raise ValueError(f"clock cannot move backwards ({value} < {self._now})")
        self._now = value
        return self._now

    def advance(self, delta: float) -> float:
        """Move forward by `delta` and return the new time."""
        if delta < 0:
            raise ValueError(f"clock cannot advance by a negative delta ({delta})")
        self._now += delta
        return self._now

    def __repr__(self) -> str:
        return f"ManualClock(now={self._now})"


_DEFAULT_CLOCK: Clock = MonotonicClock()


def default_clock() -> Clock:
    """Process-wide clock used when a log or tracker is given none."""
    return _DEFAULT_CLOCK
