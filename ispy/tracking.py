"""
Change detection by cooperative polling.

A subject's observable state owns a `has_changed` dirty flag, set whenever
the state is mutated. Trackers never get pushed events: once per cycle the
driver calls refresh(), which reads each watched subject's flag and, for
every dirty one, logs a ChangeRecord with a snapshot of the current state
and clears the flag.

Variants:
- Tracker: explicit watched set, add/remove by hand
- SubjectTracker: exactly one subject, fixed at construction
- UniverseTracker: rescans a Universe each cycle and watches every subject
  (omniscient) or those passing a predicate (filtered)

Subjects found invalid at diff time are dropped from the watched set and
skipped; they never abort a cycle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Protocol, runtime_checkable

from .clock import Clock
from .errors import InvalidSubjectError, ListenerError, ListenerErrorGroup
from .log import AppendHandler, StateLog
from .records import ChangeRecord

logger = logging.getLogger(__name__)

TRANSFORM = "transform"

Vector = tuple[float, float, float]


@runtime_checkable
class Trackable(Protocol):
    """Protocol for subjects a Tracker can poll."""

    has_changed: bool

    def snapshot(self) -> Any:
        """Current observable state; raises InvalidSubjectError if invalid."""
        ...


@runtime_checkable
class Universe(Protocol):
    """Protocol for enumerating the live subjects of a host environment."""

    def subjects(self) -> Iterable[Any]:
        ...


# -----------------------------------------------------------------------------
# Reference trackable
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class TransformState:
    """Immutable snapshot of a Transform."""

    position: Vector
    rotation: Vector
    scale: Vector

    def to_dict(self) -> dict[str, list[float]]:
        return {
            "position": list(self.position),
            "rotation": list(self.rotation),
            "scale": list(self.scale),
        }


def _vector(value: Iterable[float]) -> Vector:
    x, y, z = (float(v) for v in value)
    return (x, y, z)


class Transform:
    """
    Position, rotation (Euler degrees) and scale of a subject.

    Every setter raises `has_changed`; trackers clear it once the change has
    been logged. A fresh Transform starts clean.
    """

    def __init__(
        self,
        name: str = "",
        position: Iterable[float] = (0.0, 0.0, 0.0),
        rotation: Iterable[float] = (0.0, 0.0, 0.0),
        scale: Iterable[float] = (1.0, 1.0, 1.0),
    ):
        self.name = name
        self._position = _vector(position)
        self._rotation = _vector(rotation)
        self._scale = _vector(scale)
        self.has_changed = False
        self.alive = True

    @property
    def position(self) -> Vector:
        return self._position

    @position.setter
    def position(self, value: Iterable[float]) -> None:
        self._position = _vector(value)
        self.has_changed = True

    @property
    def rotation(self) -> Vector:
        return self._rotation

    @rotation.setter
    def rotation(self, value: Iterable[float]) -> None:
        self._rotation = _vector(value)
        self.has_changed = True

    @property
    def scale(self) -> Vector:
        return self._scale

    @scale.setter
    def scale(self, value: Iterable[float]) -> None:
        self._scale = _vector(value)
        self.has_changed = True

    def translate(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0) -> None:
        x, y, z = self._position
        self.position = (x + dx, y + dy, z + dz)

    def destroy(self) -> None:
        """Invalidate this transform; later snapshots raise InvalidSubjectError."""
        self.alive = False

    def snapshot(self) -> TransformState:
        if not self.alive:
            raise InvalidSubjectError(self, "transform was destroyed")
        return TransformState(self._position, self._rotation, self._scale)

    def __repr__(self) -> str:
        label = self.name or hex(id(self))
        return f"Transform({label})"


# -----------------------------------------------------------------------------
# Watched set
# -----------------------------------------------------------------------------


class WatchSet:
    """Insertion-ordered set of subjects, deduplicated by identity."""

    def __init__(self, subjects: Iterable[Any] = ()):
        self._members: dict[int, Any] = {}
        self.update(subjects)

    def add(self, subject: Any) -> bool:
        """Add `subject`; returns False if it was already present."""
        if subject is None:
            raise ValueError("cannot watch None")
        key = id(subject)
        if key in self._members:
            return False
        self._members[key] = subject
        return True

    def update(self, subjects: Iterable[Any]) -> int:
        """Add every subject; returns how many were new."""
        return sum(1 for subject in subjects if self.add(subject))

    def discard(self, subject: Any) -> bool:
        """Remove `subject`; returns whether it was present."""
        return self._members.pop(id(subject), None) is not None

    def discard_many(self, subjects: Iterable[Any]) -> int:
        """Remove every listed subject; returns how many were present."""
        return sum(1 for subject in list(subjects) if self.discard(subject))

    def __contains__(self, subject: object) -> bool:
        return id(subject) in self._members and self._members[id(subject)] is subject

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._members.values()))

    def __len__(self) -> int:
        return len(self._members)

    def __repr__(self) -> str:
        return f"WatchSet({len(self._members)} subjects)"


# -----------------------------------------------------------------------------
# Trackers
# -----------------------------------------------------------------------------


def _is_alive(subject: Any) -> bool:
    return getattr(subject, "alive", True) is not False


def _is_trackable(subject: Any) -> bool:
    return hasattr(subject, "has_changed") and callable(getattr(subject, "snapshot", None))


class Tracker:
    """
    Watches a set of trackable subjects and logs their changes per cycle.

    Args:
        subjects: Initial subjects to watch
        clock: Clock for log keys (defaults to the process-wide clock)
        attribute: Attribute identifier stamped on every record
    """

    def __init__(
        self,
        subjects: Iterable[Any] = (),
        *,
        clock: Clock | None = None,
        attribute: Any = TRANSFORM,
    ):
        self.attribute = attribute
        self.log = StateLog(clock, name=f"{type(self).__name__.lower()}")
        self._watched = WatchSet(subjects)

    @property
    def watched(self) -> WatchSet:
        return self._watched

    def add(self, *subjects: Any) -> int:
        """Watch one or more subjects; returns how many were new."""
        return self._watched.update(subjects)

    def add_all(self, subjects: Iterable[Any]) -> int:
        return self._watched.update(subjects)

    def try_remove(self, subject: Any) -> bool:
        """Stop watching `subject`; returns whether it was watched."""
        return self._watched.discard(subject)

    def try_remove_many(self, subjects: Iterable[Any]) -> int:
        return self._watched.discard_many(subjects)

    def on_append(self, listener: AppendHandler) -> None:
        """Call `listener(AppendEvent)` whenever a change is logged."""
        self.log.subscribe(listener)

    def off_append(self, listener: AppendHandler) -> None:
        self.log.unsubscribe(listener)

    def refresh(self) -> list[ChangeRecord]:
        """
        Diff every watched subject at a cycle boundary.

        Dirty subjects get one record each, logged at the current clock time.
        The flag is cleared before the snapshot is taken, so a change landing
        mid-snapshot stays pending for the next cycle. Clean subjects are left
        alone. Invalid or untrackable subjects are dropped from the watched set.

        Append listener failures do not stop the cycle: every dirty subject is
        recorded first, then the failures are raised together.

        Returns:
            Records emitted this cycle, in watch order

        Raises:
            ListenerError: one append listener failed
            ListenerErrorGroup: several append listener calls failed
        """
        emitted: list[ChangeRecord] = []
        failures: list[ListenerError] = []
        for subject in self._watched:
            try:
                if not _is_trackable(subject):
                    raise InvalidSubjectError(subject, "subject is not trackable")
                if not _is_alive(subject):
                    raise InvalidSubjectError(subject)
                if not subject.has_changed:
                    continue
                subject.has_changed = False
                state = subject.snapshot()
            except InvalidSubjectError as exc:
                self._drop_invalid(subject, exc.reason)
                continue

            change = ChangeRecord(subject, self.attribute, state)
            emitted.append(change)
            try:
                self.log.append(self.log.clock.now(), change)
            except ListenerError as exc:
                failures.append(exc)
            except ListenerErrorGroup as exc:
                failures.extend(exc.errors)

        if len(failures) == 1:
            raise failures[0]
        if failures:
            raise ListenerErrorGroup(failures)
        return emitted

    def _drop_invalid(self, subject: Any, reason: str) -> None:
        self._watched.discard(subject)
        logger.warning("%s: dropped %r (%s)", type(self).__name__, subject, reason)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(watched={len(self._watched)}, entries={len(self.log)})"


class SubjectTracker(Tracker):
    """Tracks exactly one subject, fixed at construction."""

    def __init__(self, subject: Any, *, clock: Clock | None = None, attribute: Any = TRANSFORM):
        super().__init__((subject,), clock=clock, attribute=attribute)
        self.subject = subject

    def add(self, *subjects: Any) -> int:
        raise TypeError("SubjectTracker watches a fixed subject")

    add_all = add

    def try_remove(self, subject: Any) -> bool:
        raise TypeError("SubjectTracker watches a fixed subject")

    try_remove_many = try_remove


def capability(*types: type) -> Callable[[Any], bool]:
    """Predicate accepting subjects that are instances of any of `types`."""
    if not types:
        raise ValueError("capability() needs at least one type")

    def has_capability(subject: Any) -> bool:
        return isinstance(subject, types)

    has_capability.__qualname__ = f"capability({', '.join(t.__name__ for t in types)})"
    return has_capability


class UniverseTracker(Tracker):
    """
    Tracks every subject of a Universe, optionally filtered by a predicate.

    With no predicate this is the omniscient tracker. The universe is
    scanned once at construction and again by every cycle(); new arrivals
    are added. Subjects that disappear from the enumeration stay watched
    unless `prune_missing` is set (subjects found invalid are always dropped).
    """

    def __init__(
        self,
        universe: Universe,
        predicate: Callable[[Any], bool] | None = None,
        *,
        clock: Clock | None = None,
        attribute: Any = TRANSFORM,
        prune_missing: bool = False,
    ):
        super().__init__(clock=clock, attribute=attribute)
        self.universe = universe
        self.predicate = predicate
        self.prune_missing = prune_missing
        self.rescan()

    def rescan(self) -> int:
        """Enumerate the universe and watch new arrivals; returns how many."""
        present = []
        for subject in self.universe.subjects():
            if self.predicate is not None and not self.predicate(subject):
                continue
            if not _is_trackable(subject):
                logger.debug("%s: skipping untrackable %r", type(self).__name__, subject)
                continue
            present.append(subject)
        added = self._watched.update(present)

        if self.prune_missing:
            present_ids = {id(subject) for subject in present}
            missing = [subject for subject in self._watched if id(subject) not in present_ids]
            if missing:
                self._watched.discard_many(missing)
                logger.debug("%s: pruned %d missing subjects", type(self).__name__, len(missing))

        if added:
            logger.debug("%s: watching %d new subjects", type(self).__name__, added)
        return added

    def cycle(self) -> list[ChangeRecord]:
        """One full update cycle: rescan, then refresh."""
        self.rescan()
        return self.refresh()


class SubjectPool:
    """In-memory universe of live subjects."""

    def __init__(self, subjects: Iterable[Any] = ()):
        self._subjects = WatchSet(subjects)

    def spawn(self, subject: Any) -> Any:
        self._subjects.add(subject)
        return subject

    def remove(self, subject: Any) -> bool:
        """Take `subject` out of the pool without invalidating it."""
        return self._subjects.discard(subject)

    def destroy(self, subject: Any) -> bool:
        """Remove `subject` from the pool and invalidate it if it supports that."""
        removed = self._subjects.discard(subject)
        destroy = getattr(subject, "destroy", None)
        if removed and callable(destroy):
            destroy()
        return removed

    def subjects(self) -> list[Any]:
        return [subject for subject in self._subjects if _is_alive(subject)]

    def __len__(self) -> int:
        return len(self._subjects)
