"""
Append-only ordered logs.

An OrderedLog maps an ordered key (usually a timestamp) to the bucket of
values appended under that key, in append order. Keys are never removed or
reordered and appends are never rejected: duplicate (key, value) pairs are
kept. Every append fires an AppendEvent after the value is stored.

Logs are not thread safe. Commit and read on one thread.
"""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, TypeVar

from .bus import EventBus
from .clock import Clock, default_clock
from .records import ChangeRecord
from .resolve import SpiedAttributeResolver, ValueResolver

K = TypeVar("K")
V = TypeVar("V")


@dataclass(frozen=True)
class AppendEvent(Generic[K, V]):
    """Payload delivered to append listeners."""

    key: K
    value: V


AppendHandler = Callable[[AppendEvent], Any]


def _append_context(event: AppendEvent) -> tuple[Any, Any]:
    value = event.value
    if isinstance(value, ChangeRecord):
        return value.subject, value.attribute
    return None, event.key


class OrderedLog(Generic[K, V]):
    """
    Append-only log implemented as a sorted key index over per-key buckets.

    Key lookup is O(1); placing a new key is a binary search over the sorted
    key index.
    """

    def __init__(self, name: str = "log", *, isolate: bool | None = None):
        self.name = name
        self._keys: list[K] = []
        self._buckets: dict[K, list[V]] = {}
        self._size = 0
        self._on_append = EventBus(f"{name}.append", isolate=isolate, context=_append_context)

    # --- Write ---

    def append(self, key: K, value: V) -> None:
        """
        Store `value` under `key`, then notify append listeners.

        This is the only write operation.
        """
        bucket = self._buckets.get(key)
        if bucket is None:
            self._check_key(key)
            index = bisect.bisect_left(self._keys, key)
            self._keys.insert(index, key)
            bucket = self._buckets[key] = []
        bucket.append(value)
        self._size += 1

        self._on_append.notify(AppendEvent(key, value))

    def _check_key(self, key: K) -> None:
        if key is None:
            raise TypeError(f"{self.name}: log keys must be ordered, got None")
        if isinstance(key, float) and math.isnan(key):
            raise ValueError(f"{self.name}: NaN cannot be used as a log key")

    # --- Append event ---

    def subscribe(self, listener: AppendHandler) -> None:
        self._on_append.add(listener)

    def unsubscribe(self, listener: AppendHandler) -> None:
        self._on_append.remove(listener)

    @property
    def on_append(self) -> EventBus:
        return self._on_append

    # --- Read ---

    def bucket(self, key: K) -> tuple[V, ...]:
        """Values appended under `key`, oldest first (empty if unknown)."""
        return tuple(self._buckets.get(key, ()))

    def keys(self) -> list[K]:
        return list(self._keys)

    def items(self) -> Iterator[tuple[K, tuple[V, ...]]]:
        """Iterate (key, bucket) pairs in key order."""
        for key in self._keys:
            yield key, tuple(self._buckets[key])

    def entries(self) -> Iterator[tuple[K, V]]:
        """Iterate every (key, value) pair in log order."""
        for key in self._keys:
            for value in self._buckets[key]:
                yield key, value

    def between(self, start: K, end: K) -> list[tuple[K, V]]:
        """Entries with start <= key <= end, in log order."""
        low = bisect.bisect_left(self._keys, start)
        high = bisect.bisect_right(self._keys, end)
        return [(key, value) for key in self._keys[low:high] for value in self._buckets[key]]

    def latest(self) -> tuple[K, V] | None:
        """The most recently ordered entry, or None for an empty log."""
        if not self._keys:
            return None
        key = self._keys[-1]
        return key, self._buckets[key][-1]

    @property
    def first_key(self) -> K | None:
        return self._keys[0] if self._keys else None

    @property
    def last_key(self) -> K | None:
        return self._keys[-1] if self._keys else None

    def __len__(self) -> int:
        return self._size

    def __contains__(self, key: object) -> bool:
        return key in self._buckets

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._keys))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, keys={len(self._keys)}, entries={self._size})"


class StateLog(OrderedLog[float, ChangeRecord]):
    """Ordered log of ChangeRecords keyed by clock time."""

    def __init__(
        self,
        clock: Clock | None = None,
        name: str = "state",
        *,
        isolate: bool | None = None,
    ):
        super().__init__(name, isolate=isolate)
        self.clock = clock or default_clock()

    def record(self, subject: Any, attribute: Any, value: Any) -> ChangeRecord:
        """Build a ChangeRecord and append it at the current clock time."""
        change = ChangeRecord(subject, attribute, value)
        self.append(self.clock.now(), change)
        return change


class PropertyLog(StateLog):
    """
    Default destination for a Spy.

    `append_mutation` is the listener bound to a subject's mutation stream.
    It receives only the subject and attribute; the value is read through the
    resolver at append time.
    """

    def __init__(
        self,
        resolver: ValueResolver | None = None,
        clock: Clock | None = None,
        name: str = "property",
        *,
        isolate: bool | None = None,
    ):
        super().__init__(clock, name, isolate=isolate)
        self.resolver = resolver or SpiedAttributeResolver()

    def append_mutation(self, subject: Any, attribute: Any) -> ChangeRecord:
        """
        Resolve the current value of `attribute` and log it.

        Raises:
            AttributeResolutionError: the attribute cannot be resolved; nothing
                is logged.
        """
        value = self.resolver.resolve(subject, attribute)
        return self.record(subject, attribute, value)
