"""Capacity-bounded, append-only event buffer."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from datetime import datetime
from itertools import islice
from typing import Generic, Protocol, TypeVar


class TimestampedEvent(Protocol):
    @property
    def timestamp(self) -> datetime: ...


E = TypeVar("E", bound=TimestampedEvent)


class BoundedEventStore(Generic[E]):
    """Keeps the most recent ``capacity`` events, evicting the oldest first.

    Every mutation and every read snapshot runs under one lock, so readers
    never observe a half-applied append and always get their own list.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._events: deque[E] = deque(maxlen=capacity)
        self._lock = threading.RLock()
        self._total_recorded = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    @property
    def total_recorded(self) -> int:
        """Events appended since construction or the last :meth:`clear`, evicted ones included."""
        return self._total_recorded

    @property
    def fill_ratio(self) -> float:
        with self._lock:
            return len(self._events) / self.capacity

    def append(self, event: E) -> E:
        with self._lock:
            self._events.append(event)
            self._total_recorded += 1
        return event

    def recent(self, limit: int) -> list[E]:
        """Last ``limit`` events in insertion order (all of them when fewer are held)."""
        if limit <= 0:
            return []
        with self._lock:
            if limit >= len(self._events):
                return list(self._events)
            return list(islice(self._events, len(self._events) - limit, None))

    def snapshot(self) -> list[E]:
        with self._lock:
            return list(self._events)

    def since(self, cutoff: datetime) -> list[E]:
        """Events with ``timestamp >= cutoff``, oldest first.

        Scans from the newest end; events are appended in clock order.
        """
        with self._lock:
            matched: list[E] = []
            for event in reversed(self._events):
                if event.timestamp < cutoff:
                    break
                matched.append(event)
        matched.reverse()
        return matched

    def count(self, predicate: Callable[[E], bool]) -> int:
        with self._lock:
            return sum(1 for event in self._events if predicate(event))

    def latest(self) -> E | None:
        with self._lock:
            return self._events[-1] if self._events else None

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
            self._total_recorded = 0


__all__ = ["BoundedEventStore", "TimestampedEvent"]
