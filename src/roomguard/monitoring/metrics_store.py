"""
Start/complete tracking for client initialization attempts and environment
validation runs.

Records are created pending by ``start`` and filled in by ``complete``. Each
store holds at most ``capacity`` records; the oldest is dropped first, pending
or not.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Generic, TypeVar

from roomguard.utilities.datetime_helpers import to_iso_utc


@dataclass(slots=True)
class ClientInitializationMetrics:
    attempt_id: str
    started_at: datetime
    environment: str
    correlation_id: str | None = None
    ended_at: datetime | None = None
    duration_ms: float | None = None
    success: bool = False
    retry_count: int = 0
    error_type: str | None = None
    error_message: str | None = None

    @property
    def record_id(self) -> str:
        return self.attempt_id

    @property
    def completed(self) -> bool:
        return self.ended_at is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempt_id": self.attempt_id,
            "started_at": to_iso_utc(self.started_at),
            "ended_at": to_iso_utc(self.ended_at),
            "duration_ms": self.duration_ms,
            "success": self.success,
            "retry_count": self.retry_count,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "environment": self.environment,
            "correlation_id": self.correlation_id,
        }


@dataclass(slots=True)
class EnvironmentValidationMetrics:
    validation_id: str
    started_at: datetime
    environment: str
    correlation_id: str | None = None
    ended_at: datetime | None = None
    duration_ms: float | None = None
    total_variables: int = 0
    valid_variables: int = 0
    invalid_variables: int = 0
    missing_variables: int = 0

    @property
    def record_id(self) -> str:
        return self.validation_id

    @property
    def completed(self) -> bool:
        return self.ended_at is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "validation_id": self.validation_id,
            "started_at": to_iso_utc(self.started_at),
            "ended_at": to_iso_utc(self.ended_at),
            "duration_ms": self.duration_ms,
            "total_variables": self.total_variables,
            "valid_variables": self.valid_variables,
            "invalid_variables": self.invalid_variables,
            "missing_variables": self.missing_variables,
            "environment": self.environment,
            "correlation_id": self.correlation_id,
        }


R = TypeVar("R", ClientInitializationMetrics, EnvironmentValidationMetrics)


class TrackedOperationStore(Generic[R]):
    """Bounded ring of tracked operations with O(1) lookup by id."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._records: deque[R] = deque()
        self._by_id: dict[str, R] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def start(self, record: R) -> str:
        with self._lock:
            if len(self._records) >= self.capacity:
                evicted = self._records.popleft()
                self._by_id.pop(evicted.record_id, None)
            self._records.append(record)
            self._by_id[record.record_id] = record
        return record.record_id

    def complete(self, record_id: str, apply: Callable[[R], None]) -> R | None:
        """Apply ``apply`` to the pending record and return a copy of the result.

        Returns ``None`` for ids that were never issued or were already evicted.
        """
        with self._lock:
            record = self._by_id.get(record_id)
            if record is None:
                return None
            apply(record)
            return replace(record)

    def get(self, record_id: str) -> R | None:
        with self._lock:
            record = self._by_id.get(record_id)
            return replace(record) if record is not None else None

    def recent(self, limit: int) -> list[R]:
        if limit <= 0:
            return []
        with self._lock:
            tail = list(self._records)[-limit:]
            return [replace(record) for record in tail]

    def completed_since(self, cutoff: datetime) -> list[R]:
        """Copies of completed records started at or after ``cutoff``."""
        with self._lock:
            return [
                replace(record)
                for record in self._records
                if record.completed and record.started_at >= cutoff
            ]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._by_id.clear()


__all__ = [
    "ClientInitializationMetrics",
    "EnvironmentValidationMetrics",
    "TrackedOperationStore",
]
