"""Time-windowed rollups computed from store snapshots."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from roomguard.monitoring.events import EnvironmentErrorEvent, SecurityEvent
from roomguard.monitoring.metrics_store import (
    ClientInitializationMetrics,
    EnvironmentValidationMetrics,
)


@dataclass(frozen=True, slots=True)
class SecurityStats:
    total_events: int
    events_by_type: dict[str, int]
    events_by_severity: dict[str, int]
    active_alerts: int
    window_minutes: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_events": self.total_events,
            "events_by_type": dict(self.events_by_type),
            "events_by_severity": dict(self.events_by_severity),
            "active_alerts": self.active_alerts,
            "window_minutes": self.window_minutes,
        }


@dataclass(frozen=True, slots=True)
class MonitoringStats:
    total_errors: int
    errors_by_type: dict[str, int]
    errors_by_severity: dict[str, int]
    client_initialization_success_rate: float
    average_validation_duration: float
    active_alerts: int
    environment: str
    window_minutes: float
    average_client_init_duration: float = 0.0
    client_initialization_attempts: int = 0
    environment_validations: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_errors": self.total_errors,
            "errors_by_type": dict(self.errors_by_type),
            "errors_by_severity": dict(self.errors_by_severity),
            "client_initialization_success_rate": self.client_initialization_success_rate,
            "average_validation_duration": self.average_validation_duration,
            "average_client_init_duration": self.average_client_init_duration,
            "client_initialization_attempts": self.client_initialization_attempts,
            "environment_validations": self.environment_validations,
            "active_alerts": self.active_alerts,
            "environment": self.environment,
            "window_minutes": self.window_minutes,
        }


def safe_mean(values: Iterable[float]) -> float:
    """Arithmetic mean, ``0.0`` for an empty input."""
    total = 0.0
    count = 0
    for value in values:
        total += value
        count += 1
    return total / count if count else 0.0


def success_rate(attempts: Sequence[ClientInitializationMetrics]) -> float:
    """Percentage of successful attempts, ``0.0`` when there were none."""
    if not attempts:
        return 0.0
    return sum(1 for attempt in attempts if attempt.success) / len(attempts) * 100


def _tally(
    events: Iterable[SecurityEvent | EnvironmentErrorEvent],
) -> tuple[int, Counter[str], Counter[str]]:
    by_type: Counter[str] = Counter()
    by_severity: Counter[str] = Counter()
    total = 0
    for event in events:
        total += 1
        by_type[event.type.value] += 1
        by_severity[event.severity.value] += 1
    return total, by_type, by_severity


def build_security_stats(
    events: Iterable[SecurityEvent], *, active_alerts: int, window_minutes: float
) -> SecurityStats:
    total, by_type, by_severity = _tally(events)
    return SecurityStats(
        total_events=total,
        events_by_type=dict(by_type),
        events_by_severity=dict(by_severity),
        active_alerts=active_alerts,
        window_minutes=window_minutes,
    )


def build_monitoring_stats(
    errors: Iterable[EnvironmentErrorEvent],
    client_inits: Sequence[ClientInitializationMetrics],
    validations: Sequence[EnvironmentValidationMetrics],
    *,
    active_alerts: int,
    environment: str,
    window_minutes: float,
) -> MonitoringStats:
    total, by_type, by_severity = _tally(errors)
    return MonitoringStats(
        total_errors=total,
        errors_by_type=dict(by_type),
        errors_by_severity=dict(by_severity),
        client_initialization_success_rate=success_rate(client_inits),
        average_validation_duration=safe_mean(
            v.duration_ms for v in validations if v.duration_ms is not None
        ),
        average_client_init_duration=safe_mean(
            c.duration_ms for c in client_inits if c.duration_ms is not None
        ),
        client_initialization_attempts=len(client_inits),
        environment_validations=len(validations),
        active_alerts=active_alerts,
        environment=environment,
        window_minutes=window_minutes,
    )


__all__ = [
    "SecurityStats",
    "MonitoringStats",
    "safe_mean",
    "success_rate",
    "build_security_stats",
    "build_monitoring_stats",
]
