"""System health derived from live alert state and store fill ratio."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

import psutil

from roomguard.monitoring.alert_types import Alert, Severity
from roomguard.utilities.datetime_helpers import to_iso_utc
from roomguard.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="health")


class HealthStatus(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class SystemHealth:
    status: HealthStatus
    events_count: int
    alerts_count: int
    memory_usage: float
    last_event_time: datetime | None = None
    process_rss_mb: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "events_count": self.events_count,
            "alerts_count": self.alerts_count,
            "memory_usage": self.memory_usage,
            "last_event_time": to_iso_utc(self.last_event_time),
            "process_rss_mb": self.process_rss_mb,
        }


def process_rss_mb() -> float | None:
    """Resident set size of this process in MiB, ``None`` when the platform hides it."""
    try:
        return round(psutil.Process().memory_info().rss / (1024 * 1024), 2)
    except psutil.Error as exc:
        logger.debug(f"Process memory unavailable: {exc}", operation="health_check")
        return None


def assess_health(
    *,
    events_count: int,
    capacity: int,
    active_alerts: Iterable[Alert],
    last_event_time: datetime | None,
    degraded_alert_count: int = 5,
    memory_warning_ratio: float = 0.9,
) -> SystemHealth:
    """Classify monitor health.

    Critical with any active critical alert; degraded with more than
    ``degraded_alert_count`` active alerts or a store above ``memory_warning_ratio``.
    """
    alerts = list(active_alerts)
    memory_usage = events_count / capacity if capacity else 0.0

    if any(alert.severity is Severity.CRITICAL for alert in alerts):
        status = HealthStatus.CRITICAL
    elif len(alerts) > degraded_alert_count or memory_usage > memory_warning_ratio:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.HEALTHY

    return SystemHealth(
        status=status,
        events_count=events_count,
        alerts_count=len(alerts),
        memory_usage=memory_usage,
        last_event_time=last_event_time,
        process_rss_mb=process_rss_mb(),
    )


__all__ = ["HealthStatus", "SystemHealth", "assess_health", "process_rss_mb"]
