from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from functools import total_ordering
from typing import Any

from roomguard.utilities.datetime_helpers import to_iso_utc


@total_ordering
class Severity(Enum):
    """Ordered severity shared by events and alerts (``LOW < ... < CRITICAL``)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def numeric_level(self) -> int:
        """Logging-style numeric level for comparisons."""
        mapping = {
            Severity.LOW: 20,
            Severity.MEDIUM: 30,
            Severity.HIGH: 40,
            Severity.CRITICAL: 50,
        }
        return mapping[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.numeric_level < other.numeric_level

    @classmethod
    def coerce(cls, value: Severity | str) -> Severity:
        """Coerce user-provided severity into a ``Severity`` enum."""
        if isinstance(value, Severity):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown severity: {value!r}")


class AlertType(Enum):
    """Alert conditions raised by the security and environment monitors."""

    REPEATED_FAILURES = "repeated_failures"
    CRITICAL_MISSING_VARIABLE = "critical_missing_variable"
    CLIENT_INIT_FAILURE_RATE = "client_init_failure_rate"
    VALIDATION_PERFORMANCE_DEGRADATION = "validation_performance_degradation"
    SUSPICIOUS_PATTERN = "suspicious_pattern"


@dataclass(slots=True)
class Alert:
    """Stateful signal that a detection condition is active for one actor.

    Instances owned by the alert manager are mutated in place; anything handed
    out to readers is a :meth:`snapshot`.
    """

    alert_id: str
    alert_type: AlertType
    event_type: str
    actor_key: str
    severity: Severity
    first_seen: datetime
    last_seen: datetime
    count: int = 1
    threshold: int | None = None
    window_minutes: float | None = None
    source: str | None = None
    environment: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    resolved: bool = False
    resolved_at: datetime | None = None

    @property
    def id(self) -> str:
        return self.alert_id

    @property
    def key(self) -> tuple[AlertType, str, str]:
        return (self.alert_type, self.event_type, self.actor_key)

    @property
    def title(self) -> str:
        return f"{self.alert_type.value.replace('_', ' ').title()}: {self.event_type}"

    @property
    def summary(self) -> str:
        window = f" within {self.window_minutes:g} minutes" if self.window_minutes else ""
        return f"{self.count} x {self.event_type} for {self.actor_key}{window}"

    def touch(
        self,
        now: datetime,
        *,
        count: int | None = None,
        severity: Severity | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> bool:
        """Record another firing of the condition.

        ``count`` never decreases: each firing adds at least one, or jumps to the
        reported in-window count when that is higher. Returns whether the
        severity was raised.
        """
        self.count = self.count + 1 if count is None else max(self.count + 1, count)
        self.last_seen = now
        if details:
            self.details.update(details)
        if severity is not None and severity > self.severity:
            self.severity = severity
            return True
        return False

    def mark_resolved(self, now: datetime) -> None:
        self.resolved = True
        self.resolved_at = now

    def is_active(self) -> bool:
        """Return ``True`` while the alert remains unresolved."""
        return not self.resolved

    def snapshot(self) -> Alert:
        """Copy safe to hand to readers while the manager keeps mutating the original."""
        return replace(self, details=dict(self.details))

    def to_dict(self) -> dict[str, Any]:
        """Serialize the alert for structured logging/transport layers."""
        return {
            "id": self.alert_id,
            "type": self.alert_type.value,
            "event_type": self.event_type,
            "actor_key": self.actor_key,
            "severity": self.severity.value,
            "title": self.title,
            "summary": self.summary,
            "count": self.count,
            "threshold": self.threshold,
            "window_minutes": self.window_minutes,
            "source": self.source,
            "environment": self.environment,
            "first_seen": to_iso_utc(self.first_seen),
            "last_seen": to_iso_utc(self.last_seen),
            "details": dict(self.details),
            "resolved": self.resolved,
            "resolved_at": to_iso_utc(self.resolved_at),
        }


__all__ = ["Severity", "AlertType", "Alert"]
