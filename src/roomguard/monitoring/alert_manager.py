"""Keyed alert state: at most one active alert per (alert type, event type, actor)."""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Mapping
from typing import Any, NamedTuple

from roomguard.monitoring.alert_types import Alert, AlertType, Severity
from roomguard.utilities.identifiers import make_id
from roomguard.utilities.logging_patterns import get_logger
from roomguard.utilities.time_provider import Clock, get_clock

logger = get_logger(__name__, component="alert_manager")

AlertKey = tuple[AlertType, str, str]


class AlertUpdate(NamedTuple):
    alert: Alert
    created: bool
    escalated: bool

    @property
    def needs_dispatch(self) -> bool:
        """New alerts and severity escalations are offered to the dispatcher."""
        return self.created or self.escalated


class AlertManager:
    """Creates, updates, and resolves alerts for one monitor.

    Resolved alerts stay retrievable by id; the oldest resolved ones are
    forgotten once more than ``resolved_retention`` accumulate.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        *,
        environment: str | None = None,
        resolved_retention: int = 1_000,
    ) -> None:
        self._clock = clock or get_clock()
        self.environment = environment
        self.resolved_retention = resolved_retention
        self._active: dict[AlertKey, Alert] = {}
        self._by_id: dict[str, Alert] = {}
        self._resolved: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.RLock()

    def upsert(
        self,
        alert_type: AlertType,
        event_type: str,
        actor_key: str,
        severity: Severity,
        *,
        count: int | None = None,
        threshold: int | None = None,
        window_minutes: float | None = None,
        source: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> AlertUpdate:
        """Create the alert for this key or record another firing of the active one.

        Returns:
            A snapshot of the alert, whether it was newly created, and whether
            this firing raised its severity.
        """
        key: AlertKey = (alert_type, event_type, actor_key)
        now = self._clock.now()
        with self._lock:
            alert = self._active.get(key)
            if alert is not None:
                escalated = alert.touch(now, count=count, severity=severity, details=details)
                return AlertUpdate(alert.snapshot(), False, escalated)

            alert = Alert(
                alert_id=make_id("alert", now),
                alert_type=alert_type,
                event_type=event_type,
                actor_key=actor_key,
                severity=severity,
                first_seen=now,
                last_seen=now,
                count=count if count is not None else 1,
                threshold=threshold,
                window_minutes=window_minutes,
                source=source,
                environment=self.environment,
                details=dict(details or {}),
            )
            self._active[key] = alert
            self._by_id[alert.alert_id] = alert
            return AlertUpdate(alert.snapshot(), True, False)

    def resolve_alert(self, alert_id: str) -> bool:
        """Mark an active alert resolved; ``False`` for unknown or already-resolved ids."""
        with self._lock:
            alert = self._by_id.get(alert_id)
            if alert is None or alert.resolved:
                return False
            alert.mark_resolved(self._clock.now())
            self._active.pop(alert.key, None)
            self._resolved[alert_id] = None
            while len(self._resolved) > self.resolved_retention:
                expired_id, _ = self._resolved.popitem(last=False)
                self._by_id.pop(expired_id, None)

        logger.info(
            "Alert resolved",
            operation="resolve_alert",
            alert_id=alert_id,
            alert_type=alert.alert_type.value,
            actor_key=alert.actor_key,
        )
        return True

    def get_alert(self, alert_id: str) -> Alert | None:
        with self._lock:
            alert = self._by_id.get(alert_id)
            return alert.snapshot() if alert is not None else None

    def get_active_alerts(self) -> list[Alert]:
        """Unresolved alerts in creation order."""
        with self._lock:
            return [alert.snapshot() for alert in self._active.values()]

    def active_count(self, min_severity: Severity | None = None) -> int:
        with self._lock:
            if min_severity is None:
                return len(self._active)
            return sum(1 for alert in self._active.values() if alert.severity >= min_severity)

    def clear(self) -> None:
        with self._lock:
            self._active.clear()
            self._by_id.clear()
            self._resolved.clear()


__all__ = ["AlertKey", "AlertManager", "AlertUpdate"]
