"""
Security event monitor.

Records authentication failures, suspicious access, privilege escalation
attempts and other request-level security signals, raises an alert once an
actor crosses the threshold for an event type, and forwards alerts at or
above the dispatch floor to the configured webhooks.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from roomguard.config.thresholds import ThresholdConfig, load_thresholds
from roomguard.monitoring.alert_manager import AlertManager
from roomguard.monitoring.alert_types import Alert, AlertType, Severity
from roomguard.monitoring.alerts import AlertDispatcher
from roomguard.monitoring.analyzer import PatternAnalyzer
from roomguard.monitoring.event_store import BoundedEventStore
from roomguard.monitoring.events import (
    DETAILS_BY_TYPE,
    AuthFailureDetails,
    DataIntegrityDetails,
    EventDetails,
    PrivilegeEscalationDetails,
    RateLimitDetails,
    SecurityEvent,
    SecurityEventType,
    SuspiciousAccessDetails,
    annotate_unrecognised,
    details_to_mapping,
    freeze,
    parse_member,
    parse_severity,
)
from roomguard.monitoring.health import SystemHealth, assess_health
from roomguard.monitoring.stats import SecurityStats, build_security_stats
from roomguard.settings import MonitoringSettings, get_settings
from roomguard.utilities.datetime_helpers import minutes_before
from roomguard.utilities.identifiers import make_id
from roomguard.utilities.logging_patterns import get_logger, log_error_with_context
from roomguard.utilities.time_provider import Clock, get_clock

logger = get_logger(__name__, component="security_monitor")

# Event types whose threshold breach reads as unusual behaviour rather than failures.
_PATTERN_EVENT_TYPES = frozenset(
    {
        SecurityEventType.SUSPICIOUS_ACCESS,
        SecurityEventType.API_ACCESS,
        SecurityEventType.AUTHENTICATED_API_ACCESS,
        SecurityEventType.ANONYMOUS_API_ACCESS,
        SecurityEventType.ADMIN_OPERATION_SUCCESS,
    }
)


def risk_severity(risk_score: int) -> Severity:
    if risk_score >= 80:
        return Severity.HIGH
    if risk_score >= 60:
        return Severity.MEDIUM
    return Severity.LOW


class SecurityMonitor:
    """In-process security event store, detector and alert source.

    Recording never raises and never waits on network I/O; detection and
    alerting failures are logged and swallowed.
    """

    def __init__(
        self,
        settings: MonitoringSettings | None = None,
        *,
        clock: Clock | None = None,
        dispatcher: AlertDispatcher | None = None,
        thresholds: ThresholdConfig | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._clock = clock or get_clock()
        self.thresholds = thresholds or load_thresholds(self.settings.thresholds_file)
        self.dispatcher = dispatcher or AlertDispatcher.from_settings(self.settings)

        self._events: BoundedEventStore[SecurityEvent] = BoundedEventStore(
            self.settings.max_security_events
        )
        self._analyzer = PatternAnalyzer(
            self.thresholds.patterns,
            sample_size=self.thresholds.pattern_sample_size,
            max_series_length=self.settings.max_security_events,
        )
        self.alerts = AlertManager(self._clock, environment=self.settings.environment)

    @property
    def capacity(self) -> int:
        return self._events.capacity

    # ------------------------------------------------------------------
    # Producer API
    # ------------------------------------------------------------------

    def record_event(
        self,
        event_type: SecurityEventType | str,
        severity: Severity | str,
        *,
        user_id: str | None = None,
        session_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        endpoint: str | None = None,
        method: str | None = None,
        source: str | None = None,
        details: EventDetails | Mapping[str, Any] | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SecurityEvent:
        """Append an event and evaluate it against its alert threshold.

        An unrecognised type or severity name is recorded as ``unknown`` or
        ``medium`` with the raw name kept in ``metadata``.
        """
        kind, raw_type = parse_member(SecurityEventType, event_type)
        level, raw_severity = parse_severity(severity)
        if raw_type is not None or raw_severity is not None:
            logger.warning(
                f"Unrecognised security event input recorded as {kind.value}/{level.value}",
                operation="security_event",
                raw_event_type=raw_type,
                raw_severity=raw_severity,
            )
            metadata = annotate_unrecognised(
                metadata, event_type=raw_type, severity=raw_severity
            )
        now = self._clock.now()

        expected_details = DETAILS_BY_TYPE.get(kind)
        if (
            details is not None
            and not isinstance(details, Mapping)
            and expected_details is not None
            and not isinstance(details, expected_details)
        ):
            logger.debug(
                f"{type(details).__name__} recorded for {kind.value}",
                operation="security_event",
            )

        event = self._events.append(
            SecurityEvent(
                event_id=make_id(kind.value, now),
                type=kind,
                severity=level,
                timestamp=now,
                user_id=user_id,
                session_id=session_id,
                ip_address=ip_address,
                user_agent=user_agent,
                endpoint=endpoint,
                method=method,
                source=source,
                details=details_to_mapping(details),
                metadata=freeze(metadata),
            )
        )

        logger.warning(
            f"Security event: {kind.value}",
            operation="security_event",
            event_id=event.event_id,
            event_type=kind.value,
            severity=level.value,
            user_id=user_id,
            ip_address=ip_address,
            endpoint=endpoint,
            event_source=source,
            details=dict(event.details),
        )

        try:
            self._evaluate(event)
        except Exception as exc:
            log_error_with_context(
                exc,
                "security_alert_evaluation",
                component="security_monitor",
                logger=logger,
                event_id=event.event_id,
            )
        return event

    def record_auth_failure(
        self,
        *,
        endpoint: str,
        reason: str,
        user_id: str | None = None,
        session_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        attempted_credentials: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SecurityEvent:
        return self.record_event(
            SecurityEventType.AUTH_FAILURE,
            Severity.MEDIUM,
            user_id=user_id,
            session_id=session_id,
            ip_address=ip_address,
            user_agent=user_agent,
            endpoint=endpoint,
            source="authentication_system",
            details=AuthFailureDetails.build(reason, attempted_credentials),
            metadata=metadata,
        )

    def record_suspicious_access(
        self,
        *,
        endpoint: str,
        pattern: str,
        risk_score: int,
        user_id: str | None = None,
        session_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        indicators: tuple[str, ...] | None = None,
        source: str = "access_pattern_analyzer",
        metadata: Mapping[str, Any] | None = None,
    ) -> SecurityEvent:
        """Severity follows the risk score: 80+ high, 60+ medium, otherwise low."""
        return self.record_event(
            SecurityEventType.SUSPICIOUS_ACCESS,
            risk_severity(risk_score),
            user_id=user_id,
            session_id=session_id,
            ip_address=ip_address,
            user_agent=user_agent,
            endpoint=endpoint,
            source=source,
            details=SuspiciousAccessDetails(pattern, risk_score, indicators),
            metadata=metadata,
        )

    def record_privilege_escalation_attempt(
        self,
        *,
        user_id: str,
        endpoint: str,
        attempted_action: str,
        current_role: str,
        required_role: str,
        session_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SecurityEvent:
        return self.record_event(
            SecurityEventType.PRIVILEGE_ESCALATION_ATTEMPT,
            Severity.CRITICAL,
            user_id=user_id,
            session_id=session_id,
            ip_address=ip_address,
            user_agent=user_agent,
            endpoint=endpoint,
            source="authorization_system",
            details=PrivilegeEscalationDetails(attempted_action, current_role, required_role),
            metadata=metadata,
        )

    def record_data_integrity_violation(
        self,
        *,
        table: str,
        operation: str,
        violation_type: str,
        affected_records: int = 1,
        user_id: str | None = None,
        endpoint: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SecurityEvent:
        return self.record_event(
            SecurityEventType.DATA_INTEGRITY_VIOLATION,
            Severity.HIGH,
            user_id=user_id,
            endpoint=endpoint,
            source="data_integrity_validator",
            details=DataIntegrityDetails(table, operation, violation_type, affected_records),
            metadata=metadata,
        )

    def record_rate_limit_exceeded(
        self,
        *,
        endpoint: str,
        request_count: int,
        window_seconds: float,
        limit: int,
        user_id: str | None = None,
        ip_address: str | None = None,
    ) -> SecurityEvent:
        return self.record_event(
            SecurityEventType.RATE_LIMIT_EXCEEDED,
            Severity.MEDIUM,
            user_id=user_id,
            ip_address=ip_address,
            endpoint=endpoint,
            source="rate_limiter",
            details=RateLimitDetails(request_count, window_seconds, limit),
        )

    def record_api_access(
        self,
        *,
        endpoint: str,
        method: str | None = None,
        user_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SecurityEvent:
        """Low-severity access trail; anonymous and authenticated traffic have separate thresholds."""
        kind = (
            SecurityEventType.AUTHENTICATED_API_ACCESS
            if user_id
            else SecurityEventType.ANONYMOUS_API_ACCESS
        )
        return self.record_event(
            kind,
            Severity.LOW,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            endpoint=endpoint,
            method=method,
            source="api_gateway",
            metadata=metadata,
        )

    def record_admin_operation(
        self,
        *,
        endpoint: str,
        operation: str,
        succeeded: bool,
        user_id: str | None = None,
        method: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SecurityEvent:
        kind, severity = (
            (SecurityEventType.ADMIN_OPERATION_SUCCESS, Severity.MEDIUM)
            if succeeded
            else (SecurityEventType.ADMIN_OPERATION_ATTEMPT, Severity.HIGH)
        )
        return self.record_event(
            kind,
            severity,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            endpoint=endpoint,
            method=method,
            source="admin_api",
            metadata={"operation": operation, **(metadata or {})},
        )

    # ------------------------------------------------------------------
    # Consumer API
    # ------------------------------------------------------------------

    def get_recent_events(self, limit: int = 100) -> list[SecurityEvent]:
        return self._events.recent(limit)

    def get_active_alerts(self) -> list[Alert]:
        return self.alerts.get_active_alerts()

    def get_alert(self, alert_id: str) -> Alert | None:
        return self.alerts.get_alert(alert_id)

    def resolve_alert(self, alert_id: str) -> bool:
        return self.alerts.resolve_alert(alert_id)

    def get_security_stats(self, window_minutes: float = 60) -> SecurityStats:
        cutoff = minutes_before(self._clock.now(), window_minutes)
        return build_security_stats(
            self._events.since(cutoff),
            active_alerts=self.alerts.active_count(),
            window_minutes=window_minutes,
        )

    def get_system_health(self) -> SystemHealth:
        latest = self._events.latest()
        return assess_health(
            events_count=len(self._events),
            capacity=self._events.capacity,
            active_alerts=self.alerts.get_active_alerts(),
            last_event_time=latest.timestamp if latest is not None else None,
            degraded_alert_count=self.settings.degraded_alert_count,
            memory_warning_ratio=self.settings.memory_warning_ratio,
        )

    def clear(self) -> None:
        """Drop all events, detection state and alerts."""
        self._events.clear()
        self._analyzer.clear()
        self.alerts.clear()

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def _evaluate(self, event: SecurityEvent) -> None:
        rule = self.thresholds.security_rule(event.type.value)
        if rule is None:
            return

        detection = self._analyzer.observe((event.type, event.actor_key), event.timestamp, rule)
        if not detection.triggered:
            return

        alert_type = (
            AlertType.SUSPICIOUS_PATTERN
            if event.type in _PATTERN_EVENT_TYPES
            else AlertType.REPEATED_FAILURES
        )
        update = self.alerts.upsert(
            alert_type,
            event.type.value,
            event.actor_key,
            event.severity,
            count=detection.count,
            threshold=rule.threshold,
            window_minutes=rule.window_minutes,
            source=event.source,
            details={
                "user_id": event.user_id,
                "ip_address": event.ip_address,
                "endpoint": event.endpoint,
                "first_occurrence": detection.first_seen.isoformat(),
                **detection.as_details(),
            },
        )
        if update.needs_dispatch:
            self._raise_alert(update.alert, escalated=update.escalated)

    def _raise_alert(self, alert: Alert, *, escalated: bool = False) -> None:
        logger.error(
            f"Security alert {'escalated' if escalated else 'raised'}: {alert.title}",
            operation="security_alert",
            alert_id=alert.alert_id,
            alert_type=alert.alert_type.value,
            event_type=alert.event_type,
            severity=alert.severity.value,
            count=alert.count,
            window_minutes=alert.window_minutes,
            details=alert.details,
        )
        self.dispatcher.dispatch_nowait(alert)


__all__ = ["SecurityMonitor", "risk_severity"]
