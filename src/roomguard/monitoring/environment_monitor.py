"""
Environment configuration monitor.

Tracks environment-variable errors, client initialization attempts and
environment validation runs. Raises alerts for repeated failures, critical
missing variables, client initialization failure bursts and slow validation,
and mirrors high-severity errors into the security monitor.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Generator, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from roomguard.config.thresholds import (
    CLIENT_INIT_FAILURE_RATE,
    CRITICAL_MISSING_VARIABLE,
    REPEATED_FAILURES,
    VALIDATION_PERFORMANCE_DEGRADATION,
    ThresholdConfig,
    ThresholdRule,
    load_thresholds,
)
from roomguard.logging.correlation import get_correlation_id
from roomguard.monitoring.alert_manager import AlertManager
from roomguard.monitoring.alert_types import Alert, AlertType, Severity
from roomguard.monitoring.alerts import AlertDispatcher
from roomguard.monitoring.analyzer import PatternAnalyzer
from roomguard.monitoring.event_store import BoundedEventStore
from roomguard.monitoring.events import (
    EnvironmentErrorContext,
    EnvironmentErrorEvent,
    EnvironmentErrorType,
    EnvironmentOperation,
    SecurityEventType,
    annotate_unrecognised,
    freeze,
    parse_member,
    parse_severity,
)
from roomguard.monitoring.health import SystemHealth, assess_health
from roomguard.monitoring.metrics_store import (
    ClientInitializationMetrics,
    EnvironmentValidationMetrics,
    TrackedOperationStore,
)
from roomguard.monitoring.security_monitor import SecurityMonitor
from roomguard.monitoring.stats import MonitoringStats, build_monitoring_stats, success_rate
from roomguard.settings import MonitoringSettings, get_settings
from roomguard.utilities.datetime_helpers import minutes_before
from roomguard.utilities.identifiers import make_id
from roomguard.utilities.logging_patterns import get_logger, log_error_with_context
from roomguard.utilities.time_provider import Clock, get_clock

logger = get_logger(__name__, component="environment_monitor")

SOURCE = "environment_monitor"
CLIENT_INITIALIZATION_ACTOR = "client_initialization"
ENVIRONMENT_VALIDATION_ACTOR = "environment_validation"

_LOG_LEVELS = {
    Severity.LOW: logging.INFO,
    Severity.MEDIUM: logging.WARNING,
    Severity.HIGH: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}


@dataclass(slots=True)
class ClientInitializationAttempt:
    """Handle yielded by :meth:`EnvironmentMonitor.track_client_initialization`."""

    attempt_id: str
    retry_count: int = 0


@dataclass(slots=True)
class EnvironmentValidationRun:
    """Handle yielded by :meth:`EnvironmentMonitor.track_environment_validation`."""

    validation_id: str
    total_variables: int = 0
    valid_variables: int = 0
    invalid_variables: int = 0
    missing_variables: int = 0


class EnvironmentMonitor:
    """In-process environment error store, metrics tracker and alert source."""

    def __init__(
        self,
        settings: MonitoringSettings | None = None,
        *,
        clock: Clock | None = None,
        dispatcher: AlertDispatcher | None = None,
        thresholds: ThresholdConfig | None = None,
        security_monitor: SecurityMonitor | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._clock = clock or get_clock()
        self.thresholds = thresholds or load_thresholds(self.settings.thresholds_file)
        self.dispatcher = dispatcher or AlertDispatcher.from_settings(self.settings)
        self.security_monitor = security_monitor

        self._errors: BoundedEventStore[EnvironmentErrorEvent] = BoundedEventStore(
            self.settings.max_environment_errors
        )
        self._client_inits: TrackedOperationStore[ClientInitializationMetrics] = (
            TrackedOperationStore(self.settings.max_metrics)
        )
        self._validations: TrackedOperationStore[EnvironmentValidationMetrics] = (
            TrackedOperationStore(self.settings.max_metrics)
        )
        self._analyzer = PatternAnalyzer(
            self.thresholds.patterns,
            sample_size=self.thresholds.pattern_sample_size,
            max_series_length=self.settings.max_environment_errors,
        )
        self.alerts = AlertManager(self._clock, environment=self.settings.environment)

    @property
    def environment(self) -> str:
        return self.settings.environment

    # ------------------------------------------------------------------
    # Environment errors
    # ------------------------------------------------------------------

    def record_environment_error(
        self,
        error_type: EnvironmentErrorType | str,
        severity: Severity | str,
        message: str,
        *,
        variable: str | None = None,
        context: EnvironmentErrorContext | None = None,
        correlation_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> EnvironmentErrorEvent:
        """Append an environment error and evaluate the alert conditions it can trigger.

        ``context`` defaults to a runtime-access context in the configured
        environment; ``correlation_id`` defaults to the active correlation id.
        Unrecognised type or severity names are recorded as ``unknown`` or
        ``medium``, keeping the raw names in ``metadata``.
        """
        kind, raw_type = parse_member(EnvironmentErrorType, error_type)
        level, raw_severity = parse_severity(severity)
        if raw_type is not None or raw_severity is not None:
            logger.warning(
                f"Unrecognised environment error input recorded as {kind.value}/{level.value}",
                operation="environment_error",
                raw_error_type=raw_type,
                raw_severity=raw_severity,
            )
            metadata = annotate_unrecognised(
                metadata, error_type=raw_type, severity=raw_severity
            )
        now = self._clock.now()
        if context is None:
            context = EnvironmentErrorContext(
                operation=EnvironmentOperation.RUNTIME_ACCESS, environment=self.environment
            )

        event = self._errors.append(
            EnvironmentErrorEvent(
                event_id=make_id(kind.value, now),
                type=kind,
                severity=level,
                timestamp=now,
                variable=variable,
                message=message,
                context=context,
                correlation_id=correlation_id or get_correlation_id() or None,
                metadata=freeze(metadata),
            )
        )

        prefix = "Environment Warning" if level is Severity.LOW else "Environment Error"
        logger.log(
            _LOG_LEVELS[level],
            f"{prefix}: {message}",
            operation="environment_error",
            event_id=event.event_id,
            error_type=kind.value,
            severity=level.value,
            variable=variable,
            context=context.to_dict(),
            correlation_id=event.correlation_id,
        )

        try:
            if level >= Severity.HIGH:
                self._mirror_to_security(event)
            self._evaluate_error(event)
        except Exception as exc:
            log_error_with_context(
                exc,
                "environment_alert_evaluation",
                component=SOURCE,
                logger=logger,
                event_id=event.event_id,
            )
        return event

    def record_missing_variable(
        self,
        variable: str,
        context: EnvironmentErrorContext | None = None,
        severity: Severity | str = Severity.HIGH,
    ) -> EnvironmentErrorEvent:
        return self.record_environment_error(
            EnvironmentErrorType.MISSING_VARIABLE,
            severity,
            f"Required environment variable {variable} is not set",
            variable=variable,
            context=context,
        )

    def record_validation_failure(
        self,
        variable: str,
        reason: str,
        context: EnvironmentErrorContext | None = None,
    ) -> EnvironmentErrorEvent:
        return self.record_environment_error(
            EnvironmentErrorType.VALIDATION_FAILED,
            Severity.MEDIUM,
            f"Environment variable {variable} validation failed: {reason}",
            variable=variable,
            context=context,
        )

    def record_client_initialization_failure(
        self,
        error_kind: str,
        message: str,
        context: EnvironmentErrorContext | None = None,
    ) -> EnvironmentErrorEvent:
        return self.record_environment_error(
            EnvironmentErrorType.CLIENT_INIT_FAILED,
            Severity.HIGH,
            f"Client initialization failed: {message}",
            context=context,
            metadata={
                "error_type": error_kind,
                "retry_attempt": context.retry_attempt if context is not None else None,
            },
        )

    def record_network_error(
        self,
        operation: str,
        message: str,
        context: EnvironmentErrorContext | None = None,
    ) -> EnvironmentErrorEvent:
        return self.record_environment_error(
            EnvironmentErrorType.NETWORK_ERROR,
            Severity.MEDIUM,
            f"Network error during {operation}: {message}",
            context=context,
            metadata={"operation": operation},
        )

    # ------------------------------------------------------------------
    # Client initialization tracking
    # ------------------------------------------------------------------

    def start_client_initialization_tracking(self, correlation_id: str | None = None) -> str:
        now = self._clock.now()
        return self._client_inits.start(
            ClientInitializationMetrics(
                attempt_id=make_id("client_init", now),
                started_at=now,
                environment=self.environment,
                correlation_id=correlation_id or get_correlation_id() or None,
            )
        )

    def complete_client_initialization_tracking(
        self,
        attempt_id: str,
        success: bool,
        retry_count: int = 0,
        error_type: str | None = None,
        error_message: str | None = None,
    ) -> ClientInitializationMetrics | None:
        """Close an attempt; unknown or evicted ids are ignored."""
        now = self._clock.now()

        def _finish(record: ClientInitializationMetrics) -> None:
            record.ended_at = now
            record.duration_ms = _elapsed_ms(record.started_at, now)
            record.success = success
            record.retry_count = retry_count
            record.error_type = error_type
            record.error_message = error_message

        record = self._client_inits.complete(attempt_id, _finish)
        if record is None:
            logger.debug(
                f"Ignoring completion for unknown client initialization {attempt_id}",
                operation="client_initialization",
            )
            return None

        if success:
            logger.info(
                "Client initialization succeeded",
                operation="client_initialization",
                attempt_id=attempt_id,
                duration_ms=record.duration_ms,
                retry_count=retry_count,
            )
            return record

        logger.warning(
            "Client initialization failed",
            operation="client_initialization",
            attempt_id=attempt_id,
            duration_ms=record.duration_ms,
            retry_count=retry_count,
            error_type=error_type,
            error_message=error_message,
        )
        try:
            self._check_client_init_failure_rate(now)
        except Exception as exc:
            log_error_with_context(
                exc,
                "client_initialization_alert_evaluation",
                component=SOURCE,
                logger=logger,
                attempt_id=attempt_id,
            )
        return record

    @contextlib.contextmanager
    def track_client_initialization(
        self, correlation_id: str | None = None
    ) -> Generator[ClientInitializationAttempt, None, None]:
        """Track the enclosed block as one client initialization attempt.

        The attempt succeeds when the block exits normally. An exception marks
        it failed with the exception's type and message and is re-raised.
        """
        attempt = ClientInitializationAttempt(
            self.start_client_initialization_tracking(correlation_id)
        )
        try:
            yield attempt
        except Exception as exc:
            self.complete_client_initialization_tracking(
                attempt.attempt_id,
                False,
                retry_count=attempt.retry_count,
                error_type=type(exc).__name__,
                error_message=str(exc),
            )
            raise
        self.complete_client_initialization_tracking(
            attempt.attempt_id, True, retry_count=attempt.retry_count
        )

    # ------------------------------------------------------------------
    # Environment validation tracking
    # ------------------------------------------------------------------

    def start_environment_validation_tracking(self, correlation_id: str | None = None) -> str:
        now = self._clock.now()
        return self._validations.start(
            EnvironmentValidationMetrics(
                validation_id=make_id("env_validation", now),
                started_at=now,
                environment=self.environment,
                correlation_id=correlation_id or get_correlation_id() or None,
            )
        )

    def complete_environment_validation_tracking(
        self,
        validation_id: str,
        total_variables: int,
        valid_variables: int,
        invalid_variables: int,
        missing_variables: int,
    ) -> EnvironmentValidationMetrics | None:
        """Close a validation run; unknown or evicted ids are ignored."""
        now = self._clock.now()

        def _finish(record: EnvironmentValidationMetrics) -> None:
            record.ended_at = now
            record.duration_ms = _elapsed_ms(record.started_at, now)
            record.total_variables = total_variables
            record.valid_variables = valid_variables
            record.invalid_variables = invalid_variables
            record.missing_variables = missing_variables

        record = self._validations.complete(validation_id, _finish)
        if record is None:
            logger.debug(
                f"Ignoring completion for unknown environment validation {validation_id}",
                operation="environment_validation",
            )
            return None

        logger.info(
            "Environment validation completed",
            operation="environment_validation",
            validation_id=validation_id,
            duration_ms=record.duration_ms,
            total_variables=total_variables,
            valid_variables=valid_variables,
            invalid_variables=invalid_variables,
            missing_variables=missing_variables,
        )
        if record.duration_ms is not None and record.duration_ms > self.settings.slow_validation_ms:
            try:
                self._check_validation_performance(now)
            except Exception as exc:
                log_error_with_context(
                    exc,
                    "validation_alert_evaluation",
                    component=SOURCE,
                    logger=logger,
                    validation_id=validation_id,
                )
        return record

    @contextlib.contextmanager
    def track_environment_validation(
        self, correlation_id: str | None = None
    ) -> Generator[EnvironmentValidationRun, None, None]:
        """Track the enclosed block as one validation run.

        The counts set on the yielded handle are recorded when the block exits,
        whether or not it raised.
        """
        run = EnvironmentValidationRun(self.start_environment_validation_tracking(correlation_id))
        try:
            yield run
        finally:
            self.complete_environment_validation_tracking(
                run.validation_id,
                run.total_variables,
                run.valid_variables,
                run.invalid_variables,
                run.missing_variables,
            )

    # ------------------------------------------------------------------
    # Consumer API
    # ------------------------------------------------------------------

    def get_recent_errors(self, limit: int = 100) -> list[EnvironmentErrorEvent]:
        return self._errors.recent(limit)

    def get_client_initialization_metrics(self, limit: int = 50) -> list[ClientInitializationMetrics]:
        return self._client_inits.recent(limit)

    def get_environment_validation_metrics(
        self, limit: int = 50
    ) -> list[EnvironmentValidationMetrics]:
        return self._validations.recent(limit)

    def get_active_alerts(self) -> list[Alert]:
        return self.alerts.get_active_alerts()

    def get_alert(self, alert_id: str) -> Alert | None:
        return self.alerts.get_alert(alert_id)

    def resolve_alert(self, alert_id: str) -> bool:
        return self.alerts.resolve_alert(alert_id)

    def get_monitoring_stats(self, window_minutes: float = 60) -> MonitoringStats:
        cutoff = minutes_before(self._clock.now(), window_minutes)
        return build_monitoring_stats(
            self._errors.since(cutoff),
            self._client_inits.completed_since(cutoff),
            self._validations.completed_since(cutoff),
            active_alerts=self.alerts.active_count(),
            environment=self.environment,
            window_minutes=window_minutes,
        )

    def get_system_health(self) -> SystemHealth:
        latest = self._errors.latest()
        return assess_health(
            events_count=len(self._errors),
            capacity=self._errors.capacity,
            active_alerts=self.alerts.get_active_alerts(),
            last_event_time=latest.timestamp if latest is not None else None,
            degraded_alert_count=self.settings.degraded_alert_count,
            memory_warning_ratio=self.settings.memory_warning_ratio,
        )

    def clear(self) -> None:
        """Drop all errors, metrics, detection state and alerts."""
        self._errors.clear()
        self._client_inits.clear()
        self._validations.clear()
        self._analyzer.clear()
        self.alerts.clear()

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def _mirror_to_security(self, event: EnvironmentErrorEvent) -> None:
        if self.security_monitor is None:
            return
        context = event.context
        self.security_monitor.record_event(
            SecurityEventType.SUSPICIOUS_ACCESS,
            Severity.CRITICAL if event.severity is Severity.CRITICAL else Severity.HIGH,
            user_id=context.user_id,
            session_id=context.session_id,
            endpoint=context.endpoint,
            source=SOURCE,
            details={
                "error_type": event.type.value,
                "variable": event.variable,
                "operation": context.operation.value,
                "caller": context.caller,
                "message": event.message,
            },
            metadata={
                "correlation_id": event.correlation_id,
                "environment": context.environment,
                "retry_attempt": context.retry_attempt,
            },
        )

    def _evaluate_error(self, event: EnvironmentErrorEvent) -> None:
        rule = self.thresholds.environment_rule(REPEATED_FAILURES)
        detection = self._analyzer.observe(
            (REPEATED_FAILURES, event.type, event.actor_key, event.severity),
            event.timestamp,
            rule,
        )
        if detection.triggered:
            self._upsert(
                AlertType.REPEATED_FAILURES,
                event.type.value,
                event.actor_key,
                Severity.CRITICAL if event.severity is Severity.CRITICAL else Severity.HIGH,
                count=detection.count,
                rule=rule,
                details={
                    **self._error_details(event),
                    "first_occurrence": detection.first_seen.isoformat(),
                    **detection.as_details(),
                },
            )

        if (
            event.type is EnvironmentErrorType.MISSING_VARIABLE
            and event.severity is Severity.CRITICAL
        ):
            rule = self.thresholds.environment_rule(CRITICAL_MISSING_VARIABLE)
            detection = self._analyzer.observe(
                (CRITICAL_MISSING_VARIABLE, event.actor_key), event.timestamp, rule
            )
            if detection.triggered:
                self._upsert(
                    AlertType.CRITICAL_MISSING_VARIABLE,
                    event.type.value,
                    event.actor_key,
                    Severity.CRITICAL,
                    count=detection.count,
                    rule=rule,
                    details=self._error_details(event),
                )

    def _check_client_init_failure_rate(self, now: datetime) -> None:
        rule = self.thresholds.environment_rule(CLIENT_INIT_FAILURE_RATE)
        attempts = self._client_inits.completed_since(minutes_before(now, rule.window_minutes))
        failed = sum(1 for attempt in attempts if not attempt.success)
        if failed < rule.threshold:
            return
        self._upsert(
            AlertType.CLIENT_INIT_FAILURE_RATE,
            EnvironmentErrorType.CLIENT_INIT_FAILED.value,
            CLIENT_INITIALIZATION_ACTOR,
            Severity.CRITICAL,
            count=failed,
            rule=rule,
            details={
                "failed_attempts": failed,
                "total_attempts": len(attempts),
                "success_rate": success_rate(attempts),
            },
        )

    def _check_validation_performance(self, now: datetime) -> None:
        rule = self.thresholds.environment_rule(VALIDATION_PERFORMANCE_DEGRADATION)
        limit_ms = self.settings.slow_validation_ms
        slow = [
            run.duration_ms
            for run in self._validations.completed_since(minutes_before(now, rule.window_minutes))
            if run.duration_ms is not None and run.duration_ms > limit_ms
        ]
        if len(slow) < rule.threshold:
            return
        self._upsert(
            AlertType.VALIDATION_PERFORMANCE_DEGRADATION,
            EnvironmentOperation.STARTUP_VALIDATION.value,
            ENVIRONMENT_VALIDATION_ACTOR,
            Severity.MEDIUM,
            count=len(slow),
            rule=rule,
            details={
                "slow_validations": len(slow),
                "slow_validation_ms": limit_ms,
                "max_duration_ms": max(slow),
            },
        )

    def _upsert(
        self,
        alert_type: AlertType,
        event_type: str,
        actor_key: str,
        severity: Severity,
        *,
        count: int,
        rule: ThresholdRule,
        details: Mapping[str, Any],
    ) -> None:
        update = self.alerts.upsert(
            alert_type,
            event_type,
            actor_key,
            severity,
            count=count,
            threshold=rule.threshold,
            window_minutes=rule.window_minutes,
            source=SOURCE,
            details=details,
        )
        if not update.needs_dispatch:
            return
        alert = update.alert
        logger.error(
            f"Environment alert {'escalated' if update.escalated else 'raised'}: {alert.title}",
            operation="environment_alert",
            alert_id=alert.alert_id,
            alert_type=alert.alert_type.value,
            severity=alert.severity.value,
            count=alert.count,
            window_minutes=alert.window_minutes,
            details=alert.details,
        )
        self.dispatcher.dispatch_nowait(alert)

    @staticmethod
    def _error_details(event: EnvironmentErrorEvent) -> dict[str, Any]:
        return {
            "variable": event.variable,
            "caller": event.context.caller,
            "operation": event.context.operation.value,
            "severity": event.severity.value,
            "message": event.message,
        }


def _elapsed_ms(started_at: datetime, ended_at: datetime) -> float:
    return max(0.0, (ended_at - started_at).total_seconds() * 1000)


__all__ = [
    "EnvironmentMonitor",
    "ClientInitializationAttempt",
    "EnvironmentValidationRun",
]
