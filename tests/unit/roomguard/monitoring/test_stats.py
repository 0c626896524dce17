"""Tests for the statistics rollups."""

from datetime import timedelta

from roomguard.monitoring.alert_types import Severity
from roomguard.monitoring.events import (
    EnvironmentErrorContext,
    EnvironmentErrorEvent,
    EnvironmentErrorType,
    EnvironmentOperation,
    SecurityEvent,
    SecurityEventType,
)
from roomguard.monitoring.metrics_store import (
    ClientInitializationMetrics,
    EnvironmentValidationMetrics,
)
from roomguard.monitoring.stats import (
    build_monitoring_stats,
    build_security_stats,
    safe_mean,
    success_rate,
)
from tests.fixtures.monitoring import EPOCH


def _security_event(kind: SecurityEventType, severity: Severity) -> SecurityEvent:
    return SecurityEvent(event_id="e", type=kind, severity=severity, timestamp=EPOCH)


def _attempt(success: bool, duration_ms: float) -> ClientInitializationMetrics:
    return ClientInitializationMetrics(
        attempt_id="a",
        started_at=EPOCH,
        environment="test",
        ended_at=EPOCH + timedelta(milliseconds=duration_ms),
        duration_ms=duration_ms,
        success=success,
    )


class TestHelpers:
    def test_safe_mean_empty(self):
        assert safe_mean([]) == 0.0
        assert safe_mean(iter([2.0, 4.0])) == 3.0

    def test_success_rate(self):
        assert success_rate([]) == 0.0
        attempts = [_attempt(True, 10), _attempt(False, 10), _attempt(True, 10), _attempt(True, 10)]
        assert success_rate(attempts) == 75.0


class TestSecurityStats:
    def test_empty_window(self):
        stats = build_security_stats([], active_alerts=0, window_minutes=60)
        assert stats.total_events == 0
        assert stats.events_by_type == {}
        assert stats.events_by_severity == {}

    def test_tallies(self):
        events = [
            _security_event(SecurityEventType.AUTH_FAILURE, Severity.MEDIUM),
            _security_event(SecurityEventType.AUTH_FAILURE, Severity.MEDIUM),
            _security_event(SecurityEventType.PRIVILEGE_ESCALATION_ATTEMPT, Severity.CRITICAL),
        ]
        stats = build_security_stats(events, active_alerts=2, window_minutes=30)
        assert stats.total_events == 3
        assert stats.events_by_type == {"auth_failure": 2, "privilege_escalation_attempt": 1}
        assert stats.events_by_severity == {"medium": 2, "critical": 1}
        assert stats.to_dict()["active_alerts"] == 2


class TestMonitoringStats:
    def test_no_records_is_zero_not_nan(self):
        stats = build_monitoring_stats(
            [], [], [], active_alerts=0, environment="test", window_minutes=60
        )
        assert stats.total_errors == 0
        assert stats.client_initialization_success_rate == 0
        assert stats.average_validation_duration == 0
        assert stats.average_client_init_duration == 0

    def test_rates_and_averages(self):
        error = EnvironmentErrorEvent(
            event_id="e",
            type=EnvironmentErrorType.MISSING_VARIABLE,
            severity=Severity.HIGH,
            timestamp=EPOCH,
            variable="DATABASE_URL",
            message="missing",
            context=EnvironmentErrorContext(operation=EnvironmentOperation.STARTUP_VALIDATION),
        )
        validations = [
            EnvironmentValidationMetrics(
                validation_id=f"v{i}",
                started_at=EPOCH,
                environment="test",
                ended_at=EPOCH,
                duration_ms=duration,
            )
            for i, duration in enumerate((100.0, 300.0))
        ]
        stats = build_monitoring_stats(
            [error],
            [_attempt(True, 50), _attempt(False, 150)],
            validations,
            active_alerts=1,
            environment="production",
            window_minutes=60,
        )
        assert stats.errors_by_type == {"missing_variable": 1}
        assert stats.errors_by_severity == {"high": 1}
        assert stats.client_initialization_success_rate == 50.0
        assert stats.average_client_init_duration == 100.0
        assert stats.average_validation_duration == 200.0
        assert stats.client_initialization_attempts == 2
        assert stats.environment_validations == 2
        assert stats.to_dict()["environment"] == "production"
