"""
Module-level recording and query functions bound to the default monitors.

Request handlers import these instead of holding monitor instances::

    from roomguard.monitoring import api as monitoring

    monitoring.record_auth_failure(endpoint="/api/login", reason="bad password",
                                   ip_address=request.remote)
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any

from roomguard.monitoring.alert_types import Alert, Severity
from roomguard.monitoring.environment_monitor import (
    ClientInitializationAttempt,
    EnvironmentValidationRun,
)
from roomguard.monitoring.events import (
    EnvironmentErrorContext,
    EnvironmentErrorEvent,
    EnvironmentErrorType,
    SecurityEvent,
    SecurityEventType,
)
from roomguard.monitoring.health import SystemHealth
from roomguard.monitoring.metrics_store import (
    ClientInitializationMetrics,
    EnvironmentValidationMetrics,
)
from roomguard.monitoring.registry import get_environment_monitor, get_security_monitor
from roomguard.monitoring.stats import MonitoringStats, SecurityStats
from roomguard.monitoring.supervisor import get_dashboard_snapshot as _dashboard_snapshot

# Security producers


def record_event(
    event_type: SecurityEventType | str, severity: Severity | str, **fields: Any
) -> SecurityEvent:
    return get_security_monitor().record_event(event_type, severity, **fields)


def record_auth_failure(**fields: Any) -> SecurityEvent:
    return get_security_monitor().record_auth_failure(**fields)


def record_suspicious_access(**fields: Any) -> SecurityEvent:
    return get_security_monitor().record_suspicious_access(**fields)


def record_privilege_escalation_attempt(**fields: Any) -> SecurityEvent:
    return get_security_monitor().record_privilege_escalation_attempt(**fields)


def record_data_integrity_violation(**fields: Any) -> SecurityEvent:
    return get_security_monitor().record_data_integrity_violation(**fields)


def record_rate_limit_exceeded(**fields: Any) -> SecurityEvent:
    return get_security_monitor().record_rate_limit_exceeded(**fields)


def record_api_access(**fields: Any) -> SecurityEvent:
    return get_security_monitor().record_api_access(**fields)


# Environment producers


def record_environment_error(
    error_type: EnvironmentErrorType | str,
    severity: Severity | str,
    message: str,
    **fields: Any,
) -> EnvironmentErrorEvent:
    return get_environment_monitor().record_environment_error(
        error_type, severity, message, **fields
    )


def record_missing_variable(
    variable: str,
    context: EnvironmentErrorContext | None = None,
    severity: Severity | str = Severity.HIGH,
) -> EnvironmentErrorEvent:
    return get_environment_monitor().record_missing_variable(variable, context, severity)


def record_validation_failure(
    variable: str, reason: str, context: EnvironmentErrorContext | None = None
) -> EnvironmentErrorEvent:
    return get_environment_monitor().record_validation_failure(variable, reason, context)


def record_client_initialization_failure(
    error_kind: str, message: str, context: EnvironmentErrorContext | None = None
) -> EnvironmentErrorEvent:
    return get_environment_monitor().record_client_initialization_failure(
        error_kind, message, context
    )


def record_network_error(
    operation: str, message: str, context: EnvironmentErrorContext | None = None
) -> EnvironmentErrorEvent:
    return get_environment_monitor().record_network_error(operation, message, context)


def start_client_initialization_tracking(correlation_id: str | None = None) -> str:
    return get_environment_monitor().start_client_initialization_tracking(correlation_id)


def complete_client_initialization_tracking(
    attempt_id: str,
    success: bool,
    retry_count: int = 0,
    error_type: str | None = None,
    error_message: str | None = None,
) -> ClientInitializationMetrics | None:
    return get_environment_monitor().complete_client_initialization_tracking(
        attempt_id, success, retry_count, error_type, error_message
    )


def start_environment_validation_tracking(correlation_id: str | None = None) -> str:
    return get_environment_monitor().start_environment_validation_tracking(correlation_id)


def complete_environment_validation_tracking(
    validation_id: str,
    total_variables: int,
    valid_variables: int,
    invalid_variables: int,
    missing_variables: int,
) -> EnvironmentValidationMetrics | None:
    return get_environment_monitor().complete_environment_validation_tracking(
        validation_id, total_variables, valid_variables, invalid_variables, missing_variables
    )


def track_client_initialization(
    correlation_id: str | None = None,
) -> AbstractContextManager[ClientInitializationAttempt]:
    return get_environment_monitor().track_client_initialization(correlation_id)


def track_environment_validation(
    correlation_id: str | None = None,
) -> AbstractContextManager[EnvironmentValidationRun]:
    return get_environment_monitor().track_environment_validation(correlation_id)


# Consumers


def get_recent_events(limit: int = 100) -> list[SecurityEvent]:
    return get_security_monitor().get_recent_events(limit)


def get_recent_errors(limit: int = 100) -> list[EnvironmentErrorEvent]:
    return get_environment_monitor().get_recent_errors(limit)


def get_active_alerts() -> list[Alert]:
    """Active alerts of both monitors, security first."""
    security_alerts = get_security_monitor().get_active_alerts()
    return security_alerts + get_environment_monitor().get_active_alerts()


def get_alert(alert_id: str) -> Alert | None:
    return get_security_monitor().get_alert(alert_id) or get_environment_monitor().get_alert(
        alert_id
    )


def resolve_alert(alert_id: str) -> bool:
    """Resolve ``alert_id`` in whichever monitor owns it."""
    if get_security_monitor().resolve_alert(alert_id):
        return True
    return get_environment_monitor().resolve_alert(alert_id)


def get_security_stats(window_minutes: float = 60) -> SecurityStats:
    return get_security_monitor().get_security_stats(window_minutes)


def get_monitoring_stats(window_minutes: float = 60) -> MonitoringStats:
    return get_environment_monitor().get_monitoring_stats(window_minutes)


def get_client_initialization_metrics(limit: int = 50) -> list[ClientInitializationMetrics]:
    return get_environment_monitor().get_client_initialization_metrics(limit)


def get_environment_validation_metrics(limit: int = 50) -> list[EnvironmentValidationMetrics]:
    return get_environment_monitor().get_environment_validation_metrics(limit)


def get_system_health() -> SystemHealth:
    """Health of the security monitor; see :func:`get_environment_health` for the other."""
    return get_security_monitor().get_system_health()


def get_environment_health() -> SystemHealth:
    return get_environment_monitor().get_system_health()


def get_dashboard_snapshot(window_minutes: float = 60) -> dict[str, Any]:
    return _dashboard_snapshot(get_security_monitor(), get_environment_monitor(), window_minutes)
