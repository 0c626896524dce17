"""
Runtime security and environment monitoring.

Two in-process monitors record events into bounded stores, detect threshold
breaches per actor, keep keyed alert state, and forward critical alerts to
webhooks without blocking the caller.
"""

from roomguard.monitoring.alert_types import Alert, AlertType, Severity
from roomguard.monitoring.alerts import AlertDispatcher, SlackChannel, WebhookChannel
from roomguard.monitoring.environment_monitor import EnvironmentMonitor
from roomguard.monitoring.events import (
    EnvironmentErrorContext,
    EnvironmentErrorType,
    EnvironmentOperation,
    SecurityEventType,
)
from roomguard.monitoring.health import HealthStatus, SystemHealth
from roomguard.monitoring.registry import (
    get_environment_monitor,
    get_security_monitor,
    reset_monitoring,
)
from roomguard.monitoring.security_monitor import SecurityMonitor
from roomguard.monitoring.supervisor import MonitoringSupervisor, get_dashboard_snapshot

__all__ = [
    "Alert",
    "AlertType",
    "Severity",
    "AlertDispatcher",
    "SlackChannel",
    "WebhookChannel",
    "EnvironmentMonitor",
    "EnvironmentErrorContext",
    "EnvironmentErrorType",
    "EnvironmentOperation",
    "SecurityEventType",
    "HealthStatus",
    "SystemHealth",
    "SecurityMonitor",
    "MonitoringSupervisor",
    "get_dashboard_snapshot",
    "get_environment_monitor",
    "get_security_monitor",
    "reset_monitoring",
]
