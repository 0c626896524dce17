"""Process-wide default monitors, built lazily on first use."""

from __future__ import annotations

import threading

from roomguard.monitoring.alerts import AlertDispatcher
from roomguard.monitoring.environment_monitor import EnvironmentMonitor
from roomguard.monitoring.security_monitor import SecurityMonitor
from roomguard.monitoring.supervisor import MonitoringSupervisor
from roomguard.settings import get_settings

_lock = threading.RLock()
_dispatcher: AlertDispatcher | None = None
_security_monitor: SecurityMonitor | None = None
_environment_monitor: EnvironmentMonitor | None = None


def get_dispatcher() -> AlertDispatcher:
    global _dispatcher
    with _lock:
        if _dispatcher is None:
            _dispatcher = AlertDispatcher.from_settings(get_settings())
        return _dispatcher


def get_security_monitor() -> SecurityMonitor:
    global _security_monitor
    with _lock:
        if _security_monitor is None:
            _security_monitor = SecurityMonitor(get_settings(), dispatcher=get_dispatcher())
        return _security_monitor


def get_environment_monitor() -> EnvironmentMonitor:
    global _environment_monitor
    with _lock:
        if _environment_monitor is None:
            _environment_monitor = EnvironmentMonitor(
                get_settings(),
                dispatcher=get_dispatcher(),
                security_monitor=get_security_monitor(),
            )
        return _environment_monitor


def create_supervisor() -> MonitoringSupervisor:
    settings = get_settings()
    return MonitoringSupervisor(
        get_security_monitor(),
        get_environment_monitor(),
        interval_seconds=settings.health_check_interval_seconds,
        memory_warning_ratio=settings.memory_warning_ratio,
    )


def reset_monitoring() -> None:
    """Drop the default monitors and stop the dispatcher's background loop.

    The next accessor call rebuilds everything from current settings.
    """
    global _dispatcher, _security_monitor, _environment_monitor
    with _lock:
        dispatcher = _dispatcher
        _dispatcher = None
        _security_monitor = None
        _environment_monitor = None
    if dispatcher is not None:
        dispatcher.close()


__all__ = [
    "get_dispatcher",
    "get_security_monitor",
    "get_environment_monitor",
    "create_supervisor",
    "reset_monitoring",
]
