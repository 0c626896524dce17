"""
Monitoring-specific test helpers.

These utilities provide deterministic clocks, settings and alert channels so
monitoring tests can focus on behavioural coverage instead of wiring.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

import pytest

from roomguard.monitoring.alert_types import Alert, Severity
from roomguard.monitoring.alerts import AlertChannel, AlertDispatcher
from roomguard.monitoring.environment_monitor import EnvironmentMonitor
from roomguard.monitoring.security_monitor import SecurityMonitor
from roomguard.settings import MonitoringSettings
from roomguard.utilities.time_provider import FakeClock

EPOCH = datetime(2024, 6, 3, 9, 0, tzinfo=UTC)


class RecordingChannel(AlertChannel):
    """Alert channel that keeps every alert it receives."""

    def __init__(self, min_severity: Severity = Severity.LOW, *, external: bool = True) -> None:
        super().__init__(min_severity)
        self.external = external
        self.sent: list[Alert] = []

    async def _send_impl(self, alert: Alert) -> bool:
        self.sent.append(alert)
        return True


def make_settings(**overrides: Any) -> MonitoringSettings:
    """Settings isolated from the developer's environment and `.env` files."""
    values: dict[str, Any] = {"environment": "test"}
    values.update(overrides)
    return MonitoringSettings(_env_file=None, **values)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(EPOCH)


@pytest.fixture
def monitoring_settings() -> MonitoringSettings:
    return make_settings()


@pytest.fixture
def recording_channel() -> RecordingChannel:
    return RecordingChannel(Severity.CRITICAL)


@pytest.fixture
def dispatcher(recording_channel: RecordingChannel) -> Iterator[AlertDispatcher]:
    dispatcher = AlertDispatcher()
    dispatcher.add_channel("recording", recording_channel)
    yield dispatcher
    dispatcher.close()


@pytest.fixture
def security_monitor(
    monitoring_settings: MonitoringSettings, fake_clock: FakeClock, dispatcher: AlertDispatcher
) -> SecurityMonitor:
    return SecurityMonitor(monitoring_settings, clock=fake_clock, dispatcher=dispatcher)


@pytest.fixture
def environment_monitor(
    monitoring_settings: MonitoringSettings,
    fake_clock: FakeClock,
    dispatcher: AlertDispatcher,
    security_monitor: SecurityMonitor,
) -> EnvironmentMonitor:
    return EnvironmentMonitor(
        monitoring_settings,
        clock=fake_clock,
        dispatcher=dispatcher,
        security_monitor=security_monitor,
    )
