"""
Shared fixtures that isolate monitoring state between tests.
"""

import pytest

from roomguard.logging.correlation import set_correlation_id, set_domain_context
from roomguard.monitoring.registry import reset_monitoring
from roomguard.settings import get_settings
from roomguard.utilities.time_provider import reset_clock


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_correlation_context():
    """Reset correlation context before and after each test to prevent pollution."""
    set_correlation_id("")
    set_domain_context({})

    yield

    set_correlation_id("")
    set_domain_context({})


@pytest.fixture(autouse=True)
def reset_monitoring_state(monkeypatch):
    """Give every test fresh default monitors built from a clean environment."""
    for name in ("SLACK_WEBHOOK_URL", "APP_ENV", "ROOMGUARD_ALERT_WEBHOOK_URLS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ROOMGUARD_ENVIRONMENT", "test")
    get_settings.cache_clear()
    reset_monitoring()

    yield

    reset_monitoring()
    reset_clock()
    get_settings.cache_clear()
