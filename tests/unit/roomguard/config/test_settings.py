"""Tests for environment-driven monitoring settings."""

import pytest

from roomguard.errors import ConfigurationError
from roomguard.settings import MonitoringSettings, get_settings


def test_defaults():
    settings = MonitoringSettings(_env_file=None, environment="development")
    assert settings.dispatch_min_severity == "critical"
    assert settings.max_security_events == 10_000
    assert settings.max_environment_errors == 5_000
    assert settings.slow_validation_ms == 5_000
    assert settings.slack_webhook_url is None
    assert settings.alert_webhook_urls == []
    assert settings.thresholds_file is None


def test_environment_variables(monkeypatch):
    monkeypatch.setenv("SLACK_WEBHOOK_URL", "https://hooks.slack.test/T000")
    monkeypatch.setenv("ROOMGUARD_ALERT_WEBHOOK_URLS", '["https://hooks.example.test/a"]')
    monkeypatch.setenv("ROOMGUARD_DISPATCH_MIN_SEVERITY", " HIGH ")
    monkeypatch.setenv("ROOMGUARD_MAX_SECURITY_EVENTS", "500")

    settings = MonitoringSettings(_env_file=None)
    assert settings.environment == "test"
    assert settings.slack_webhook_url == "https://hooks.slack.test/T000"
    assert settings.alert_webhook_urls == ["https://hooks.example.test/a"]
    assert settings.dispatch_min_severity == "high"
    assert settings.max_security_events == 500


def test_app_env_alias(monkeypatch):
    monkeypatch.delenv("ROOMGUARD_ENVIRONMENT")
    monkeypatch.setenv("APP_ENV", "production")
    assert MonitoringSettings(_env_file=None).environment == "production"


def test_dotenv_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("ROOMGUARD_SLOW_VALIDATION_MS=2500\n", encoding="utf-8")
    settings = get_settings((str(env_file),))
    assert settings.slow_validation_ms == 2500


def test_invalid_configuration_raises_configuration_error(monkeypatch):
    monkeypatch.setenv("ROOMGUARD_MAX_SECURITY_EVENTS", "0")
    with pytest.raises(ConfigurationError):
        get_settings()


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
