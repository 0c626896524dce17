"""Typed configuration backed by environment variables."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from roomguard.errors import ConfigurationError

SeverityName = Literal["low", "medium", "high", "critical"]

_DEFAULT_ENV_FILES: tuple[Path, ...] = (
    Path(".env"),
    Path(".env.local"),
)


class MonitoringSettings(BaseSettings):
    """Monitoring configuration loaded from the environment and optional `.env` files."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="ROOMGUARD_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("environment", "ROOMGUARD_ENVIRONMENT", "APP_ENV"),
        description="Deployment environment label attached to alerts and stats.",
    )
    slack_webhook_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("slack_webhook_url", "SLACK_WEBHOOK_URL"),
        description="Slack-compatible incoming webhook for alert delivery.",
    )
    alert_webhook_urls: list[str] = Field(
        default_factory=list,
        description="Additional generic webhooks receiving the alert JSON document.",
    )
    dispatch_min_severity: SeverityName = Field(
        default="critical",
        description="Lowest alert severity forwarded to external webhooks.",
    )
    webhook_timeout_seconds: float = Field(default=5.0, gt=0)

    max_security_events: int = Field(default=10_000, gt=0)
    max_environment_errors: int = Field(default=5_000, gt=0)
    max_metrics: int = Field(default=2_000, gt=0)

    slow_validation_ms: float = Field(
        default=5_000.0,
        gt=0,
        description="Validation runs slower than this count toward performance degradation.",
    )
    degraded_alert_count: int = Field(
        default=5,
        ge=0,
        description="More active alerts than this marks a monitor as degraded.",
    )
    memory_warning_ratio: float = Field(default=0.9, gt=0, le=1)
    health_check_interval_seconds: float = Field(default=300.0, gt=0)

    thresholds_file: Path | None = Field(
        default=None,
        description="Optional YAML file overriding the built-in detection thresholds.",
    )

    @field_validator("dispatch_min_severity", mode="before")
    @classmethod
    def _normalise_severity(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


def _existing_env_files() -> list[str]:
    return [str(path) for path in _DEFAULT_ENV_FILES if path.exists()]


@lru_cache
def get_settings(_env_files: Sequence[str] | None = None) -> MonitoringSettings:
    """Load settings once per process, respecting `.env` fallbacks."""
    env_files = list(_env_files) if _env_files is not None else _existing_env_files()
    try:
        if env_files:
            return MonitoringSettings(_env_file=env_files)
        return MonitoringSettings()
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid monitoring configuration: {exc}", original_error=exc
        ) from exc


__all__ = ["MonitoringSettings", "SeverityName", "get_settings"]
