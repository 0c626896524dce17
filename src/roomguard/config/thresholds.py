"""
Detection thresholds for the security and environment monitors.

Each rule says how many matching occurrences inside a trailing window raise
an alert. Defaults can be overridden from a YAML document of the form::

    security:
      auth_failure: {threshold: 5, window_minutes: 15}
    environment:
      repeated_failures: {threshold: 3, window_minutes: 10}
    patterns:
      rapid_succession_ms: 1000
    pattern_sample_size: 50
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from roomguard.errors import ConfigurationError
from roomguard.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="config")

# Environment rule names
REPEATED_FAILURES = "repeated_failures"
CRITICAL_MISSING_VARIABLE = "critical_missing_variable"
CLIENT_INIT_FAILURE_RATE = "client_init_failure_rate"
VALIDATION_PERFORMANCE_DEGRADATION = "validation_performance_degradation"


@dataclass(frozen=True, slots=True)
class ThresholdRule:
    """``threshold`` occurrences within ``window_minutes`` trigger an alert."""

    threshold: int
    window_minutes: float

    def __post_init__(self) -> None:
        if self.threshold < 1:
            raise ConfigurationError(
                f"threshold must be at least 1, got {self.threshold}", config_key="threshold"
            )
        if self.window_minutes <= 0:
            raise ConfigurationError(
                f"window_minutes must be positive, got {self.window_minutes}",
                config_key="window_minutes",
            )

    @property
    def window_seconds(self) -> float:
        return self.window_minutes * 60.0

    def to_dict(self) -> dict[str, Any]:
        return {"threshold": self.threshold, "window_minutes": self.window_minutes}


@dataclass(frozen=True, slots=True)
class PatternThresholds:
    """Mean inter-arrival cut-offs used to label a burst of matching events."""

    rapid_succession_ms: float = 1_000.0
    burst_pattern_ms: float = 10_000.0
    sustained_attack_ms: float = 60_000.0

    def __post_init__(self) -> None:
        if not 0 < self.rapid_succession_ms < self.burst_pattern_ms < self.sustained_attack_ms:
            raise ConfigurationError(
                "pattern cut-offs must be positive and strictly increasing",
                config_key="patterns",
            )

    def classify(self, mean_gap_ms: float) -> str | None:
        if mean_gap_ms < self.rapid_succession_ms:
            return "rapid_succession"
        if mean_gap_ms < self.burst_pattern_ms:
            return "burst_pattern"
        if mean_gap_ms < self.sustained_attack_ms:
            return "sustained_attack"
        return None


DEFAULT_SECURITY_RULES: Mapping[str, ThresholdRule] = MappingProxyType(
    {
        "auth_failure": ThresholdRule(5, 15),
        "suspicious_access": ThresholdRule(3, 10),
        "data_integrity_violation": ThresholdRule(1, 5),
        "rate_limit_exceeded": ThresholdRule(10, 5),
        "privilege_escalation_attempt": ThresholdRule(1, 1),
        "api_access": ThresholdRule(100, 5),
        "authenticated_api_access": ThresholdRule(200, 5),
        "anonymous_api_access": ThresholdRule(50, 5),
        "admin_operation_attempt": ThresholdRule(10, 10),
        "admin_operation_success": ThresholdRule(5, 5),
    }
)

DEFAULT_ENVIRONMENT_RULES: Mapping[str, ThresholdRule] = MappingProxyType(
    {
        REPEATED_FAILURES: ThresholdRule(3, 10),
        CRITICAL_MISSING_VARIABLE: ThresholdRule(1, 1),
        CLIENT_INIT_FAILURE_RATE: ThresholdRule(5, 15),
        VALIDATION_PERFORMANCE_DEGRADATION: ThresholdRule(3, 5),
    }
)


@dataclass(frozen=True, slots=True)
class ThresholdConfig:
    """Complete detection configuration handed to the analyzers."""

    security: Mapping[str, ThresholdRule] = field(default_factory=lambda: DEFAULT_SECURITY_RULES)
    environment: Mapping[str, ThresholdRule] = field(
        default_factory=lambda: DEFAULT_ENVIRONMENT_RULES
    )
    patterns: PatternThresholds = field(default_factory=PatternThresholds)
    pattern_sample_size: int = 50

    def __post_init__(self) -> None:
        if self.pattern_sample_size < 2:
            raise ConfigurationError(
                "pattern_sample_size must be at least 2", config_key="pattern_sample_size"
            )

    def security_rule(self, event_type: str) -> ThresholdRule | None:
        return self.security.get(event_type)

    def environment_rule(self, name: str) -> ThresholdRule:
        return self.environment.get(name) or DEFAULT_ENVIRONMENT_RULES[name]

    def with_overrides(self, overrides: Mapping[str, Any]) -> ThresholdConfig:
        """Return a copy with the rules present in ``overrides`` replaced."""
        security = _merge_rules(self.security, overrides.get("security"), "security")
        environment = _merge_rules(self.environment, overrides.get("environment"), "environment")

        patterns = self.patterns
        raw_patterns = overrides.get("patterns")
        if raw_patterns is not None:
            if not isinstance(raw_patterns, Mapping):
                raise ConfigurationError("patterns must be a mapping", config_key="patterns")
            try:
                patterns = replace(
                    patterns, **{str(k): float(v) for k, v in raw_patterns.items()}
                )
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(
                    f"Invalid pattern thresholds: {exc}", config_key="patterns"
                ) from exc

        try:
            sample_size = int(overrides.get("pattern_sample_size", self.pattern_sample_size))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"Invalid pattern_sample_size: {exc}", config_key="pattern_sample_size"
            ) from exc
        return ThresholdConfig(
            security=security,
            environment=environment,
            patterns=patterns,
            pattern_sample_size=sample_size,
        )


def _merge_rules(
    base: Mapping[str, ThresholdRule], raw: Any, section: str
) -> Mapping[str, ThresholdRule]:
    if raw is None:
        return base
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{section} must be a mapping", config_key=section)

    merged = dict(base)
    for name, spec in raw.items():
        if not isinstance(spec, Mapping):
            raise ConfigurationError(
                f"{section}.{name} must be a mapping", config_key=f"{section}.{name}"
            )
        current = merged.get(str(name))
        try:
            threshold = int(spec.get("threshold", current.threshold if current else 0))
            window = float(spec.get("window_minutes", current.window_minutes if current else 0))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"Invalid rule {section}.{name}: {exc}", config_key=f"{section}.{name}"
            ) from exc
        merged[str(name)] = ThresholdRule(threshold, window)
    return MappingProxyType(merged)


def load_threshold_overrides(
    path: Path | str, base: ThresholdConfig | None = None
) -> ThresholdConfig:
    """Load a YAML override document on top of ``base`` (defaults when omitted).

    Environment variables in the document are expanded before parsing.
    """
    config_path = Path(path)
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(
            f"Cannot read thresholds file {config_path}: {exc}", config_key="thresholds_file"
        ) from exc

    try:
        document = yaml.safe_load(os.path.expandvars(raw_text)) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            f"Invalid YAML in {config_path}: {exc}", config_key="thresholds_file"
        ) from exc

    if not isinstance(document, Mapping):
        raise ConfigurationError(
            f"{config_path} must contain a mapping at the top level",
            config_key="thresholds_file",
        )

    config = (base or ThresholdConfig()).with_overrides(document)
    logger.info(
        "Loaded detection threshold overrides",
        operation="load_thresholds",
        path=str(config_path),
        sections=sorted(str(key) for key in document),
    )
    return config


def load_thresholds(path: Path | str | None) -> ThresholdConfig:
    """Defaults, or defaults with the overrides in ``path`` when one is configured."""
    if path is None:
        return ThresholdConfig()
    return load_threshold_overrides(path)


__all__ = [
    "REPEATED_FAILURES",
    "CRITICAL_MISSING_VARIABLE",
    "CLIENT_INIT_FAILURE_RATE",
    "VALIDATION_PERFORMANCE_DEGRADATION",
    "ThresholdRule",
    "PatternThresholds",
    "ThresholdConfig",
    "DEFAULT_SECURITY_RULES",
    "DEFAULT_ENVIRONMENT_RULES",
    "load_threshold_overrides",
    "load_thresholds",
]
