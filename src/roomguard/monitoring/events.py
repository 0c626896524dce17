"""
Immutable event records ingested by the monitors.

Security events carry request identity (user, session, address) and a typed
details payload per event type; environment errors carry the variable and the
operation context they were raised from.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, TypeVar

from roomguard.monitoring.alert_types import Severity
from roomguard.utilities.datetime_helpers import to_iso_utc

UNKNOWN_ACTOR = "unknown"
REDACTED = "[REDACTED]"

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    """Read-only shallow copy of ``mapping`` (shared empty view for ``None``)."""
    if not mapping:
        return _EMPTY
    return MappingProxyType(dict(mapping))


E = TypeVar("E", bound=Enum)


def parse_member(enum_cls: type[E], value: E | str) -> tuple[E, str | None]:
    """Member named by ``value``, falling back to ``enum_cls.UNKNOWN``.

    The second item is the unrecognised raw value, or ``None`` when it matched.
    """
    try:
        return enum_cls(value), None
    except ValueError:
        return enum_cls["UNKNOWN"], str(value)


def parse_severity(value: Severity | str) -> tuple[Severity, str | None]:
    """Like :func:`parse_member`, with unrecognised severities recorded as medium."""
    try:
        return Severity.coerce(value), None
    except ValueError:
        return Severity.MEDIUM, str(value)


def annotate_unrecognised(
    metadata: Mapping[str, Any] | None, **raw_values: str | None
) -> Mapping[str, Any] | None:
    """``metadata`` plus an ``unrecognised_<name>`` entry per raw value that failed to parse."""
    notes = {f"unrecognised_{name}": raw for name, raw in raw_values.items() if raw is not None}
    if not notes:
        return metadata
    return {**(metadata or {}), **notes}


class SecurityEventType(Enum):
    AUTH_FAILURE = "auth_failure"
    SUSPICIOUS_ACCESS = "suspicious_access"
    PRIVILEGE_ESCALATION_ATTEMPT = "privilege_escalation_attempt"
    DATA_INTEGRITY_VIOLATION = "data_integrity_violation"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    API_ACCESS = "api_access"
    AUTHENTICATED_API_ACCESS = "authenticated_api_access"
    ANONYMOUS_API_ACCESS = "anonymous_api_access"
    ADMIN_OPERATION_ATTEMPT = "admin_operation_attempt"
    ADMIN_OPERATION_SUCCESS = "admin_operation_success"
    UNKNOWN = "unknown"


class EnvironmentErrorType(Enum):
    MISSING_VARIABLE = "missing_variable"
    INVALID_FORMAT = "invalid_format"
    VALIDATION_FAILED = "validation_failed"
    CLIENT_INIT_FAILED = "client_init_failed"
    NETWORK_ERROR = "network_error"
    CONFIGURATION_ERROR = "configuration_error"
    UNKNOWN = "unknown"


class EnvironmentOperation(Enum):
    STARTUP_VALIDATION = "startup_validation"
    CLIENT_INITIALIZATION = "client_initialization"
    RUNTIME_ACCESS = "runtime_access"
    HEALTH_CHECK = "health_check"


# Typed details payloads, one per security event variant.


@dataclass(frozen=True, slots=True)
class _Details:
    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True, slots=True)
class AuthFailureDetails(_Details):
    reason: str
    attempted_credentials: str | None = None

    @classmethod
    def build(cls, reason: str, attempted_credentials: str | None = None) -> AuthFailureDetails:
        """Never keep submitted credentials, only the fact that some were sent."""
        return cls(reason=reason, attempted_credentials=REDACTED if attempted_credentials else None)


@dataclass(frozen=True, slots=True)
class SuspiciousAccessDetails(_Details):
    pattern: str
    risk_score: int
    indicators: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class PrivilegeEscalationDetails(_Details):
    attempted_action: str
    current_role: str
    required_role: str


@dataclass(frozen=True, slots=True)
class DataIntegrityDetails(_Details):
    table: str
    operation: str
    violation_type: str
    affected_records: int = 1


@dataclass(frozen=True, slots=True)
class RateLimitDetails(_Details):
    request_count: int
    window_seconds: float
    limit: int


EventDetails = (
    AuthFailureDetails
    | SuspiciousAccessDetails
    | PrivilegeEscalationDetails
    | DataIntegrityDetails
    | RateLimitDetails
)

DETAILS_BY_TYPE: Mapping[SecurityEventType, type[_Details]] = MappingProxyType(
    {
        SecurityEventType.AUTH_FAILURE: AuthFailureDetails,
        SecurityEventType.SUSPICIOUS_ACCESS: SuspiciousAccessDetails,
        SecurityEventType.PRIVILEGE_ESCALATION_ATTEMPT: PrivilegeEscalationDetails,
        SecurityEventType.DATA_INTEGRITY_VIOLATION: DataIntegrityDetails,
        SecurityEventType.RATE_LIMIT_EXCEEDED: RateLimitDetails,
    }
)


def details_to_mapping(details: EventDetails | Mapping[str, Any] | None) -> Mapping[str, Any]:
    if details is None:
        return _EMPTY
    if isinstance(details, _Details):
        return freeze(details.to_dict())
    return freeze(details)


@dataclass(frozen=True, slots=True)
class SecurityEvent:
    event_id: str
    type: SecurityEventType
    severity: Severity
    timestamp: datetime
    user_id: str | None = None
    session_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    endpoint: str | None = None
    method: str | None = None
    source: str | None = None
    details: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    metadata: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)

    @property
    def actor_key(self) -> str:
        return self.user_id or self.ip_address or UNKNOWN_ACTOR

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.event_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "timestamp": to_iso_utc(self.timestamp),
            "user_id": self.user_id,
            "session_id": self.session_id,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "endpoint": self.endpoint,
            "method": self.method,
            "source": self.source,
            "details": dict(self.details),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True, slots=True)
class EnvironmentErrorContext:
    """Where an environment error surfaced."""

    operation: EnvironmentOperation
    caller: str | None = None
    environment: str | None = None
    endpoint: str | None = None
    user_id: str | None = None
    session_id: str | None = None
    retry_attempt: int | None = None
    previous_errors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"operation": self.operation.value}
        for key in ("caller", "environment", "endpoint", "user_id", "session_id", "retry_attempt"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        if self.previous_errors:
            payload["previous_errors"] = list(self.previous_errors)
        return payload


@dataclass(frozen=True, slots=True)
class EnvironmentErrorEvent:
    event_id: str
    type: EnvironmentErrorType
    severity: Severity
    timestamp: datetime
    variable: str | None
    message: str
    context: EnvironmentErrorContext
    correlation_id: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)

    @property
    def actor_key(self) -> str:
        return self.variable or self.context.caller or UNKNOWN_ACTOR

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.event_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "timestamp": to_iso_utc(self.timestamp),
            "variable": self.variable,
            "message": self.message,
            "context": self.context.to_dict(),
            "correlation_id": self.correlation_id,
            "metadata": dict(self.metadata),
        }


__all__ = [
    "UNKNOWN_ACTOR",
    "REDACTED",
    "freeze",
    "parse_member",
    "parse_severity",
    "annotate_unrecognised",
    "SecurityEventType",
    "EnvironmentErrorType",
    "EnvironmentOperation",
    "AuthFailureDetails",
    "SuspiciousAccessDetails",
    "PrivilegeEscalationDetails",
    "DataIntegrityDetails",
    "RateLimitDetails",
    "EventDetails",
    "DETAILS_BY_TYPE",
    "details_to_mapping",
    "SecurityEvent",
    "EnvironmentErrorContext",
    "EnvironmentErrorEvent",
]
