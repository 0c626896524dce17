"""Heuristic detection of suspicious request and data access patterns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from roomguard.monitoring.events import REDACTED, SecurityEvent
from roomguard.monitoring.registry import get_security_monitor
from roomguard.monitoring.security_monitor import SecurityMonitor
from roomguard.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="security")

AUTOMATED_ACCESS_PATTERN = "automated_access_pattern"
UNAUTHORIZED_SERVICE_ROLE_ACCESS = "unauthorized_service_role_access"

SUSPICIOUS_USER_AGENTS = ("bot", "crawler", "scanner", "curl", "wget")
SENSITIVE_VARIABLES = frozenset(
    {"SUPABASE_SERVICE_ROLE_KEY", "DATABASE_URL", "JWT_SECRET", "API_SECRET_KEY"}
)

AccessType = Literal["public", "server", "service_role"]


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    score: int
    indicators: tuple[str, ...]

    @property
    def suspicious(self) -> bool:
        return self.score >= AccessRiskScorer.SUSPICIOUS_SCORE


class AccessRiskScorer:
    """Score a request by how automated or out-of-bounds it looks."""

    SUSPICIOUS_SCORE = 40

    @classmethod
    def assess(
        cls,
        *,
        endpoint: str,
        user_id: str | None = None,
        user_agent: str | None = None,
        request_count: int | None = None,
        window_minutes: float | None = None,
    ) -> RiskAssessment:
        score = 0
        indicators: list[str] = []

        # Requests per minute
        if request_count and window_minutes:
            rate = request_count / window_minutes
            if rate > 10:
                score += 30
                indicators.append("high_request_rate")
            if rate > 20:
                score += 30
                indicators.append("very_high_request_rate")

        if user_agent and any(marker in user_agent.lower() for marker in SUSPICIOUS_USER_AGENTS):
            score += 25
            indicators.append("automated_user_agent")

        if "/admin/" in endpoint:
            score += 20
            indicators.append("admin_endpoint")

        if not user_id and "/api/" in endpoint:
            score += 15
            indicators.append("anonymous_api_access")

        return RiskAssessment(score=score, indicators=tuple(indicators))

    @classmethod
    def detect_suspicious_access(
        cls,
        *,
        endpoint: str,
        user_id: str | None = None,
        session_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        request_count: int | None = None,
        window_minutes: float | None = None,
        monitor: SecurityMonitor | None = None,
    ) -> SecurityEvent | None:
        """
        Record a ``suspicious_access`` event when the request scores as suspicious.

        Returns:
            The recorded event, or None when the request looks ordinary
        """
        assessment = cls.assess(
            endpoint=endpoint,
            user_id=user_id,
            user_agent=user_agent,
            request_count=request_count,
            window_minutes=window_minutes,
        )
        if not assessment.suspicious:
            return None

        return (monitor or get_security_monitor()).record_suspicious_access(
            endpoint=endpoint,
            pattern=AUTOMATED_ACCESS_PATTERN,
            risk_score=assessment.score,
            user_id=user_id,
            session_id=session_id,
            ip_address=ip_address,
            user_agent=user_agent,
            indicators=assessment.indicators,
        )


def monitor_environment_access(
    variable: str,
    caller: str,
    access_type: AccessType,
    *,
    endpoint: str | None = None,
    user_id: str | None = None,
    monitor: SecurityMonitor | None = None,
) -> SecurityEvent | None:
    """Log reads of sensitive variables and flag service-role reads outside admin routes."""
    if variable not in SENSITIVE_VARIABLES:
        return None

    logger.warning(
        "Sensitive environment variable accessed",
        operation="environment_access",
        variable=variable,
        caller=caller,
        endpoint=endpoint,
        user_id=REDACTED if user_id else None,
        access_type=access_type,
    )

    if access_type != "service_role" or (endpoint and "/admin/" in endpoint):
        return None

    return (monitor or get_security_monitor()).record_suspicious_access(
        endpoint=endpoint or "unknown",
        pattern=UNAUTHORIZED_SERVICE_ROLE_ACCESS,
        risk_score=70,
        user_id=user_id,
        source="secure_environment_access",
        metadata={"variable": variable, "caller": caller},
    )


class DataIntegrityDetector:
    """Record data-integrity violations found by repository and validation code."""

    @classmethod
    def user_id_inconsistency(
        cls,
        *,
        table: str,
        operation: str,
        record_id: str,
        user_id: str | None = None,
        monitor: SecurityMonitor | None = None,
    ) -> SecurityEvent:
        event = (monitor or get_security_monitor()).record_data_integrity_violation(
            table=table,
            operation=operation,
            violation_type="user_id_inconsistency",
            user_id=user_id,
        )
        logger.error(
            "User id inconsistency detected",
            operation="data_integrity",
            table=table,
            db_operation=operation,
            record_id=record_id,
            expected_user_id=REDACTED,
            actual_user_id=REDACTED,
        )
        return event

    @classmethod
    def foreign_key_violation(
        cls,
        *,
        table: str,
        operation: str,
        constraint_name: str,
        user_id: str | None = None,
        monitor: SecurityMonitor | None = None,
    ) -> SecurityEvent:
        return (monitor or get_security_monitor()).record_data_integrity_violation(
            table=table,
            operation=operation,
            violation_type="foreign_key_violation",
            user_id=user_id,
            metadata={"constraint_name": constraint_name},
        )

    @classmethod
    def validation_failure(
        cls,
        *,
        table: str,
        operation: str,
        validation_type: str,
        field_name: str,
        user_id: str | None = None,
        monitor: SecurityMonitor | None = None,
    ) -> SecurityEvent:
        return (monitor or get_security_monitor()).record_data_integrity_violation(
            table=table,
            operation=operation,
            violation_type=f"validation_failure_{validation_type}",
            user_id=user_id,
            metadata={"field_name": field_name},
        )


__all__ = [
    "AUTOMATED_ACCESS_PATTERN",
    "UNAUTHORIZED_SERVICE_ROLE_ACCESS",
    "SENSITIVE_VARIABLES",
    "RiskAssessment",
    "AccessRiskScorer",
    "monitor_environment_access",
    "DataIntegrityDetector",
]
