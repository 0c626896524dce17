"""
Error hierarchy for the monitoring core.

Recording paths never raise these to producers; they surface at construction
time (bad configuration) or are logged by the dispatcher (delivery failures).
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


class MonitoringError(Exception):
    """Base class carrying an error code and key/value context for logs."""

    default_code: str | None = None
    recoverable = True

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code or type(self).__name__
        self.context: dict[str, Any] = dict(context or {})
        self.original_error = original_error
        self.timestamp = datetime.now(UTC)

    def add_context(self, **kwargs: Any) -> MonitoringError:
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
            "original_error": repr(self.original_error) if self.original_error else None,
        }


class ConfigurationError(MonitoringError):
    """Settings or threshold overrides that cannot be used; fatal at startup."""

    default_code = "CONFIG_ERROR"
    recoverable = False

    def __init__(self, message: str, config_key: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        if config_key:
            self.context["config_key"] = config_key


class DispatchError(MonitoringError):
    """A webhook rejected or failed to accept an alert payload."""

    default_code = "DISPATCH_ERROR"

    def __init__(
        self, message: str, url: str | None = None, status_code: int | None = None, **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)
        if url:
            self.context.update(url=url, status_code=status_code)


def handle_error(error: Exception, context: dict[str, Any] | None = None) -> MonitoringError:
    """Return ``error`` as a :class:`MonitoringError`, merging ``context`` into it."""
    if not isinstance(error, MonitoringError):
        return MonitoringError(
            str(error), error_code=type(error).__name__, context=context, original_error=error
        )
    if context:
        error.add_context(**context)
    return error


def log_error(error: MonitoringError, level: int = logging.ERROR) -> None:
    logger.log(
        level,
        f"{error.error_code}: {error.message}",
        extra={"component": "errors", "error_data": error.to_dict()},
    )


__all__ = [
    "MonitoringError",
    "ConfigurationError",
    "DispatchError",
    "handle_error",
    "log_error",
]
