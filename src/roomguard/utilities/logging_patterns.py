"""
Structured logging patterns shared by the monitors.

Keyword arguments passed to a :class:`StructuredLogger` call end up as
attributes on the ``LogRecord`` (through ``extra``), where the JSON formatter
picks them up as fields.
"""

import logging
from typing import Any

_PASSTHROUGH = frozenset({"exc_info", "stack_info", "stacklevel"})


class StructuredLogger:
    """Thin wrapper that turns keyword arguments into ``extra`` fields."""

    def __init__(self, name: str, component: str | None = None):
        self.logger = logging.getLogger(name)
        self.component = component
        self.name = name

    def _split(self, kwargs: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
        passthrough = {key: value for key, value in kwargs.items() if key in _PASSTHROUGH}
        extra = {key: value for key, value in kwargs.items() if key not in _PASSTHROUGH}
        if self.component:
            extra.setdefault("component", self.component)
        return passthrough, extra

    def log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        passthrough, extra = self._split(kwargs)
        # +1 so records point at the caller rather than this wrapper
        passthrough["stacklevel"] = passthrough.get("stacklevel", 1) + 1
        self.logger.log(level, msg, *args, extra=extra, **passthrough)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._at(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._at(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._at(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._at(logging.ERROR, msg, args, kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._at(logging.CRITICAL, msg, args, kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        kwargs["exc_info"] = True
        self._at(logging.ERROR, msg, args, kwargs)

    def _at(self, level: int, msg: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        if not self.logger.isEnabledFor(level):
            return
        passthrough, extra = self._split(kwargs)
        # +2 skips this helper and the level method that called it
        passthrough["stacklevel"] = passthrough.get("stacklevel", 1) + 2
        self.logger.log(level, msg, *args, extra=extra, **passthrough)


def get_logger(name: str, component: str | None = None) -> StructuredLogger:
    return StructuredLogger(name, component=component)


def _ensure_structured(logger: Any, default_name: str) -> StructuredLogger:
    if logger is None:
        return get_logger(default_name)
    if isinstance(logger, StructuredLogger):
        return logger
    return StructuredLogger(getattr(logger, "name", default_name))


def log_system_health(
    status: str,
    component: str | None = None,
    metrics: dict[str, Any] | None = None,
    logger: Any = None,
) -> None:
    """Log a health status; anything other than ``healthy`` is a warning."""
    logger = _ensure_structured(logger, "health")

    context: dict[str, Any] = {"operation": "health_check", "status": status}
    if component:
        context["component"] = component
    if metrics:
        context.update(metrics)

    level = logging.INFO if status == "healthy" else logging.WARNING
    logger.log(level, f"System health: {status}", **context)


def log_error_with_context(
    exc: Exception, operation: str, component: str | None = None, logger: Any = None, **kwargs: Any
) -> None:
    """Log ``exc`` at error level with the failing operation attached."""
    logger = _ensure_structured(logger, "error")

    context: dict[str, Any] = {"operation": operation, "error_type": type(exc).__name__}
    if component:
        context["component"] = component
    context.update(kwargs)
    logger.error(str(exc), **context)


__all__ = [
    "StructuredLogger",
    "get_logger",
    "log_system_health",
    "log_error_with_context",
]
