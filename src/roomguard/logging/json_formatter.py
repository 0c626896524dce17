"""JSON-lines formatting for monitoring logs.

Every record becomes one JSON object: the standard record fields, the active
correlation context, then whatever the caller passed through ``extra``. Values
under credential-like keys are masked at any nesting depth before encoding.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .correlation import get_log_context

MASK = "[REDACTED]"

# Substrings of field names whose values never reach a log file.
SENSITIVE_MARKERS = (
    "password",
    "passphrase",
    "secret",
    "token",
    "credential",
    "authorization",
    "cookie",
    "api_key",
    "service_role",
)

_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def is_sensitive(key: object) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in SENSITIVE_MARKERS)


def redact(value: Any) -> Any:
    """Copy of ``value`` with credential-like mapping entries masked."""
    if isinstance(value, Mapping):
        return {k: MASK if is_sensitive(k) else redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


class MonitoringJSONEncoder(json.JSONEncoder):
    """Encodes datetimes, enums, read-only mappings and sets found in log fields."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Mapping):
            return dict(obj)
        if isinstance(obj, (set, frozenset)):
            return sorted(obj, key=str)
        return super().default(obj)


class StructuredJSONFormatter(logging.Formatter):
    """Formats records as single-line JSON documents."""

    include_time_fields = False

    def __init__(self, *, ensure_ascii: bool = False, sort_keys: bool = False) -> None:
        super().__init__()
        self.ensure_ascii = ensure_ascii
        self.sort_keys = sort_keys

    def format(self, record: logging.LogRecord) -> str:
        entry = redact(self.build_entry(record))
        try:
            return self._dumps(entry)
        except (TypeError, ValueError) as exc:
            return self._dumps(
                {
                    "timestamp": entry["timestamp"],
                    "level": entry["level"],
                    "logger": entry["logger"],
                    "message": f"JSON serialization failed: {exc}",
                    "original_message": entry["message"],
                },
                default=str,
            )

    def build_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        created = datetime.fromtimestamp(record.created, UTC)
        entry: dict[str, Any] = {
            "timestamp": created.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName or "<module>",
            "line": record.lineno,
            "process": record.process,
            "thread": record.thread,
        }
        if self.include_time_fields:
            entry.update(
                unix_timestamp=record.created,
                date=created.strftime("%Y-%m-%d"),
                time=created.strftime("%H:%M:%S"),
                timezone="UTC",
            )
        entry.update(get_log_context())

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc_value) if exc_value else "",
                "module": getattr(exc_type, "__module__", ""),
            }
        if record.stack_info:
            entry["stack_trace"] = record.stack_info

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            entry.setdefault(key, value)
        return entry

    def _dumps(self, entry: dict[str, Any], **kwargs: Any) -> str:
        if "default" not in kwargs:
            kwargs["cls"] = MonitoringJSONEncoder
        return json.dumps(entry, ensure_ascii=self.ensure_ascii, sort_keys=self.sort_keys, **kwargs)


class StructuredJSONFormatterWithTimestamp(StructuredJSONFormatter):
    """Adds epoch seconds plus separate date and time fields for log search."""

    include_time_fields = True


__all__ = [
    "MASK",
    "SENSITIVE_MARKERS",
    "is_sensitive",
    "redact",
    "MonitoringJSONEncoder",
    "StructuredJSONFormatter",
    "StructuredJSONFormatterWithTimestamp",
]
