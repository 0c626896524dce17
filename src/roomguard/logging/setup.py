"""Centralized logging setup for services embedding the monitors."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from roomguard.config.env_utils import first_env_value, get_env_bool, get_env_int
from roomguard.logging import DEFAULT_FORMAT
from roomguard.logging.json_formatter import StructuredJSONFormatterWithTimestamp

DEFAULT_LOG_DIR = Path("logs")


def _is_console_handler(handler: logging.Handler) -> bool:
    return (
        isinstance(handler, logging.StreamHandler)
        and not isinstance(handler, logging.FileHandler)
        and type(handler).__name__ not in {"LogCaptureHandler", "_LiveLoggingNullHandler"}
    )


def _file_targets(logger: logging.Logger) -> set[str]:
    return {
        str(getattr(handler, "baseFilename"))
        for handler in logger.handlers
        if hasattr(handler, "baseFilename")
    }


def configure_logging(log_dir: Path | str | None = None, *, console: bool = True) -> Path:
    """
    Configure console, rotating file, and JSON-lines logging.

    Safe to call more than once; handlers already targeting the same files are
    not duplicated.

    Args:
        log_dir: Directory for log files. Defaults to ``ROOMGUARD_LOG_DIR`` or ``./logs``.
        console: Attach a console StreamHandler when none is present.

    Returns:
        The directory log files are written to.
    """

    resolved_dir = Path(log_dir or first_env_value("ROOMGUARD_LOG_DIR") or DEFAULT_LOG_DIR)
    resolved_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    existing_targets = _file_targets(root)

    if console and not any(_is_console_handler(h) for h in root.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root.addHandler(console_handler)

    max_bytes = get_env_int("ROOMGUARD_LOG_MAX_BYTES", default=50 * 1024 * 1024) or 0
    backups = get_env_int("ROOMGUARD_LOG_BACKUP_COUNT", default=10) or 0

    general_path = str((resolved_dir / "monitoring.log").resolve())
    if general_path not in existing_targets:
        general_handler = logging.handlers.RotatingFileHandler(
            general_path, maxBytes=max_bytes, backupCount=backups
        )
        general_handler.setLevel(logging.INFO)
        general_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root.addHandler(general_handler)

    security_path = str((resolved_dir / "security_events.log").resolve())
    if security_path not in existing_targets:
        security_handler = logging.handlers.RotatingFileHandler(
            security_path, maxBytes=max_bytes, backupCount=backups
        )
        security_handler.setLevel(logging.WARNING)
        security_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root.addHandler(security_handler)

    json_formatter = StructuredJSONFormatterWithTimestamp(ensure_ascii=False, sort_keys=True)
    json_path = str((resolved_dir / "monitoring.jsonl").resolve())
    package_logger = logging.getLogger("roomguard")
    if json_path not in _file_targets(package_logger):
        json_handler = logging.handlers.RotatingFileHandler(
            json_path, maxBytes=max_bytes, backupCount=backups
        )
        json_handler.setLevel(logging.DEBUG)
        json_handler.setFormatter(json_formatter)
        package_logger.addHandler(json_handler)

    if get_env_bool("ROOMGUARD_DEBUG"):
        package_logger.setLevel(logging.DEBUG)

    return resolved_dir


__all__ = ["configure_logging", "DEFAULT_LOG_DIR"]
