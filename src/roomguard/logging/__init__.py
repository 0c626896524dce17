"""Logging entry points for processes embedding the monitors.

``configure`` is the one-liner for scripts and local runs. Long-running
services use :func:`roomguard.logging.setup.configure_logging`, which adds
rotating text and JSON-lines files.
"""

from __future__ import annotations

import logging
from typing import Literal

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

LevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure(level: LevelName | str | int = "INFO", *, json_lines: bool = False) -> None:
    """Send log records to stderr, as text or (with ``json_lines``) one JSON object per line."""
    numeric_level = level if isinstance(level, int) else logging.getLevelName(level.upper())

    handlers: list[logging.Handler] | None = None
    if json_lines:
        from roomguard.logging.json_formatter import StructuredJSONFormatter

        stream = logging.StreamHandler()
        stream.setFormatter(StructuredJSONFormatter())
        handlers = [stream]

    logging.basicConfig(level=numeric_level, format=DEFAULT_FORMAT, handlers=handlers)


__all__ = ["DEFAULT_FORMAT", "configure"]
