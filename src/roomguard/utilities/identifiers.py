"""Identifier generation for events, alerts, and tracked operations."""

from __future__ import annotations

import secrets
import string
from datetime import datetime

from roomguard.utilities.datetime_helpers import epoch_millis

_ALPHABET = string.digits + string.ascii_lowercase


def random_suffix(length: int = 9) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def make_id(prefix: str, at: datetime) -> str:
    """Build ``{prefix}_{epoch_ms}_{suffix}``.

    The millisecond component keeps ids roughly sortable; the random suffix
    keeps ids unique within the same millisecond.
    """
    return f"{prefix}_{epoch_millis(at)}_{random_suffix()}"


__all__ = ["make_id", "random_suffix"]
