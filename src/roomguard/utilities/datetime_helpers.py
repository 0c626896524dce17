"""UTC datetime helpers.

Event timestamps, window cut-offs and alert times are always aware UTC
datetimes; naive input is taken to be UTC already.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso() -> str:
    """Return current UTC time as ISO 8601 string with +00:00 suffix."""
    return utc_now().isoformat()


def normalize_to_utc(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware UTC.

    Naive datetimes are assumed to already represent UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_iso_utc(dt: datetime | None) -> str | None:
    """Convert a datetime to an ISO 8601 UTC string, passing ``None`` through."""
    if dt is None:
        return None
    return normalize_to_utc(dt).isoformat()


def epoch_millis(dt: datetime) -> int:
    """Milliseconds since the Unix epoch for ``dt``."""
    return int(normalize_to_utc(dt).timestamp() * 1000)


def minutes_before(dt: datetime, minutes: float) -> datetime:
    """Return the start of a trailing window of ``minutes`` ending at ``dt``."""
    return dt - timedelta(minutes=minutes)


__all__ = [
    "utc_now",
    "utc_now_iso",
    "normalize_to_utc",
    "to_iso_utc",
    "epoch_millis",
    "minutes_before",
]
