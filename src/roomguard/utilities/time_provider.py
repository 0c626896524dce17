"""Clock used by the monitors for timestamps, windows and durations.

Durations are measured as the difference of two ``now()`` readings so that a
``FakeClock`` drives window expiry and the tracked-operation timings alike.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable

from roomguard.utilities.datetime_helpers import normalize_to_utc, utc_now


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""


class SystemClock:
    """Wall clock."""

    def now(self) -> datetime:
        return utc_now()


class FakeClock:
    """Manually driven clock; time only moves through :meth:`advance` or :meth:`set_time`."""

    def __init__(self, start: datetime | None = None) -> None:
        self._current = normalize_to_utc(start) if start is not None else utc_now()

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float | timedelta) -> datetime:
        step = seconds if isinstance(seconds, timedelta) else timedelta(seconds=float(seconds))
        if step < timedelta(0):
            raise ValueError(f"Cannot move a FakeClock backwards (got {step})")
        self._current += step
        return self._current

    def set_time(self, value: datetime | float) -> None:
        """Jump to ``value``: a datetime or seconds since the epoch."""
        if isinstance(value, datetime):
            self._current = normalize_to_utc(value)
        else:
            self._current = datetime.fromtimestamp(float(value), UTC)


_SYSTEM_CLOCK = SystemClock()
_active: Clock = _SYSTEM_CLOCK


def get_clock() -> Clock:
    return _active


def set_clock(clock: Clock) -> None:
    """Install ``clock`` for monitors created without an explicit one."""
    global _active
    _active = clock


def reset_clock() -> None:
    global _active
    _active = _SYSTEM_CLOCK


__all__ = ["Clock", "SystemClock", "FakeClock", "get_clock", "set_clock", "reset_clock"]
