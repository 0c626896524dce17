"""
Rolling-window threshold detection and burst pattern labelling.

Each ``(event type, actor key)`` series keeps the timestamps of its matches
inside the rule window, so counting a new occurrence only touches the expired
head of its own series instead of rescanning the event store.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Hashable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from roomguard.config.thresholds import PatternThresholds, ThresholdRule

SINGLE_EVENT = "single_event"


@dataclass(frozen=True, slots=True)
class Detection:
    """Outcome of observing one occurrence against its rule."""

    count: int
    threshold: int
    window_minutes: float
    first_seen: datetime
    pattern: str | None = None

    @property
    def triggered(self) -> bool:
        return self.count >= self.threshold

    def as_details(self) -> dict[str, object]:
        return {
            "pattern": self.pattern,
            "threshold": self.threshold,
            "window_minutes": self.window_minutes,
            "window_count": self.count,
        }


@dataclass(slots=True)
class _Series:
    window: timedelta
    timestamps: deque[datetime] = field(default_factory=deque)


class PatternAnalyzer:
    """Counts matches per key inside a trailing window and labels their cadence.

    Args:
        patterns: Mean inter-arrival cut-offs for the pattern labels.
        sample_size: Most recent matches considered when labelling a burst.
        max_series_length: Upper bound on timestamps kept per key.
        sweep_interval: Observations between sweeps of idle keys.
    """

    def __init__(
        self,
        patterns: PatternThresholds | None = None,
        *,
        sample_size: int = 50,
        max_series_length: int = 10_000,
        sweep_interval: int = 1_000,
    ) -> None:
        self.patterns = patterns or PatternThresholds()
        self.sample_size = sample_size
        self.max_series_length = max_series_length
        self.sweep_interval = sweep_interval
        self._series: dict[Hashable, _Series] = {}
        self._observations = 0
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._series)

    def observe(self, key: Hashable, at: datetime, rule: ThresholdRule) -> Detection:
        window = timedelta(minutes=rule.window_minutes)
        with self._lock:
            series = self._series.get(key)
            if series is None or series.window != window:
                series = _Series(window=window, timestamps=deque(maxlen=self.max_series_length))
                self._series[key] = series

            timestamps = series.timestamps
            timestamps.append(at)
            self._expire(timestamps, at - window)

            detection = Detection(
                count=len(timestamps),
                threshold=rule.threshold,
                window_minutes=rule.window_minutes,
                first_seen=timestamps[0],
                pattern=self._classify(timestamps),
            )

            self._observations += 1
            if self._observations % self.sweep_interval == 0:
                self.sweep(at)
        return detection

    def count(self, key: Hashable, now: datetime) -> int:
        """Current in-window count for ``key`` without recording an occurrence."""
        with self._lock:
            series = self._series.get(key)
            if series is None:
                return 0
            self._expire(series.timestamps, now - series.window)
            return len(series.timestamps)

    def sweep(self, now: datetime) -> int:
        """Drop keys with no occurrence inside their window; returns how many were dropped."""
        with self._lock:
            idle = [
                key
                for key, series in self._series.items()
                if not series.timestamps or series.timestamps[-1] < now - series.window
            ]
            for key in idle:
                del self._series[key]
        return len(idle)

    def clear(self) -> None:
        with self._lock:
            self._series.clear()
            self._observations = 0

    @staticmethod
    def _expire(timestamps: deque[datetime], cutoff: datetime) -> None:
        while timestamps and timestamps[0] < cutoff:
            timestamps.popleft()

    def _classify(self, timestamps: deque[datetime]) -> str | None:
        sampled = min(len(timestamps), self.sample_size)
        if sampled <= 1:
            return SINGLE_EVENT
        return classify_pattern([timestamps[-sampled], timestamps[-1]], self.patterns, sampled)


def classify_pattern(
    timestamps: list[datetime], patterns: PatternThresholds, sample_count: int | None = None
) -> str | None:
    """Label a run of ordered timestamps by its mean inter-arrival gap.

    The mean of consecutive gaps telescopes to the overall span, so only the
    first and last timestamps matter; pass ``sample_count`` when the list holds
    just those two endpoints of a longer run.
    """
    count = sample_count if sample_count is not None else len(timestamps)
    if count <= 1 or not timestamps:
        return SINGLE_EVENT
    span_ms = (timestamps[-1] - timestamps[0]).total_seconds() * 1000
    return patterns.classify(span_ms / (count - 1))


__all__ = ["Detection", "PatternAnalyzer", "classify_pattern", "SINGLE_EVENT"]
