"""Tests for rolling-window counting and burst labelling."""

from datetime import timedelta

import pytest

from roomguard.config.thresholds import PatternThresholds, ThresholdRule
from roomguard.monitoring.analyzer import SINGLE_EVENT, PatternAnalyzer, classify_pattern
from tests.fixtures.monitoring import EPOCH

RULE = ThresholdRule(threshold=3, window_minutes=10)


class TestPatternAnalyzer:
    def test_counts_per_key(self):
        analyzer = PatternAnalyzer()
        analyzer.observe("alice", EPOCH, RULE)
        analyzer.observe("alice", EPOCH + timedelta(seconds=1), RULE)
        detection = analyzer.observe("bob", EPOCH + timedelta(seconds=2), RULE)

        assert detection.count == 1
        assert analyzer.count("alice", EPOCH + timedelta(seconds=2)) == 2
        assert len(analyzer) == 2

    def test_triggers_at_threshold(self):
        analyzer = PatternAnalyzer()
        detections = [
            analyzer.observe("alice", EPOCH + timedelta(seconds=i), RULE) for i in range(3)
        ]
        assert [d.triggered for d in detections] == [False, False, True]
        assert detections[-1].first_seen == EPOCH
        assert detections[-1].as_details()["window_count"] == 3

    def test_expires_matches_outside_window(self):
        analyzer = PatternAnalyzer()
        analyzer.observe("alice", EPOCH, RULE)
        analyzer.observe("alice", EPOCH + timedelta(minutes=1), RULE)
        detection = analyzer.observe("alice", EPOCH + timedelta(minutes=11), RULE)

        assert detection.count == 2
        assert detection.first_seen == EPOCH + timedelta(minutes=1)
        assert not detection.triggered

    def test_single_match_is_single_event(self):
        analyzer = PatternAnalyzer()
        assert analyzer.observe("alice", EPOCH, RULE).pattern == SINGLE_EVENT

    @pytest.mark.parametrize(
        ("gap", "expected"),
        [
            (timedelta(milliseconds=200), "rapid_succession"),
            (timedelta(seconds=5), "burst_pattern"),
            (timedelta(seconds=30), "sustained_attack"),
            (timedelta(minutes=2), None),
        ],
    )
    def test_pattern_from_mean_gap(self, gap, expected):
        analyzer = PatternAnalyzer()
        detection = None
        for i in range(3):
            detection = analyzer.observe("alice", EPOCH + gap * i, RULE)
        assert detection.pattern == expected

    def test_pattern_uses_most_recent_samples(self):
        analyzer = PatternAnalyzer(sample_size=3)
        rule = ThresholdRule(threshold=10, window_minutes=60)
        # Two slow matches followed by a rapid run.
        analyzer.observe("alice", EPOCH, rule)
        analyzer.observe("alice", EPOCH + timedelta(minutes=5), rule)
        start = EPOCH + timedelta(minutes=10)
        detection = None
        for i in range(3):
            detection = analyzer.observe("alice", start + timedelta(milliseconds=100 * i), rule)
        assert detection.count == 5
        assert detection.pattern == "rapid_succession"

    def test_sweep_drops_idle_keys(self):
        analyzer = PatternAnalyzer()
        analyzer.observe("alice", EPOCH, RULE)
        analyzer.observe("bob", EPOCH + timedelta(minutes=9), RULE)

        dropped = analyzer.sweep(EPOCH + timedelta(minutes=15))
        assert dropped == 1
        assert analyzer.count("alice", EPOCH + timedelta(minutes=15)) == 0
        assert analyzer.count("bob", EPOCH + timedelta(minutes=15)) == 1

    def test_clear(self):
        analyzer = PatternAnalyzer()
        analyzer.observe("alice", EPOCH, RULE)
        analyzer.clear()
        assert len(analyzer) == 0


class TestClassifyPattern:
    def test_empty_and_single(self):
        patterns = PatternThresholds()
        assert classify_pattern([], patterns) == SINGLE_EVENT
        assert classify_pattern([EPOCH], patterns) == SINGLE_EVENT

    def test_mean_gap_from_span(self):
        patterns = PatternThresholds()
        timestamps = [EPOCH, EPOCH + timedelta(seconds=1), EPOCH + timedelta(seconds=9)]
        # Mean gap of 4.5 s.
        assert classify_pattern(timestamps, patterns) == "burst_pattern"

    def test_custom_ladder(self):
        patterns = PatternThresholds(
            rapid_succession_ms=10, burst_pattern_ms=20, sustained_attack_ms=30
        )
        timestamps = [EPOCH, EPOCH + timedelta(milliseconds=25)]
        assert classify_pattern(timestamps, patterns) == "sustained_attack"
