"""Tests for start/complete operation tracking."""

from datetime import timedelta

import pytest

from roomguard.monitoring.metrics_store import (
    ClientInitializationMetrics,
    EnvironmentValidationMetrics,
    TrackedOperationStore,
)
from tests.fixtures.monitoring import EPOCH


def _attempt(attempt_id: str, minutes: float = 0) -> ClientInitializationMetrics:
    return ClientInitializationMetrics(
        attempt_id=attempt_id,
        started_at=EPOCH + timedelta(minutes=minutes),
        environment="test",
    )


class TestTrackedOperationStore:
    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            TrackedOperationStore(0)

    def test_start_then_complete(self):
        store: TrackedOperationStore[ClientInitializationMetrics] = TrackedOperationStore(10)
        attempt_id = store.start(_attempt("a1"))
        assert attempt_id == "a1"

        def finish(record: ClientInitializationMetrics) -> None:
            record.ended_at = record.started_at + timedelta(milliseconds=120)
            record.duration_ms = 120.0
            record.success = True

        result = store.complete("a1", finish)
        assert result is not None
        assert result.completed is True
        assert result.success is True
        assert store.get("a1").duration_ms == 120.0

    def test_complete_unknown_id_is_noop(self):
        store: TrackedOperationStore[ClientInitializationMetrics] = TrackedOperationStore(10)
        store.start(_attempt("a1"))
        calls = []
        assert store.complete("missing", calls.append) is None
        assert calls == []
        assert store.get("a1").completed is False

    def test_evicts_oldest_record(self):
        store: TrackedOperationStore[ClientInitializationMetrics] = TrackedOperationStore(2)
        for attempt_id in ("a1", "a2", "a3"):
            store.start(_attempt(attempt_id))

        assert len(store) == 2
        assert store.get("a1") is None
        assert [r.attempt_id for r in store.recent(10)] == ["a2", "a3"]
        # Evicted ids complete as a no-op.
        assert store.complete("a1", lambda r: None) is None

    def test_readers_receive_copies(self):
        store: TrackedOperationStore[ClientInitializationMetrics] = TrackedOperationStore(5)
        store.start(_attempt("a1"))
        copy = store.recent(1)[0]
        copy.success = True
        assert store.get("a1").success is False

    def test_completed_since_filters_pending_and_old(self):
        store: TrackedOperationStore[ClientInitializationMetrics] = TrackedOperationStore(10)
        store.start(_attempt("old", minutes=0))
        store.start(_attempt("new", minutes=30))
        store.start(_attempt("pending", minutes=31))

        def finish(record: ClientInitializationMetrics) -> None:
            record.ended_at = record.started_at

        store.complete("old", finish)
        store.complete("new", finish)

        recent = store.completed_since(EPOCH + timedelta(minutes=15))
        assert [r.attempt_id for r in recent] == ["new"]


class TestMetricRecords:
    def test_validation_to_dict(self):
        record = EnvironmentValidationMetrics(
            validation_id="env_validation_1",
            started_at=EPOCH,
            environment="test",
            total_variables=10,
            valid_variables=8,
            invalid_variables=1,
            missing_variables=1,
        )
        payload = record.to_dict()
        assert payload["validation_id"] == "env_validation_1"
        assert payload["ended_at"] is None
        assert payload["missing_variables"] == 1
        assert record.completed is False

    def test_client_init_to_dict(self):
        payload = _attempt("client_init_1").to_dict()
        assert payload["attempt_id"] == "client_init_1"
        assert payload["success"] is False
        assert payload["started_at"].startswith("2024-06-03T09:00:00")
