"""Tests for keyed alert state."""

import pytest

from roomguard.monitoring.alert_manager import AlertManager
from roomguard.monitoring.alert_types import AlertType, Severity
from roomguard.utilities.time_provider import FakeClock


@pytest.fixture
def manager(fake_clock: FakeClock) -> AlertManager:
    return AlertManager(fake_clock, environment="test")


def _upsert(
    manager: AlertManager,
    actor: str = "user123",
    severity: Severity = Severity.MEDIUM,
    **kwargs,
):
    return manager.upsert(AlertType.REPEATED_FAILURES, "auth_failure", actor, severity, **kwargs)


class TestAlertManager:
    def test_create_then_update(self, manager, fake_clock):
        alert, created, _ = _upsert(manager, count=5, threshold=5, window_minutes=15)
        assert created is True
        assert alert.count == 5
        assert alert.first_seen == alert.last_seen
        assert alert.environment == "test"
        assert alert.alert_id.startswith("alert_")

        fake_clock.advance(30)
        updated, created, _ = _upsert(manager, count=6)
        assert created is False
        assert updated.alert_id == alert.alert_id
        assert updated.count == 6
        assert updated.last_seen > updated.first_seen
        assert len(manager.get_active_alerts()) == 1

    def test_count_increments_without_explicit_count(self, manager):
        _upsert(manager)
        alert, _, _ = _upsert(manager)
        assert alert.count == 2

    def test_severity_only_escalates(self, manager):
        _upsert(manager, severity=Severity.HIGH)
        alert, _, escalated = _upsert(manager, severity=Severity.LOW)
        assert alert.severity is Severity.HIGH
        assert escalated is False
        update = _upsert(manager, severity=Severity.CRITICAL)
        assert update.alert.severity is Severity.CRITICAL
        assert update.escalated is True
        assert update.needs_dispatch is True

    def test_count_never_decreases(self, manager):
        _upsert(manager, count=5)
        alert, _, _ = _upsert(manager, count=3)
        assert alert.count == 6
        alert, _, _ = _upsert(manager, count=9)
        assert alert.count == 9

    def test_details_merge(self, manager):
        _upsert(manager, details={"pattern": "burst_pattern", "endpoint": "/api/login"})
        alert, _, _ = _upsert(manager, details={"pattern": "rapid_succession"})
        assert alert.details == {"pattern": "rapid_succession", "endpoint": "/api/login"}

    def test_distinct_actors_get_distinct_alerts(self, manager):
        first, _, _ = _upsert(manager, actor="user123")
        second, created, _ = _upsert(manager, actor="user456")
        assert created is True
        assert first.alert_id != second.alert_id
        assert [a.actor_key for a in manager.get_active_alerts()] == ["user123", "user456"]

    def test_resolve_is_monotonic(self, manager):
        alert, _, _ = _upsert(manager)
        assert manager.resolve_alert(alert.alert_id) is True
        assert manager.resolve_alert(alert.alert_id) is False
        assert manager.resolve_alert("alert_unknown") is False
        assert manager.get_active_alerts() == []

        resolved = manager.get_alert(alert.alert_id)
        assert resolved.resolved is True
        assert resolved.resolved_at is not None

    def test_resolved_key_can_raise_again(self, manager):
        alert, _, _ = _upsert(manager)
        manager.resolve_alert(alert.alert_id)
        fresh, created, _ = _upsert(manager)
        assert created is True
        assert fresh.alert_id != alert.alert_id
        assert manager.get_alert(alert.alert_id).resolved is True

    def test_resolved_retention(self, fake_clock):
        manager = AlertManager(fake_clock, resolved_retention=2)
        ids = []
        for actor in ("a", "b", "c"):
            alert, _, _ = _upsert(manager, actor=actor)
            manager.resolve_alert(alert.alert_id)
            ids.append(alert.alert_id)

        assert manager.get_alert(ids[0]) is None
        assert manager.get_alert(ids[2]) is not None

    def test_readers_get_snapshots(self, manager):
        alert, _, _ = _upsert(manager, details={"pattern": "burst_pattern"})
        alert.details["pattern"] = "tampered"
        alert.count = 99
        stored = manager.get_alert(alert.alert_id)
        assert stored.details["pattern"] == "burst_pattern"
        assert stored.count == 1

    def test_active_count_by_severity(self, manager):
        _upsert(manager, actor="a", severity=Severity.LOW)
        _upsert(manager, actor="b", severity=Severity.CRITICAL)
        assert manager.active_count() == 2
        assert manager.active_count(Severity.HIGH) == 1

    def test_clear(self, manager):
        alert, _, _ = _upsert(manager)
        manager.clear()
        assert manager.get_active_alerts() == []
        assert manager.get_alert(alert.alert_id) is None
