"""Tests for alert channels and the fire-and-forget dispatcher."""

import asyncio
import logging
import time
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from roomguard.monitoring.alert_types import Alert, AlertType, Severity
from roomguard.monitoring.alerts import (
    AlertDispatcher,
    HttpAlertChannel,
    LogChannel,
    SlackChannel,
    WebhookChannel,
)
from tests.fixtures.monitoring import EPOCH, RecordingChannel, make_settings


def _alert(severity: Severity = Severity.CRITICAL) -> Alert:
    return Alert(
        alert_id="alert_1717405200000_abc123def",
        alert_type=AlertType.CRITICAL_MISSING_VARIABLE,
        event_type="missing_variable",
        actor_key="DATABASE_URL",
        severity=severity,
        first_seen=EPOCH,
        last_seen=EPOCH,
        threshold=1,
        window_minutes=1.0,
        environment="production",
        details={"variable": "DATABASE_URL"},
    )


class TestChannels:
    @pytest.mark.asyncio
    async def test_severity_floor(self):
        channel = RecordingChannel(Severity.HIGH)
        assert await channel.send(_alert(Severity.MEDIUM)) is False
        assert await channel.send(_alert(Severity.HIGH)) is True
        assert len(channel.sent) == 1

    @pytest.mark.asyncio
    async def test_log_channel(self, caplog):
        with caplog.at_level(logging.CRITICAL, logger="roomguard.monitoring.alerts"):
            assert await LogChannel().send(_alert()) is True
        assert any("[ALERT]" in record.getMessage() for record in caplog.records)

    @pytest.mark.asyncio
    async def test_webhook_posts_alert_dict(self):
        channel = WebhookChannel("https://hooks.example.test/alerts")
        with patch.object(HttpAlertChannel, "_post", new=AsyncMock(return_value=202)) as post:
            assert await channel.send(_alert()) is True
        payload = post.await_args.args[0]
        assert payload["id"] == "alert_1717405200000_abc123def"
        assert payload["severity"] == "critical"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "delivered"),
        [(200, True), (203, True), (206, True), (299, True), (301, False), (404, False)],
    )
    async def test_any_2xx_status_counts_as_delivered(self, status, delivered):
        channel = WebhookChannel("https://hooks.example.test/alerts")
        with patch.object(HttpAlertChannel, "_post", new=AsyncMock(return_value=status)):
            assert await channel.send(_alert()) is delivered

    @pytest.mark.asyncio
    async def test_http_error_status_is_logged_not_raised(self, caplog):
        channel = WebhookChannel("https://hooks.example.test/alerts")
        with patch.object(HttpAlertChannel, "_post", new=AsyncMock(return_value=500)):
            with caplog.at_level(logging.ERROR, logger="roomguard.errors"):
                assert await channel.send(_alert()) is False

        logged = [r for r in caplog.records if r.name == "roomguard.errors"]
        assert logged
        assert logged[0].error_data["error_code"] == "DISPATCH_ERROR"
        assert logged[0].error_data["context"]["alert_id"] == "alert_1717405200000_abc123def"
        assert logged[0].error_data["context"]["status_code"] == 500

    @pytest.mark.asyncio
    async def test_network_error_is_logged_not_raised(self):
        channel = WebhookChannel("https://hooks.example.test/alerts")
        failing = AsyncMock(side_effect=aiohttp.ClientConnectionError("connection refused"))
        with patch.object(HttpAlertChannel, "_post", new=failing):
            assert await channel.send(_alert()) is False

    def test_slack_payload(self):
        payload = SlackChannel("https://hooks.slack.test/T000").build_payload(_alert())
        assert "Critical Missing Variable" in payload["text"]
        assert "Environment: production" in payload["text"]
        attachment = payload["attachments"][0]
        assert attachment["color"] == SlackChannel.COLORS[Severity.CRITICAL]
        titles = {field["title"] for field in attachment["fields"]}
        assert {"Alert ID", "Event Type", "Actor", "Count", "Time Window"} <= titles


class TestAlertDispatcher:
    def test_log_channel_always_present(self):
        dispatcher = AlertDispatcher()
        assert "log" in dispatcher.channels
        assert dispatcher.has_external_route(_alert()) is False
        assert dispatcher.dispatch_nowait(_alert()) is False

    @pytest.mark.asyncio
    async def test_dispatch_reports_per_channel(self):
        dispatcher = AlertDispatcher()
        recording = RecordingChannel(Severity.CRITICAL)
        dispatcher.add_channel("recording", recording)

        results = await dispatcher.dispatch(_alert())
        assert results == {"log": True, "recording": True}
        assert dispatcher.get_recent_alerts(5)[0].alert_id == recording.sent[0].alert_id

        results = await dispatcher.dispatch(_alert(Severity.MEDIUM))
        assert results == {"log": True}

    def test_remove_channel(self):
        dispatcher = AlertDispatcher()
        dispatcher.add_channel("recording", RecordingChannel())
        dispatcher.remove_channel("recording")
        assert list(dispatcher.channels) == ["log"]

    def test_dispatch_nowait_does_not_block_on_rejecting_webhook(self):
        dispatcher = AlertDispatcher()
        dispatcher.add_channel("webhook", WebhookChannel("https://hooks.example.test/alerts"))

        async def slow_failure(self, payload):
            await asyncio.sleep(0.3)
            raise aiohttp.ClientError("rejected")

        try:
            with patch.object(HttpAlertChannel, "_post", new=slow_failure):
                started = time.perf_counter()
                assert dispatcher.dispatch_nowait(_alert()) is True
                elapsed = time.perf_counter() - started
                assert elapsed < 0.2
                assert dispatcher.flush(timeout=5.0) is True
        finally:
            dispatcher.close()
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_dispatch_nowait_inside_running_loop(self):
        dispatcher = AlertDispatcher()
        recording = RecordingChannel(Severity.CRITICAL)
        dispatcher.add_channel("recording", recording)

        assert dispatcher.dispatch_nowait(_alert()) is True
        assert recording.sent == []
        await dispatcher.drain(timeout=5.0)
        assert len(recording.sent) == 1
        assert dispatcher.pending == 0

    def test_from_settings(self):
        settings = make_settings(
            slack_webhook_url="https://hooks.slack.test/T000",
            alert_webhook_urls=["https://hooks.example.test/a", "https://hooks.example.test/b"],
            dispatch_min_severity="HIGH",
            webhook_timeout_seconds=2.5,
        )
        dispatcher = AlertDispatcher.from_settings(settings)
        assert set(dispatcher.channels) == {"log", "slack", "webhook_0", "webhook_1"}
        slack = dispatcher.channels["slack"]
        assert slack.min_severity is Severity.HIGH
        assert slack.timeout_seconds == 2.5
        assert dispatcher.has_external_route(_alert(Severity.HIGH)) is True
        assert dispatcher.has_external_route(_alert(Severity.MEDIUM)) is False

    def test_from_settings_without_webhooks(self):
        dispatcher = AlertDispatcher.from_settings(make_settings())
        assert list(dispatcher.channels) == ["log"]
