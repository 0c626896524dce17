"""
Alert Dispatcher Module

Routes raised alerts to the log and to external webhooks (Slack-compatible or
generic JSON) based on per-channel severity floors. Delivery is best-effort:
failures are logged and never reach the code that recorded the event.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import threading
from collections import deque
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import aiohttp

from roomguard.errors import DispatchError, handle_error, log_error
from roomguard.monitoring.alert_types import Alert, Severity
from roomguard.utilities.logging_patterns import get_logger

if TYPE_CHECKING:
    from roomguard.settings import MonitoringSettings

logger = get_logger(__name__, component="alerts")

def is_success_status(status: int) -> bool:
    return 200 <= status < 300


class AlertChannel:
    """Base class for alert channels."""

    external = False

    def __init__(self, min_severity: Severity = Severity.LOW) -> None:
        self.min_severity = min_severity

    def accepts(self, alert: Alert) -> bool:
        return alert.severity >= self.min_severity

    async def send(self, alert: Alert) -> bool:
        """
        Send alert through this channel.

        Returns:
            True if sent successfully
        """
        if not self.accepts(alert):
            return False

        try:
            return await self._send_impl(alert)
        except Exception as exc:
            log_error(
                handle_error(
                    exc,
                    {
                        "channel": self.__class__.__name__,
                        "alert_id": alert.alert_id,
                        "alert_type": alert.alert_type.value,
                        "severity": alert.severity.value,
                    },
                )
            )
            return False

    async def _send_impl(self, alert: Alert) -> bool:
        raise NotImplementedError


class LogChannel(AlertChannel):
    """Log-based alert channel."""

    async def _send_impl(self, alert: Alert) -> bool:
        log_method = {
            Severity.LOW: logger.info,
            Severity.MEDIUM: logger.warning,
            Severity.HIGH: logger.error,
            Severity.CRITICAL: logger.critical,
        }[alert.severity]

        log_method(
            f"[ALERT] {alert.title}: {alert.summary}",
            operation="alert_dispatch",
            alert_id=alert.alert_id,
            severity=alert.severity.value,
            source=alert.source,
        )
        return True


class HttpAlertChannel(AlertChannel):
    """Alert channel that POSTs a JSON document to a webhook URL."""

    external = True

    def __init__(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        min_severity: Severity = Severity.CRITICAL,
        timeout_seconds: float = 5.0,
    ) -> None:
        super().__init__(min_severity)
        self.url = url
        self.headers = dict(headers or {})
        self.timeout_seconds = timeout_seconds

    def build_payload(self, alert: Alert) -> dict[str, Any]:
        return alert.to_dict()

    async def _send_impl(self, alert: Alert) -> bool:
        status = await self._post(self.build_payload(alert))
        if not is_success_status(status):
            raise DispatchError(
                f"Webhook responded with HTTP {status}", url=self.url, status_code=status
            )
        return True

    async def _post(self, payload: dict[str, Any]) -> int:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(self.url, json=payload, headers=self.headers) as response:
                return response.status


class WebhookChannel(HttpAlertChannel):
    """Generic webhook receiving the alert's JSON representation."""


class SlackChannel(HttpAlertChannel):
    """Slack incoming-webhook alert channel."""

    COLORS = {
        Severity.LOW: "#36a64f",
        Severity.MEDIUM: "#ffcc00",
        Severity.HIGH: "#ff9900",
        Severity.CRITICAL: "#ff0000",
    }
    EMOJI = {
        Severity.LOW: "ℹ️",
        Severity.MEDIUM: "⚡",
        Severity.HIGH: "⚠️",
        Severity.CRITICAL: "🚨",
    }

    def build_payload(self, alert: Alert) -> dict[str, Any]:
        lines = [
            f"{self.EMOJI[alert.severity]} {alert.title}",
            f"Environment: {alert.environment or 'unknown'}",
            f"Severity: {alert.severity.value.upper()}",
            f"Count: {alert.count}"
            + (f" (threshold: {alert.threshold})" if alert.threshold is not None else ""),
        ]
        if alert.window_minutes is not None:
            lines.append(f"Time Window: {alert.window_minutes:g} minutes")
        if alert.details:
            lines.append(f"Details: {json.dumps(alert.details, indent=2, default=str)}")

        fields = [
            {"title": "Alert ID", "value": alert.alert_id, "short": True},
            {"title": "Event Type", "value": alert.event_type, "short": True},
            {"title": "Actor", "value": alert.actor_key, "short": True},
            {"title": "Count", "value": str(alert.count), "short": True},
        ]
        if alert.window_minutes is not None:
            fields.append(
                {"title": "Time Window", "value": f"{alert.window_minutes:g}m", "short": True}
            )

        return {
            "text": "\n".join(lines),
            "attachments": [
                {
                    "color": self.COLORS[alert.severity],
                    "title": alert.title,
                    "text": alert.summary,
                    "fields": fields,
                    "footer": "Room reservation monitoring",
                    "ts": int(alert.last_seen.timestamp()),
                }
            ],
        }


class AlertDispatcher:
    """Central alert dispatcher managing multiple channels.

    ``dispatch_nowait`` is what the monitors call: it schedules delivery on the
    caller's running event loop, or on a private background loop when called
    from synchronous code, and returns immediately either way.
    """

    def __init__(self, *, history_size: int = 1_000) -> None:
        self.channels: dict[str, AlertChannel] = {}
        self.alert_history: deque[Alert] = deque(maxlen=history_size)
        self._tasks: set[asyncio.Task[dict[str, bool]]] = set()
        self._futures: set[concurrent.futures.Future[dict[str, bool]]] = set()
        self._background_loop: asyncio.AbstractEventLoop | None = None
        self._background_thread: threading.Thread | None = None
        self._lock = threading.Lock()

        self.add_channel("log", LogChannel())

    def add_channel(self, name: str, channel: AlertChannel) -> None:
        self.channels[name] = channel
        logger.info(f"Added alert channel: {name}", operation="alert_channels")

    def remove_channel(self, name: str) -> None:
        if self.channels.pop(name, None) is not None:
            logger.info(f"Removed alert channel: {name}", operation="alert_channels")

    def eligible_channels(self, alert: Alert) -> list[str]:
        return [name for name, channel in self.channels.items() if channel.accepts(alert)]

    async def dispatch(self, alert: Alert) -> dict[str, bool]:
        """
        Dispatch alert to all channels whose severity floor it meets.

        Returns:
            Dict mapping channel names to send results
        """
        self.alert_history.append(alert)

        names = self.eligible_channels(alert)
        outcomes = await asyncio.gather(
            *(self.channels[name].send(alert) for name in names), return_exceptions=True
        )

        results: dict[str, bool] = {}
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    f"Error dispatching to {name}: {outcome}",
                    operation="alert_dispatch",
                    alert_id=alert.alert_id,
                )
                results[name] = False
            else:
                results[name] = outcome

        failed = [name for name, success in results.items() if not success]
        if failed:
            logger.warning(
                f"Alert dispatch failed for: {', '.join(failed)}",
                operation="alert_dispatch",
                alert_id=alert.alert_id,
            )
        else:
            logger.debug(
                f"Alert dispatched to: {', '.join(results)}",
                operation="alert_dispatch",
                alert_id=alert.alert_id,
            )
        return results

    def has_external_route(self, alert: Alert) -> bool:
        return any(
            channel.external and channel.accepts(alert) for channel in self.channels.values()
        )

    def dispatch_nowait(self, alert: Alert) -> bool:
        """Schedule :meth:`dispatch` without waiting for it.

        Nothing is scheduled when no external channel accepts the alert, so an
        unconfigured webhook costs nothing. Returns whether a dispatch was scheduled.
        """
        if not self.has_external_route(alert):
            return False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self.dispatch(alert))
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)
            return True

        future = asyncio.run_coroutine_threadsafe(
            self.dispatch(alert), self._ensure_background_loop()
        )
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._on_future_done)
        return True

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._tasks) + len(self._futures)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for dispatches scheduled from async code (and the background loop)."""
        waiters: list[asyncio.Future[Any]] = list(self._tasks)
        with self._lock:
            waiters.extend(asyncio.wrap_future(future) for future in self._futures)
        if waiters:
            await asyncio.wait(waiters, timeout=timeout)

    def flush(self, timeout: float | None = 5.0) -> bool:
        """Block until background-loop dispatches finish; ``False`` on timeout."""
        with self._lock:
            futures = list(self._futures)
        if not futures:
            return True
        _, not_done = concurrent.futures.wait(futures, timeout=timeout)
        return not not_done

    def close(self, timeout: float = 5.0) -> None:
        """Stop the background loop, if one was started."""
        self.flush(timeout)
        with self._lock:
            loop, thread = self._background_loop, self._background_thread
            self._background_loop = None
            self._background_thread = None
        if loop is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout)
        loop.close()

    def get_recent_alerts(self, count: int = 10, severity: Severity | None = None) -> list[Alert]:
        alerts = list(self.alert_history)
        if severity is not None:
            alerts = [alert for alert in alerts if alert.severity == severity]
        return alerts[-count:]

    def _ensure_background_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._background_loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=loop.run_forever, name="roomguard-alert-dispatch", daemon=True
                )
                thread.start()
                self._background_loop = loop
                self._background_thread = thread
            return self._background_loop

    def _on_task_done(self, task: asyncio.Task[dict[str, bool]]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"Alert dispatch task failed: {task.exception()}", operation="alert_dispatch"
            )

    def _on_future_done(self, future: concurrent.futures.Future[dict[str, bool]]) -> None:
        with self._lock:
            self._futures.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error(
                f"Alert dispatch task failed: {future.exception()}", operation="alert_dispatch"
            )

    @classmethod
    def from_settings(cls, settings: MonitoringSettings) -> AlertDispatcher:
        """Create a dispatcher with the webhooks configured in ``settings``."""
        dispatcher = cls()
        min_severity = Severity.coerce(settings.dispatch_min_severity)

        if settings.slack_webhook_url:
            dispatcher.add_channel(
                "slack",
                SlackChannel(
                    settings.slack_webhook_url,
                    min_severity=min_severity,
                    timeout_seconds=settings.webhook_timeout_seconds,
                ),
            )

        for index, url in enumerate(settings.alert_webhook_urls):
            dispatcher.add_channel(
                f"webhook_{index}",
                WebhookChannel(
                    url,
                    min_severity=min_severity,
                    timeout_seconds=settings.webhook_timeout_seconds,
                ),
            )

        return dispatcher


__all__ = [
    "is_success_status",
    "AlertChannel",
    "LogChannel",
    "HttpAlertChannel",
    "WebhookChannel",
    "SlackChannel",
    "AlertDispatcher",
]
