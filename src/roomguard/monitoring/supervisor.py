"""
Periodic health supervision and the combined dashboard snapshot.

``MonitoringSupervisor`` runs as a background asyncio task next to the web
application. Every interval it checks both monitors' health, logs the result,
and warns when a monitor is critical or its store is close to capacity.

Usage:
    supervisor = MonitoringSupervisor(security_monitor, environment_monitor)
    await supervisor.start()
    # ... later ...
    await supervisor.stop()
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from roomguard.monitoring.environment_monitor import EnvironmentMonitor
from roomguard.monitoring.health import HealthStatus, SystemHealth
from roomguard.monitoring.security_monitor import SecurityMonitor
from roomguard.utilities.datetime_helpers import utc_now_iso
from roomguard.utilities.logging_patterns import get_logger, log_system_health

logger = get_logger(__name__, component="supervisor")


def get_dashboard_snapshot(
    security_monitor: SecurityMonitor,
    environment_monitor: EnvironmentMonitor,
    window_minutes: float = 60,
) -> dict[str, Any]:
    """JSON-ready view of both monitors: stats, health and active alerts."""
    return {
        "generated_at": utc_now_iso(),
        "environment": environment_monitor.environment,
        "security": {
            "stats": security_monitor.get_security_stats(window_minutes).to_dict(),
            "health": security_monitor.get_system_health().to_dict(),
            "active_alerts": [alert.to_dict() for alert in security_monitor.get_active_alerts()],
        },
        "environment_monitor": {
            "stats": environment_monitor.get_monitoring_stats(window_minutes).to_dict(),
            "health": environment_monitor.get_system_health().to_dict(),
            "active_alerts": [
                alert.to_dict() for alert in environment_monitor.get_active_alerts()
            ],
        },
    }


@dataclass
class MonitoringSupervisor:
    security_monitor: SecurityMonitor
    environment_monitor: EnvironmentMonitor
    interval_seconds: float = 300.0
    memory_warning_ratio: float = 0.9
    enabled: bool = True

    _running: bool = field(default=False, repr=False)
    _task: asyncio.Task[None] | None = field(default=None, repr=False)
    _check_count: int = field(default=0, repr=False)
    _last_results: dict[str, SystemHealth] = field(default_factory=dict, repr=False)

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> asyncio.Task[None] | None:
        """Start the supervision loop.

        Returns:
            The background task, or None if disabled.
        """
        if not self.enabled:
            logger.info("Monitoring supervisor disabled", operation="supervisor")
            return None

        if self._running:
            logger.warning("Monitoring supervisor already running", operation="supervisor")
            return self._task

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            f"Monitoring supervisor started (interval={self.interval_seconds:g}s)",
            operation="supervisor",
        )
        return self._task

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info(
            f"Monitoring supervisor stopped after {self._check_count} checks",
            operation="supervisor",
        )

    def check_once(self) -> dict[str, SystemHealth]:
        """Assess both monitors now and log the outcome."""
        results = {
            "security": self.security_monitor.get_system_health(),
            "environment": self.environment_monitor.get_system_health(),
        }
        for name, health in results.items():
            log_system_health(
                health.status.value,
                component=f"{name}_monitor",
                metrics={
                    "events_count": health.events_count,
                    "alerts_count": health.alerts_count,
                    "memory_usage": round(health.memory_usage, 4),
                    "process_rss_mb": health.process_rss_mb,
                },
                logger=logger,
            )
            if health.status is HealthStatus.CRITICAL:
                logger.warning(
                    f"{name.capitalize()} monitor is critical with {health.alerts_count} active alerts",
                    operation="health_check",
                )
            if health.memory_usage > self.memory_warning_ratio:
                logger.warning(
                    f"{name.capitalize()} monitor store is {health.memory_usage:.0%} full",
                    operation="health_check",
                    memory_usage=health.memory_usage,
                )

        self._check_count += 1
        self._last_results = results
        return results

    def get_status(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "check_count": self._check_count,
            "last_results": {name: health.to_dict() for name, health in self._last_results.items()},
        }

    async def _loop(self) -> None:
        while self._running:
            try:
                self.check_once()
            except Exception as exc:
                logger.error(f"Health check error: {exc}", operation="health_check")

            await asyncio.sleep(self.interval_seconds)


__all__ = ["MonitoringSupervisor", "get_dashboard_snapshot"]
