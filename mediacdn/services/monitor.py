"""Background health monitor for the primary CDN.

Keeps the tracker's cached availability warm so render paths rarely pay for a
probe, and records uptime figures for the health endpoint. Checks go through
:meth:`HealthTracker.is_available`, so the monitor never probes more often
than the tracker's own interval allows.
"""
from __future__ import annotations

import asyncio
import logging
import random as _random
from datetime import datetime, timezone
from typing import Callable

from mediacdn.models import HealthMonitorMetrics
from mediacdn.services.health import HealthTracker

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthMonitor:
    """Periodic availability checks with exponential backoff after failures."""

    def __init__(
        self,
        tracker: HealthTracker,
        *,
        interval_ms: int = 60_000,
        max_backoff_ms: int = 3_600_000,
        random: Callable[[], float] = _random.random,
    ) -> None:
        self._tracker = tracker
        self.interval_ms = interval_ms
        self.max_backoff_ms = max_backoff_ms
        self._random = random
        self._task: asyncio.Task | None = None
        self._metrics = HealthMonitorMetrics(last_status_change=_utcnow())

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            logger.warning("CDN health monitor is already running")
            return
        logger.info("Starting CDN health monitor (interval=%sms, max_backoff=%sms)", self.interval_ms, self.max_backoff_ms)
        self._task = asyncio.get_running_loop().create_task(self._run(), name="cdn-health-monitor")

    async def stop(self) -> None:
        if not self.is_running:
            logger.warning("CDN health monitor is not running")
            return
        logger.info("Stopping CDN health monitor")
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def check_once(self) -> bool:
        m = self._metrics
        m.last_check = _utcnow()
        m.total_checks += 1

        try:
            available = await self._tracker.is_available()
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("CDN health check failed with error: %s", exc)
            available = False

        if available:
            m.consecutive_failures = 0
            m.successful_checks += 1
            if not m.last_status:
                downtime = (_utcnow() - m.last_status_change).total_seconds()
                logger.info("Primary CDN is back online after %ds downtime", int(downtime))
                m.last_status = True
                m.last_status_change = _utcnow()
        else:
            m.consecutive_failures += 1
            m.failed_checks += 1
            if m.last_status:
                logger.warning("Primary CDN is down, failing over to backup storage")
                m.last_status = False
                m.last_status_change = _utcnow()

        m.uptime = round(m.successful_checks / m.total_checks * 100)
        return available

    def next_delay_ms(self) -> int:
        failures = self._metrics.consecutive_failures
        if failures == 0:
            return self.interval_ms
        backoff = min(self.max_backoff_ms, self.interval_ms * (2 ** failures))
        # +/-25% jitter
        delay = int(backoff * (0.75 + self._random() * 0.5))
        logger.info("Adjusting CDN check interval due to failures: %dms", delay)
        return delay

    def metrics(self) -> HealthMonitorMetrics:
        return self._metrics.model_copy(update={"is_running": self.is_running})

    async def _run(self) -> None:
        while True:
            await self.check_once()
            await asyncio.sleep(self.next_delay_ms() / 1000.0)
