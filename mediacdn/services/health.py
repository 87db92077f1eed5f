"""Availability tracking for the primary image CDN.

The tracker answers "is the primary provider usable right now?" from a cached
flag and only issues a network probe once the check interval has elapsed.
Probe failures are converted into ``available = False``; nothing raises out
of :meth:`HealthTracker.is_available`.

Concurrent callers that hit the interval boundary together may each probe.
That race is accepted: probes are idempotent and the last writer wins.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

import httpx

from mediacdn.models import AvailabilitySnapshot, ProbeResult

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class HttpHealthProber:  # pylint: disable=too-few-public-methods
    """HEAD request against the primary CDN health path with a short timeout."""

    def __init__(
        self,
        *,
        base_url: str,
        health_path: str = "/health-check",
        timeout_ms: int = 1500,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}/{health_path.lstrip('/')}"
        self._client = client or httpx.AsyncClient(
            timeout=timeout_ms / 1000.0,
            headers={"Cache-Control": "no-cache"},
        )

    @property
    def url(self) -> str:
        return self._url

    async def __call__(self) -> ProbeResult:
        started = monotonic_ms()
        try:
            resp = await self._client.head(self._url)
        except httpx.HTTPError as exc:
            logger.warning("Primary CDN health probe failed: %s", exc)
            return ProbeResult(ok=False, error=str(exc) or exc.__class__.__name__, elapsed_ms=monotonic_ms() - started)

        elapsed = monotonic_ms() - started
        if not resp.is_success:
            logger.warning("Primary CDN health probe returned %s", resp.status_code)
        return ProbeResult(ok=resp.is_success, status_code=resp.status_code, elapsed_ms=elapsed)

    async def aclose(self) -> None:
        await self._client.aclose()


class HealthTracker:
    """Cached availability flag for the primary provider.

    Parameters
    ----------
    prober : Callable[[], Awaitable[ProbeResult]]
        Async callable returning a :class:`ProbeResult`.
    check_interval_ms : int
        Minimum time between two probes.
    max_backoff_ms : int | None
        When set, the interval doubles per consecutive failure up to this cap.
    clock : Callable[[], float]
        Monotonic clock in milliseconds; injectable for tests.
    """

    def __init__(
        self,
        prober: Callable[[], Awaitable[ProbeResult]],
        *,
        check_interval_ms: int,
        max_backoff_ms: int | None = None,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        if check_interval_ms <= 0:
            raise ValueError("check_interval_ms must be positive")
        self._prober = prober
        self._clock = clock
        self.check_interval_ms = check_interval_ms
        self.max_backoff_ms = max_backoff_ms

        # Optimistic until the first probe says otherwise
        self.available = True
        self.last_checked: float | None = None
        self.last_checked_at: datetime | None = None
        self.consecutive_failures = 0

    def effective_interval_ms(self) -> int:
        if self.max_backoff_ms is None or self.consecutive_failures == 0:
            return self.check_interval_ms
        backoff = self.check_interval_ms * (2 ** self.consecutive_failures)
        return max(self.check_interval_ms, min(self.max_backoff_ms, backoff))

    def is_stale(self) -> bool:
        if self.last_checked is None:
            return True
        return self._clock() - self.last_checked >= self.effective_interval_ms()

    async def is_available(self) -> bool:
        if not self.is_stale():
            return self.available

        now = self._clock()
        result = await self._probe()
        was_available = self.available

        self.available = result.ok
        self.last_checked = now
        self.last_checked_at = datetime.now(timezone.utc)
        if result.ok:
            self.consecutive_failures = 0
        else:
            self.consecutive_failures += 1

        if was_available != self.available:
            if self.available:
                logger.info("Primary CDN reachable again")
            else:
                logger.warning("Primary CDN unavailable, routing images to backup storage")
        return self.available

    async def _probe(self) -> ProbeResult:
        try:
            return await self._prober()
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Primary CDN health probe raised: %s", exc)
            return ProbeResult(ok=False, error=str(exc))

    def snapshot(self) -> AvailabilitySnapshot:
        return AvailabilitySnapshot(
            available=self.available,
            last_checked_at=self.last_checked_at,
            consecutive_failures=self.consecutive_failures,
            check_interval_ms=self.check_interval_ms,
            effective_interval_ms=self.effective_interval_ms(),
        )
