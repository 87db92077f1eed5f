"""Shared fixtures for mediacdn tests."""
from __future__ import annotations

import os

# Settings are read at import time by the app modules
os.environ.setdefault("PRIMARY_BASE_URL", "https://ik.imagekit.io/newsroom")
os.environ.setdefault("CDN_MONITOR_API_KEY", "test-monitor-key")

from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402

from mediacdn.models import ProbeResult, SignedUrlResult  # noqa: E402
from mediacdn.services.health import HealthTracker  # noqa: E402
from mediacdn.services.resolver import ImageUrlResolver  # noqa: E402

BASE_URL = "https://ik.imagekit.io/newsroom"
SIGNED_URL = "https://storage.googleapis.com/newsroom-media/images/a.jpg?X-Goog-Signature=abc123"


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def up_prober() -> AsyncMock:
    return AsyncMock(return_value=ProbeResult(ok=True, status_code=200))


@pytest.fixture
def down_prober() -> AsyncMock:
    return AsyncMock(return_value=ProbeResult(ok=False, error="connect timeout"))


@pytest.fixture
def signer() -> AsyncMock:
    mock = AsyncMock()
    mock.presign = AsyncMock(return_value=SignedUrlResult.success(SIGNED_URL))
    return mock


@pytest.fixture
def failing_signer() -> AsyncMock:
    mock = AsyncMock()
    mock.presign = AsyncMock(return_value=SignedUrlResult.failure("InvalidAccessKeyId"))
    return mock


@pytest.fixture
def make_resolver(clock: FakeClock):
    """Factory building a resolver around the given prober and signer."""

    def _make(prober, signer, **kwargs) -> ImageUrlResolver:
        tracker = HealthTracker(prober, check_interval_ms=60_000, clock=clock)
        return ImageUrlResolver(
            tracker,
            signer,
            primary_base_url=BASE_URL,
            primary_host="ik.imagekit.io",
            clock=clock,
            **kwargs,
        )

    return _make
