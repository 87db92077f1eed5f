"""Tests for the CDN health endpoint."""

import asyncio
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from mediacdn.main import app
from mediacdn.services.monitor import HealthMonitor
from mediacdn.services.registry import get_monitor, get_resolver

AUTH = {"Authorization": "Bearer test-monitor-key"}


@pytest.fixture
def resolver(make_resolver, down_prober, signer):
    return make_resolver(down_prober, signer)


@pytest.fixture
def monitor() -> HealthMonitor:
    return HealthMonitor(MagicMock())


@pytest.fixture
def client(resolver, monitor):
    app.dependency_overrides[get_resolver] = lambda: resolver
    app.dependency_overrides[get_monitor] = lambda: monitor
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthz(client: TestClient) -> None:
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_token_is_unauthorized(client: TestClient) -> None:
    response = client.get("/api/cdn-health")
    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


def test_non_bearer_scheme_is_unauthorized(client: TestClient) -> None:
    response = client.get("/api/cdn-health", headers={"Authorization": "Basic abc"})
    assert response.status_code == 401


def test_wrong_token_is_forbidden(client: TestClient) -> None:
    response = client.get("/api/cdn-health", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 403
    assert response.json() == {"detail": "Invalid token"}


def test_reports_failover_state(client: TestClient, resolver) -> None:
    asyncio.run(resolver.resolve("/images/a.jpg"))

    response = client.get("/api/cdn-health", headers=AUTH)

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "no-store, max-age=0"
    body = response.json()
    assert body["status"] == {
        "primary": False,
        "backup": True,
        "current_provider": "backup",
        "health_monitor_running": False,
    }
    assert body["failover"]["metrics"]["backup_requests"] == 1
    assert body["health"]["total_checks"] == 0
    assert "timestamp" in body


def test_metrics_error_returns_500(client: TestClient, monitor: HealthMonitor) -> None:
    monitor.metrics = MagicMock(side_effect=RuntimeError("state corrupted"))

    response = client.get("/api/cdn-health", headers=AUTH)

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to retrieve CDN health metrics",
        "message": "state corrupted",
    }
