"""CDN health status endpoint for operators.

Reports primary/backup availability, failover counters and health monitor
uptime. Image delivery degrades silently for end users, so this is where a
degraded state becomes visible.
"""
from __future__ import annotations

import hmac
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse

from mediacdn.config import get_settings
from mediacdn.services.monitor import HealthMonitor
from mediacdn.services.registry import get_monitor, get_resolver
from mediacdn.services.resolver import ImageUrlResolver

router = APIRouter()
logger = logging.getLogger(__name__)

_NO_STORE = {"Cache-Control": "no-store, max-age=0"}


def _check_token(authorization: str | None) -> None:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")
    expected = get_settings().cdn_monitor_api_key
    token = authorization[len("Bearer "):]
    if not expected or not hmac.compare_digest(token, expected):
        raise HTTPException(status_code=403, detail="Invalid token")


@router.get("/api/cdn-health")
async def cdn_health(
    authorization: str | None = Header(None),
    resolver: ImageUrlResolver = Depends(get_resolver),
    monitor: HealthMonitor = Depends(get_monitor),
):
    _check_token(authorization)

    try:
        health = monitor.metrics().model_dump(mode="json")
        failover = resolver.get_metrics()
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Error retrieving CDN health metrics: %s", exc)
        return JSONResponse(
            {"error": "Failed to retrieve CDN health metrics", "message": str(exc) or "Unknown error"},
            status_code=500,
        )

    primary_up = failover["primary_available"]
    body = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "health": health,
        "failover": failover,
        "status": {
            "primary": primary_up,
            "backup": True,  # backup storage has no probe; assumed available
            "current_provider": "primary" if primary_up else "backup",
            "health_monitor_running": health["is_running"],
        },
    }
    return JSONResponse(body, headers=_NO_STORE)
