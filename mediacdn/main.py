from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mediacdn.config import get_settings
from mediacdn.handlers import cdn_health
from mediacdn.services.registry import get_monitor, get_prober

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.monitor_enabled:
        get_monitor().start()
    yield
    if get_monitor().is_running:
        await get_monitor().stop()
    await get_prober().aclose()


app = FastAPI(title="Media CDN API", lifespan=lifespan)

app.include_router(cdn_health.router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
