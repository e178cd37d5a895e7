from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from soundfly.config import settings
from soundfly.infrastructure.cleanup.download_retention import retention_loop
from soundfly.infrastructure.logging_setup import init_logging
from soundfly.infrastructure.metrics.metrics import setup_metrics
from soundfly.presentation.api.bridge_routes import router as bridge_router
from soundfly.presentation.api.inject_routes import router as inject_router
from soundfly.presentation.api.player_routes import router as player_router
from soundfly.presentation.api.routes import router as api_router

logger = logging.getLogger(__name__)

_ret_stop_event: Optional[asyncio.Event] = None
_ret_task: Optional[asyncio.Task] = None


def create_app() -> FastAPI:
    # Initialize logging before app construction to capture startup logs
    init_logging()
    app = FastAPI(title=settings.app_name)

    # only the hosted site may call us with credentials
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.website_url.rstrip("/")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    app.include_router(player_router)
    app.include_router(inject_router)
    app.include_router(bridge_router)

    # Prometheus metrics (/metrics) + psutil process gauges
    setup_metrics(app)
    return app


app = create_app()


@app.on_event("startup")
async def _startup() -> None:
    logger.info("application startup (site=%s, extraction=%s)", settings.website_url, settings.extraction_strategy)

    from soundfly.container import audio_session

    try:
        await audio_session().configure()
    except Exception as exc:  # noqa: BLE001
        logger.error("audio session configuration failed: %s", exc)

    # Temporary audio download cleaner
    if settings.extraction_strategy == "manifest":
        global _ret_stop_event, _ret_task
        _ret_stop_event = asyncio.Event()
        _ret_task = asyncio.create_task(
            retention_loop(
                _ret_stop_event,
                [settings.audio_download_dir],
                max_age_hours=settings.audio_download_max_age_hours,
                interval_sec=settings.audio_retention_interval_sec,
            )
        )


@app.on_event("shutdown")
async def _shutdown() -> None:
    logger.info("application shutdown")
    from soundfly.container import audio_engine, native_player, request_ad_load, session_keepalive

    session_keepalive().stop()
    request_ad_load().cancel_retry()
    # only tear down the engine if something created it
    if audio_engine.cache_info().currsize:
        await native_player().shutdown()

    global _ret_stop_event, _ret_task
    if _ret_stop_event is not None:
        _ret_stop_event.set()
    if _ret_task is not None:
        _ret_task.cancel()
    _ret_stop_event = None
    _ret_task = None
