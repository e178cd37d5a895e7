from __future__ import annotations

import logging
import platform
import time
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter, Depends, Header, HTTPException

from soundfly.config import settings
from soundfly.container import (
    audio_extractor,
    audio_session,
    native_player,
    notification_service,
    session_keepalive,
)
from soundfly.infrastructure.logging_setup import LOG_BUFFER_MAX, ring_buffer

router = APIRouter(prefix="/api")


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


async def require_diag_token(x_diag_token: str | None = Header(default=None)) -> None:
    token = settings.diag_token
    # Require token to be configured and provided
    if not token:
        raise HTTPException(status_code=401, detail="diagnostics disabled (token required)")
    if x_diag_token != token:
        raise HTTPException(status_code=401, detail="invalid diagnostics token")


@router.get("/diagnostics", dependencies=[Depends(require_diag_token)])
async def diagnostics(
    player=Depends(native_player),
    extractor=Depends(audio_extractor),
    session=Depends(audio_session),
    keepalive=Depends(session_keepalive),
    notifier=Depends(notification_service),
) -> dict:
    preference = getattr(extractor, "preference", None)
    proc = psutil.Process()
    pm = proc.memory_info()
    return {
        "app": {
            "name": settings.app_name,
            "time": datetime.now(timezone.utc).isoformat(),
            "bridge_script_version": settings.bridge_script_version,
            "website_url": settings.website_url,
        },
        "platform": {
            "system": platform.system(),
            "release": platform.release(),
            "python": platform.python_version(),
        },
        "player": player.snapshot(),
        "extraction": {
            "strategy": getattr(extractor, "name", settings.extraction_strategy),
            "instances": preference.instances if preference is not None else [],
            "preferred": preference.preferred if preference is not None else None,
            "extracting": bool(getattr(extractor, "extracting", False)),
        },
        "session": {
            "active": session.is_active,
            "keepalive": keepalive.running,
        },
        "bridge": {
            "clients": getattr(notifier, "client_count", 0),
        },
        "process": {
            "pid": proc.pid,
            "rss_bytes": pm.rss,
            "num_threads": proc.num_threads(),
            "uptime_seconds": max(0.0, time.time() - proc.create_time()),
        },
    }


@router.get("/logs", dependencies=[Depends(require_diag_token)])
async def get_logs(limit: int = 200) -> dict:
    if limit <= 0:
        limit = 100
    limit = min(limit, LOG_BUFFER_MAX)
    return {"logs": ring_buffer.tail(limit)}


@router.get("/diagnostics/log-level", dependencies=[Depends(require_diag_token)])
async def get_log_level() -> dict:
    level = logging.getLogger().getEffectiveLevel()
    return {"level": logging.getLevelName(level)}


@router.post("/diagnostics/log-level", dependencies=[Depends(require_diag_token)])
async def set_log_level(level: str) -> dict:
    name = level.strip().upper()
    if name not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise HTTPException(status_code=400, detail="invalid level")
    logging.getLogger().setLevel(getattr(logging, name))
    return {"ok": True, "level": name}
