from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional

from soundfly.domain.audio_url import AUDIO_EXTENSIONS


_log = logging.getLogger(__name__)


def _iter_audio_files(paths: Iterable[os.PathLike[str] | str]) -> Iterable[Path]:
    for p in paths:
        root = Path(p)
        if not root.exists():
            continue
        for dirpath, _dirnames, filenames in os.walk(root):
            d = Path(dirpath)
            for name in filenames:
                if Path(name).suffix.lower() in AUDIO_EXTENSIONS:
                    yield d / name


def cleanup_once(
    paths: Iterable[os.PathLike[str] | str],
    *,
    max_age_hours: int,
    now: Optional[datetime] = None,
) -> dict:
    cutoff = (now or datetime.now()) - timedelta(hours=int(max_age_hours))
    deleted = 0
    checked = 0
    bytes_deleted = 0
    for f in _iter_audio_files(paths):
        try:
            checked += 1
            st = f.stat()
            if datetime.fromtimestamp(st.st_mtime) < cutoff:
                f.unlink(missing_ok=True)
                bytes_deleted += st.st_size
                deleted += 1
        except OSError as exc:
            _log.debug("download retention: skip %s: %s", f, exc)
            continue
    return {
        "checked": checked,
        "deleted": deleted,
        "bytes_deleted": int(bytes_deleted),
        "cutoff": cutoff.isoformat(),
    }


async def retention_loop(
    stop_event: asyncio.Event,
    paths: list[str],
    *,
    max_age_hours: int,
    interval_sec: int,
) -> None:
    while not stop_event.is_set():
        wait_sec = max(30, int(interval_sec))
        try:
            if max_age_hours > 0:
                result = await asyncio.to_thread(cleanup_once, paths, max_age_hours=max_age_hours)
                if result.get("deleted"):
                    _log.info(
                        "download retention: checked=%s deleted=%s bytes=%s cutoff=%s",
                        result.get("checked"),
                        result.get("deleted"),
                        result.get("bytes_deleted"),
                        result.get("cutoff"),
                    )
        except Exception as exc:
            _log.error("download retention error: %s", exc)
            wait_sec = 300
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=wait_sec)
        except asyncio.TimeoutError:
            pass
