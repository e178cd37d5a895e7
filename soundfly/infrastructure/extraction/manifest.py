from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import requests
from yt_dlp import YoutubeDL

from soundfly.infrastructure.extraction.base import InstanceExtractor

logger = logging.getLogger(__name__)

_DEFAULT_HEADERS = {
    "User-Agent": "com.google.android.youtube/19.20.0 (Linux; U; Android 12) gzip",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://www.youtube.com",
}


class _YdlLogger:
    def debug(self, msg: str) -> None:
        logger.debug("[yt-dlp] %s", msg)

    def warning(self, msg: str) -> None:
        logger.warning("[yt-dlp] %s", msg)

    def error(self, msg: str) -> None:
        logger.error("[yt-dlp] %s", msg)


def audio_candidates(formats: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    """Audio-only formats with a URL, highest average bitrate first."""

    def is_audio(f: dict[str, Any]) -> bool:
        return (
            f.get("vcodec") in (None, "none")
            and f.get("acodec") not in (None, "none")
            and bool(f.get("url"))
        )

    found = [f for f in formats or [] if isinstance(f, dict) and is_audio(f)]
    return sorted(found, key=lambda f: float(f.get("abr") or f.get("tbr") or 0), reverse=True)


class ManifestExtractor(InstanceExtractor):
    """Direct manifest pull with yt-dlp, top audio stream downloaded to a temp file.

    The "instances" are yt-dlp YouTube player clients, tried in order.
    """

    name = "manifest"

    def __init__(
        self,
        player_clients: Sequence[str],
        *,
        download_dir: str | os.PathLike[str],
        timeout: float = 15.0,
        preference_ttl: float = 1800.0,
        session: Optional[requests.Session] = None,
        ydl_factory: Callable[[dict[str, Any]], Any] = YoutubeDL,
    ) -> None:
        super().__init__(player_clients, timeout=timeout, preference_ttl=preference_ttl, session=session)
        self._download_dir = Path(download_dir)
        self._ydl_factory = ydl_factory

    def _ydl_options(self, client: str) -> dict[str, Any]:
        return {
            "quiet": True,
            "skip_download": True,
            "noplaylist": True,
            "socket_timeout": self._timeout,
            "logger": _YdlLogger(),
            "http_headers": dict(_DEFAULT_HEADERS),
            "extractor_args": {"youtube": {"player_client": [client]}},
        }

    def _try_instance(self, instance: str, video_id: str) -> Optional[str]:
        with self._ydl_factory(self._ydl_options(instance)) as ydl:
            info = ydl.extract_info(self.watch_url(video_id), download=False)
        if not isinstance(info, dict):
            return None
        candidates = audio_candidates(info.get("formats") or [])
        if not candidates:
            logger.debug("[manifest] client %s returned no audio-only formats", instance)
            return None
        return self._download(candidates[0], video_id)

    def _download(self, fmt: dict[str, Any], video_id: str) -> str:
        self._download_dir.mkdir(parents=True, exist_ok=True)
        ext = str(fmt.get("ext") or "m4a")
        headers = dict(_DEFAULT_HEADERS)
        headers.update(fmt.get("http_headers") or {})
        logger.info("[manifest] downloading %s (%s kbps %s)", video_id, fmt.get("abr"), ext)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{video_id}-", suffix=f".{ext}", dir=self._download_dir)
        try:
            with os.fdopen(fd, "wb") as out:
                with self._session.get(fmt["url"], headers=headers, stream=True, timeout=self._timeout) as resp:
                    resp.raise_for_status()
                    for chunk in resp.iter_content(chunk_size=64 * 1024):
                        if chunk:
                            out.write(chunk)
            target = self._download_dir / f"{video_id}.{ext}"
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return str(target)
