from __future__ import annotations

import logging
from typing import Any, Optional

from soundfly.infrastructure.extraction.base import InstanceExtractor

logger = logging.getLogger(__name__)


def best_audio_stream(streams: Any) -> Optional[dict]:
    if not isinstance(streams, list):
        return None
    candidates = [
        s
        for s in streams
        if isinstance(s, dict) and s.get("url") and str(s.get("mimeType") or "").startswith("audio/")
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda s: int(s.get("bitrate") or 0))


class PipedExtractor(InstanceExtractor):
    """Piped privacy-frontend mirrors: GET /streams/{videoId} and pick from audioStreams."""

    name = "piped"

    def _try_instance(self, instance: str, video_id: str) -> Optional[str]:
        url = f"{instance.rstrip('/')}/streams/{video_id}"
        logger.debug("[piped] trying %s", url)
        resp = self._session.get(url, headers={"Accept": "application/json"}, timeout=self._timeout)
        if resp.status_code != 200:
            logger.debug("[piped] %s -> HTTP %s", instance, resp.status_code)
            return None
        data = resp.json()
        if not isinstance(data, dict):
            return None
        stream = best_audio_stream(data.get("audioStreams"))
        if stream is None:
            logger.debug("[piped] %s returned no audio streams", instance)
            return None
        return stream["url"]
