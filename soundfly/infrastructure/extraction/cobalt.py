from __future__ import annotations

import logging
from typing import Optional

from soundfly.infrastructure.extraction.base import InstanceExtractor

logger = logging.getLogger(__name__)


class CobaltExtractor(InstanceExtractor):
    """Cobalt-compatible proxy API: POST a watch URL, get a tunnel/redirect/picker answer."""

    name = "cobalt"

    def _try_instance(self, instance: str, video_id: str) -> Optional[str]:
        logger.debug("[cobalt] trying %s", instance)
        resp = self._session.post(
            instance,
            json={
                "url": self.watch_url(video_id),
                "downloadMode": "audio",
                "audioFormat": "mp3",
                "audioBitrate": "128",
            },
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            timeout=self._timeout,
        )
        logger.debug("[cobalt] %s -> HTTP %s", instance, resp.status_code)
        if resp.status_code != 200:
            return None

        data = resp.json()
        if not isinstance(data, dict):
            return None
        status = data.get("status")
        if status in ("tunnel", "redirect"):
            url = data.get("url")
            return url or None
        if status == "picker":
            audio = data.get("audio")
            return audio or None
        if status == "error":
            logger.warning("[cobalt] API error from %s: %s", instance, data.get("error"))
        return None
