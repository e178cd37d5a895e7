from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Sequence

import requests

from soundfly.domain.audio_url import is_valid_video_id
from soundfly.domain.ports.audio_extractor import IAudioExtractor
from soundfly.infrastructure.metrics.metrics import record_extraction

logger = logging.getLogger(__name__)


class InstancePreference:
    """Configured service instances, with the last working one tried first until it expires."""

    def __init__(
        self,
        instances: Sequence[str],
        ttl_seconds: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        # keep configured order, drop blanks and duplicates
        self._instances = list(dict.fromkeys(i.strip() for i in instances if i and i.strip()))
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._preferred: Optional[str] = None
        self._remembered_at = 0.0

    @property
    def instances(self) -> list[str]:
        return list(self._instances)

    @property
    def preferred(self) -> Optional[str]:
        if self._preferred is None:
            return None
        if self._ttl > 0 and self._clock() - self._remembered_at > self._ttl:
            logger.debug("preferred instance %s expired", self._preferred)
            self._preferred = None
        return self._preferred

    def ordered(self) -> list[str]:
        preferred = self.preferred
        if preferred is None:
            return list(self._instances)
        return [preferred] + [i for i in self._instances if i != preferred]

    def remember(self, instance: str) -> None:
        self._preferred = instance
        self._remembered_at = self._clock()

    def forget(self) -> None:
        self._preferred = None


class InstanceExtractor(IAudioExtractor):
    """Tries each service instance in preference order until one resolves the id.

    Subclasses implement ``_try_instance``; it runs in a worker thread and may
    raise, which counts as a failed attempt. Exhausting every instance returns
    None. A call made while another extraction is in flight returns None
    immediately.
    """

    name = "instance"

    def __init__(
        self,
        instances: Sequence[str],
        *,
        timeout: float = 15.0,
        preference_ttl: float = 1800.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._preference = InstancePreference(instances, preference_ttl)
        self._timeout = float(timeout)
        self._session = session or requests.Session()
        self._extracting = False

    @property
    def preference(self) -> InstancePreference:
        return self._preference

    @property
    def extracting(self) -> bool:
        return self._extracting

    async def extract(self, video_id: str) -> Optional[str]:
        if not is_valid_video_id(video_id):
            logger.warning("[%s] refusing invalid video id %r", self.name, video_id)
            return None
        if self._extracting:
            logger.info("[%s] already extracting, skipping %s", self.name, video_id)
            return None
        self._extracting = True
        try:
            logger.info("[%s] extracting audio for %s", self.name, video_id)
            for instance in self._preference.ordered():
                try:
                    result = await asyncio.to_thread(self._try_instance, instance, video_id)
                except Exception as exc:  # noqa: BLE001
                    logger.warning("[%s] failed with %s: %s", self.name, instance, exc)
                    record_extraction(self.name, "error")
                    self._drop_if_preferred(instance)
                    continue
                if result:
                    self._preference.remember(instance)
                    record_extraction(self.name, "success")
                    logger.info("[%s] success with %s", self.name, instance)
                    return result
                record_extraction(self.name, "empty")
                self._drop_if_preferred(instance)
            logger.warning("[%s] all instances failed for %s", self.name, video_id)
            return None
        finally:
            self._extracting = False

    def _drop_if_preferred(self, instance: str) -> None:
        if self._preference.preferred == instance:
            logger.info("[%s] preferred instance %s failed, back to configured order", self.name, instance)
            self._preference.forget()

    def _try_instance(self, instance: str, video_id: str) -> Optional[str]:
        raise NotImplementedError

    @staticmethod
    def watch_url(video_id: str) -> str:
        return f"https://www.youtube.com/watch?v={video_id}"
