from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from soundfly.domain.ports.ad_service import IAdService
from soundfly.domain.models import InterstitialAdState

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RequestAdLoad:
    """Asks the shell for the next interstitial unit unless one is loaded or on its way.

    After a failed load the request is repeated once ``retry_delay`` seconds
    have passed.
    """

    state: InterstitialAdState
    svc: IAdService
    enabled: bool
    unit_id: str
    retry_delay: float = 30.0
    _retry: Optional["asyncio.Task[None]"] = field(default=None, init=False, repr=False)

    async def __call__(self) -> bool:
        if not self.enabled or self.state.loaded or self.state.requested:
            return False
        self.state.requested = True
        await self.svc.request_load(self.unit_id)
        return True

    def retry_later(self) -> None:
        self.cancel_retry()
        self.state.requested = False
        if not self.enabled:
            return
        logger.info("ads: interstitial load failed, retrying in %.0fs", self.retry_delay)
        self._retry = asyncio.get_running_loop().create_task(self._retry_after_delay())

    def cancel_retry(self) -> None:
        if self._retry is not None and not self._retry.done():
            self._retry.cancel()
        self._retry = None

    async def _retry_after_delay(self) -> None:
        await asyncio.sleep(self.retry_delay)
        await self()


@dataclass(slots=True)
class RecordPageLoad:
    """Counts page loads and shows the pending interstitial every ``interval`` loads.

    A page load with no unit loaded or requested asks for one first.
    """

    state: InterstitialAdState
    svc: IAdService
    enabled: bool
    unit_id: str
    request_load: RequestAdLoad
    interval: int = 3

    async def __call__(self) -> bool:
        self.state.page_loads += 1
        if not self.enabled or self.interval <= 0:
            return False
        if not self.state.loaded:
            await self.request_load()
        if self.state.page_loads % self.interval != 0:
            return False
        if not self.state.loaded:
            logger.debug("ads: cadence hit at %s loads but nothing loaded", self.state.page_loads)
            return False
        # consumed; the shell reports dismissal or failure, which triggers the next load
        self.state.loaded = False
        await self.svc.show(self.unit_id)
        return True


@dataclass(slots=True)
class MarkAdLoaded:
    state: InterstitialAdState

    def __call__(self) -> None:
        self.state.loaded = True
        self.state.requested = False


@dataclass(slots=True)
class ReplaceAd:
    """After a show or a failure the pending ad is gone; ask for a new one."""

    state: InterstitialAdState
    request_load: RequestAdLoad

    async def __call__(self, *, failed: bool = False) -> None:
        self.state.loaded = False
        if failed:
            self.request_load.retry_later()
            return
        self.request_load.cancel_retry()
        self.state.requested = False
        await self.request_load()
