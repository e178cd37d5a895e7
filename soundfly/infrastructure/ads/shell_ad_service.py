from __future__ import annotations

import logging

from soundfly.domain.ports.ad_service import IAdService
from soundfly.domain.ports.notification_service import INotificationService

logger = logging.getLogger(__name__)


class ShellAdService(IAdService):
    """The ad SDK lives in the shell; we only tell it when to load and when to show."""

    def __init__(self, notifier: INotificationService) -> None:
        self._notifier = notifier

    async def request_load(self, unit_id: str) -> None:
        logger.debug("ads: requesting interstitial load for %s", unit_id)
        await self._notifier.publish({"type": "ad", "action": "load", "unit_id": unit_id})

    async def show(self, unit_id: str) -> None:
        logger.info("ads: showing interstitial %s", unit_id)
        await self._notifier.publish({"type": "ad", "action": "show", "unit_id": unit_id})
