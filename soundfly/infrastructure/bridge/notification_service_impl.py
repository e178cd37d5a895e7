from __future__ import annotations

import asyncio
import logging
from typing import Any, Set

from fastapi import WebSocket

from soundfly.domain.ports.notification_service import INotificationService, ToastEvent

logger = logging.getLogger(__name__)


class BridgeNotificationService(INotificationService):
    """Broadcasts events to every page connected on the bridge WebSocket."""

    def __init__(self) -> None:
        self._clients: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def register(self, ws: WebSocket) -> None:
        async with self._lock:
            self._clients.add(ws)

    async def unregister(self, ws: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(ws)

    async def publish(self, event: dict[str, Any]) -> None:
        # broadcast without failing the caller
        async with self._lock:
            clients = list(self._clients)
        to_drop: list[WebSocket] = []
        for ws in clients:
            try:
                await ws.send_json(event)
            except Exception:
                to_drop.append(ws)
        if to_drop:
            logger.debug("dropping %s disconnected bridge client(s)", len(to_drop))
            async with self._lock:
                for ws in to_drop:
                    self._clients.discard(ws)

    async def publish_toast(self, message: str, *, level: str = "info", timeout_ms: int = 2000) -> None:
        event: ToastEvent = {"type": "toast", "message": message, "level": level, "timeout_ms": timeout_ms}
        await self.publish(dict(event))


# singleton instance for app wiring
bridge_notifications = BridgeNotificationService()
