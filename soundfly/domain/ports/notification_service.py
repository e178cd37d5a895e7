from __future__ import annotations

from typing import Any, Literal, Protocol, TypedDict


class ToastEvent(TypedDict, total=False):
    type: Literal["toast"]
    message: str
    level: Literal["info", "success", "warning", "error"]
    timeout_ms: int


class PlayerStatusEvent(TypedDict, total=False):
    type: Literal["player_status"]
    status: str
    source: str | None
    title: str
    artist: str


class INotificationService(Protocol):
    """Push channel from the native side back to the hosted page."""

    async def publish(self, event: dict[str, Any]) -> None: ...

    async def publish_toast(
        self,
        message: str,
        *,
        level: Literal["info", "success", "warning", "error"] = "info",
        timeout_ms: int = 2000,
    ) -> None: ...
