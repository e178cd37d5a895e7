from __future__ import annotations

from dataclasses import dataclass

from soundfly.domain.ports.notification_service import INotificationService


@dataclass(slots=True)
class ToastError:
    svc: INotificationService

    async def __call__(self, message: str, timeout_ms: int = 3000) -> None:
        await self.svc.publish_toast(message, level="error", timeout_ms=timeout_ms)
