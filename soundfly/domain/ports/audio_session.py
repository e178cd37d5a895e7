from __future__ import annotations

from typing import Protocol


class IAudioSession(Protocol):
    @property
    def is_active(self) -> bool: ...

    @property
    def interrupted(self) -> bool: ...

    async def configure(self) -> None: ...

    async def activate(self) -> None: ...

    async def deactivate(self) -> None: ...

    async def interruption(self, *, begin: bool) -> None: ...


class IKeepalive(Protocol):
    @property
    def running(self) -> bool: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...
