from __future__ import annotations

from typing import Any, Protocol

from soundfly.domain.models import PlayerStatus


class IAudioPlayer(Protocol):
    """Playback facade the bridge handlers drive. Failures are logged, never raised."""

    async def play(
        self,
        source: str,
        *,
        title: str | None = None,
        artist: str | None = None,
        artwork_url: str | None = None,
    ) -> None: ...

    async def pause(self) -> None: ...

    async def resume(self) -> None: ...

    async def stop(self) -> None: ...

    async def seek(self, position_seconds: float) -> None: ...

    async def set_volume(self, volume: float) -> None: ...

    @property
    def status(self) -> PlayerStatus: ...

    @property
    def current_source(self) -> str | None: ...

    @property
    def position(self) -> float: ...

    def snapshot(self) -> dict[str, Any]: ...
