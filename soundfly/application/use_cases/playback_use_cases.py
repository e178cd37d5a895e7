from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from soundfly.domain.audio_url import parse_position
from soundfly.domain.ports.audio_player import IAudioPlayer


@dataclass(slots=True)
class GetPlayerStatus:
    player: IAudioPlayer

    def __call__(self) -> dict[str, Any]:
        return self.player.snapshot()


@dataclass(slots=True)
class PlayAudio:
    player: IAudioPlayer

    async def __call__(
        self,
        source: str,
        *,
        title: str | None = None,
        artist: str | None = None,
        artwork_url: str | None = None,
    ) -> dict[str, Any]:
        await self.player.play(source, title=title, artist=artist, artwork_url=artwork_url)
        return self.player.snapshot()


@dataclass(slots=True)
class PauseAudio:
    player: IAudioPlayer

    async def __call__(self) -> dict[str, Any]:
        await self.player.pause()
        return self.player.snapshot()


@dataclass(slots=True)
class ResumeAudio:
    player: IAudioPlayer

    async def __call__(self) -> dict[str, Any]:
        await self.player.resume()
        return self.player.snapshot()


@dataclass(slots=True)
class StopAudio:
    player: IAudioPlayer

    async def __call__(self) -> dict[str, Any]:
        await self.player.stop()
        return self.player.snapshot()


@dataclass(slots=True)
class SeekAudio:
    player: IAudioPlayer

    async def __call__(self, position: str | float) -> dict[str, Any]:
        # raises ValueError on a bad position; routes turn it into a 400
        await self.player.seek(parse_position(position))
        return self.player.snapshot()


@dataclass(slots=True)
class SetVolume:
    player: IAudioPlayer

    async def __call__(self, volume: float) -> dict[str, Any]:
        await self.player.set_volume(volume)
        return self.player.snapshot()
