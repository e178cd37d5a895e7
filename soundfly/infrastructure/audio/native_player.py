from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from soundfly.domain.models import PlayerStatus, TrackMetadata
from soundfly.domain.ports.audio_engine import IAudioEngine
from soundfly.domain.ports.audio_player import IAudioPlayer
from soundfly.domain.ports.notification_service import INotificationService, PlayerStatusEvent
from soundfly.infrastructure.metrics.metrics import record_player_status

logger = logging.getLogger(__name__)


class NativeAudioPlayer(IAudioPlayer):
    """Playback facade over an audio engine.

    The engine is an owned handle passed in by the container. Blocking engine
    calls are offloaded to a thread. Engine failures are logged and swallowed;
    the status only changes when the engine call succeeded. A natural end of
    track reported from the engine thread is handed back to the event loop
    that last drove playback.
    """

    def __init__(self, engine: IAudioEngine, notifier: Optional[INotificationService] = None) -> None:
        self._engine = engine
        self._notifier = notifier
        self._current_source: Optional[str] = None
        self._metadata = TrackMetadata()
        self._status = PlayerStatus.STOPPED
        self._volume = 1.0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        engine.add_track_end_callback(self._on_track_end)

    @property
    def status(self) -> PlayerStatus:
        return self._status

    @property
    def current_source(self) -> Optional[str]:
        return self._current_source

    @property
    def metadata(self) -> TrackMetadata:
        return self._metadata

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def is_playing(self) -> bool:
        try:
            return bool(self._engine.playing)
        except Exception:  # noqa: BLE001
            return False

    @property
    def position(self) -> float:
        try:
            return self._engine.position_ms / 1000.0
        except Exception:  # noqa: BLE001
            return 0.0

    @property
    def duration(self) -> float:
        try:
            return (self._engine.duration_ms or 0) / 1000.0
        except Exception:  # noqa: BLE001
            return 0.0

    async def _to_thread(self, func: Callable[..., Any], *args: Any) -> Any:
        self._loop = asyncio.get_running_loop()
        return await asyncio.to_thread(func, *args)

    def _on_track_end(self) -> None:
        # engine thread
        loop = self._loop
        source = self._current_source
        if loop is None or loop.is_closed() or source is None:
            return
        try:
            asyncio.run_coroutine_threadsafe(self._finish_track(source), loop)
        except RuntimeError as exc:
            logger.debug("native player: track end dropped: %s", exc)

    async def _finish_track(self, source: str) -> None:
        if self._current_source != source:
            return
        self._current_source = None
        logger.info("native player: track ended")
        await self._set_status(PlayerStatus.STOPPED)

    async def _set_status(self, status: PlayerStatus) -> None:
        if status == self._status:
            return
        self._status = status
        record_player_status(status.value)
        if self._notifier is None:
            return
        event: PlayerStatusEvent = {
            "type": "player_status",
            "status": status.value,
            "source": self._current_source,
            "title": self._metadata.title,
            "artist": self._metadata.artist,
        }
        try:
            await self._notifier.publish(dict(event))
        except Exception as exc:  # noqa: BLE001
            logger.debug("player status publish failed: %s", exc)

    async def play(
        self,
        source: str,
        *,
        title: str | None = None,
        artist: str | None = None,
        artwork_url: str | None = None,
    ) -> None:
        previous = self._status
        metadata = TrackMetadata.of(title, artist, artwork_url)
        try:
            # Only reload if the source changed
            if source != self._current_source:
                await self._set_status(PlayerStatus.LOADING)
                await self._to_thread(self._engine.load, source, metadata)
                self._current_source = source
                logger.info("native player: loaded %s (%s - %s)", source, metadata.artist, metadata.title)
            self._metadata = metadata
            await self._to_thread(self._engine.play)
            logger.info("native player: playing")
            await self._set_status(PlayerStatus.PLAYING)
        except Exception as exc:  # noqa: BLE001
            logger.error("native player: play failed for %s: %s", source, exc)
            await self._set_status(previous)

    async def pause(self) -> None:
        try:
            await self._to_thread(self._engine.pause)
            logger.info("native player: paused")
            if self._current_source is not None:
                await self._set_status(PlayerStatus.PAUSED)
        except Exception as exc:  # noqa: BLE001
            logger.error("native player: pause failed: %s", exc)

    async def resume(self) -> None:
        if self._current_source is None:
            logger.debug("native player: resume ignored, nothing loaded")
            return
        try:
            await self._to_thread(self._engine.play)
            logger.info("native player: resumed")
            await self._set_status(PlayerStatus.PLAYING)
        except Exception as exc:  # noqa: BLE001
            logger.error("native player: resume failed: %s", exc)

    async def stop(self) -> None:
        try:
            await self._to_thread(self._engine.stop)
            self._current_source = None
            logger.info("native player: stopped")
            await self._set_status(PlayerStatus.STOPPED)
        except Exception as exc:  # noqa: BLE001
            logger.error("native player: stop failed: %s", exc)

    async def seek(self, position_seconds: float) -> None:
        position_ms = int(round(position_seconds * 1000))
        try:
            await self._to_thread(self._engine.seek, position_ms)
            logger.debug("native player: seeked to %.3fs", position_seconds)
        except Exception as exc:  # noqa: BLE001
            logger.error("native player: seek failed: %s", exc)

    async def set_volume(self, volume: float) -> None:
        volume = max(0.0, min(1.0, float(volume)))
        try:
            await self._to_thread(self._engine.set_volume, volume)
            self._volume = volume
        except Exception as exc:  # noqa: BLE001
            logger.error("native player: set volume failed: %s", exc)

    async def shutdown(self) -> None:
        try:
            await self._to_thread(self._engine.shutdown)
        except Exception as exc:  # noqa: BLE001
            logger.warning("native player: engine shutdown failed: %s", exc)

    def snapshot(self) -> dict[str, Any]:
        return {
            "status": self._status.value,
            "source": self._current_source,
            "title": self._metadata.title,
            "artist": self._metadata.artist,
            "artwork_url": self._metadata.artwork_url,
            "position": self.position,
            "duration": self.duration,
            "volume": self._volume,
            "playing": self.is_playing,
        }
