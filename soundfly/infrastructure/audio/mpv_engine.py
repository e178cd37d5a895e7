"""Audio engine backed by libmpv (python-mpv). Audio only; sources are direct URLs or files."""

from __future__ import annotations

import logging
import threading
from typing import Callable

import mpv

from soundfly.domain.models import TrackMetadata
from soundfly.domain.ports.audio_engine import IAudioEngine

logger = logging.getLogger(__name__)


class MpvAudioEngine(IAudioEngine):
    def __init__(self) -> None:
        # vo='null' because we are audio-only; ytdl off, extraction happens before us
        self._player = mpv.MPV(vo="null", video=False, ytdl=False, idle=True)
        self._player.volume = 100
        self._lock = threading.Lock()
        self._loaded = False
        self._track_end_callbacks: list[Callable[[], None]] = []
        self._player.observe_property("eof-reached", self._handle_eof)
        self._player.observe_property("idle-active", self._handle_idle)

    def load(self, url: str, metadata: TrackMetadata) -> None:
        with self._lock:
            self._player.force_media_title = f"{metadata.artist} - {metadata.title}"
            self._player.pause = True
            self._player.play(url)
            self._loaded = True

    def play(self) -> None:
        with self._lock:
            self._player.pause = False

    def pause(self) -> None:
        with self._lock:
            self._player.pause = True

    def stop(self) -> None:
        with self._lock:
            # cleared first so the idle transition is not taken for a natural end
            self._loaded = False
            self._player.stop()

    def seek(self, position_ms: int) -> None:
        with self._lock:
            self._player.seek(position_ms / 1000.0, reference="absolute")

    def set_volume(self, volume: float) -> None:
        with self._lock:
            self._player.volume = max(0.0, min(1.0, volume)) * 100

    @property
    def position_ms(self) -> int:
        return int(round((self._player.time_pos or 0) * 1000))

    @property
    def duration_ms(self) -> int:
        return int(round((self._player.duration or 0) * 1000))

    @property
    def playing(self) -> bool:
        return not self._player.pause and not self._player.idle_active

    def shutdown(self) -> None:
        self._loaded = False
        self._player.terminate()

    def add_track_end_callback(self, callback: Callable[[], None]) -> None:
        if callback not in self._track_end_callbacks:
            self._track_end_callbacks.append(callback)

    def _handle_eof(self, name: str, value: object) -> None:
        if value:
            self._trigger_track_end()

    def _handle_idle(self, name: str, value: object) -> None:
        # libmpv unloads the file at its end and goes idle without eof-reached
        if value:
            self._trigger_track_end()

    def _trigger_track_end(self) -> None:
        if not self._loaded:
            return
        self._loaded = False
        logger.info("mpv: end of stream reached")
        for callback in list(self._track_end_callbacks):
            try:
                callback()
            except Exception as exc:  # noqa: BLE001
                logger.error("mpv: track end callback failed: %s", exc)
