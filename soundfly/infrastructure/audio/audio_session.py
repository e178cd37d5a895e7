from __future__ import annotations

import asyncio
import logging
from typing import Optional

from soundfly.domain.ports.audio_session import IAudioSession, IKeepalive

logger = logging.getLogger(__name__)


class LocalAudioSession(IAudioSession):
    """Playback audio session state for the host process.

    Category: playback, mixing allowed. An interruption end re-activates the
    session so playback can continue after a call or another app's audio.
    """

    def __init__(self) -> None:
        self._configured = False
        self._active = False
        self._interrupted = False

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def is_configured(self) -> bool:
        return self._configured

    @property
    def interrupted(self) -> bool:
        return self._interrupted

    async def configure(self) -> None:
        if self._configured:
            return
        self._configured = True
        await self.activate()
        logger.info("audio session configured for background playback")

    async def activate(self) -> None:
        if not self._configured:
            await self.configure()
            return
        if not self._active:
            logger.info("audio session activated")
        self._active = True

    async def deactivate(self) -> None:
        if self._active:
            logger.info("audio session deactivated")
        self._active = False

    async def interruption(self, *, begin: bool) -> None:
        if begin:
            logger.info("audio session interrupted")
            self._interrupted = True
            return
        logger.info("audio interruption ended; reactivating session")
        self._interrupted = False
        await self.activate()


class SessionKeepalive(IKeepalive):
    """Heartbeat that keeps the audio session active while the page plays in background."""

    def __init__(self, session: IAudioSession, interval: float = 20.0) -> None:
        self._session = session
        self._interval = max(1.0, float(interval))
        self._stop: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            if self._session.interrupted:
                # the interruption end re-activates the session itself
                logger.debug("keepalive: session interrupted, skipping activation")
            else:
                try:
                    await self._session.activate()
                except Exception as exc:  # noqa: BLE001
                    logger.warning("keepalive: session activation failed; will retry: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

    def start(self) -> None:
        if self.running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._loop(self._stop))
        logger.info("keepalive started (every %.0fs)", self._interval)

    def stop(self) -> None:
        try:
            if self._stop is not None:
                self._stop.set()
            if self._task is not None:
                self._task.cancel()
        finally:
            if self._task is not None:
                logger.info("keepalive stopped")
            self._stop = None
            self._task = None
