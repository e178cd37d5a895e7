from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional
from urllib.parse import urlsplit

from soundfly.application.use_cases.ad_use_cases import MarkAdLoaded, RecordPageLoad, ReplaceAd
from soundfly.application.use_cases.toast_use_cases import ToastError
from soundfly.domain.audio_url import (
    is_audio_url,
    is_valid_video_id,
    parse_position,
    resolve_url,
    sniff_video_id,
)
from soundfly.domain.models import BridgeChannel, BridgeMessage, PlaybackIntent, PlayerStatus
from soundfly.domain.ports.audio_extractor import IAudioExtractor
from soundfly.domain.ports.audio_player import IAudioPlayer
from soundfly.domain.ports.audio_session import IAudioSession, IKeepalive

logger = logging.getLogger(__name__)

EXTRACTION_FAILED_MESSAGE = "Could not load audio"

Handler = Callable[[BridgeMessage], Awaitable[dict[str, Any]]]


class UnknownChannelError(LookupError):
    pass


def _unknown(channel: BridgeChannel, command: str) -> dict[str, Any]:
    logger.warning("%s: unknown command %r", channel.value, command)
    return {"ok": False, "reason": "unknown_command"}


def youtube_thumbnail_url(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/mqdefault.jpg"


@dataclass(slots=True)
class HandleNativeAudioMessage:
    """``nativeAudio`` channel: the page's own <audio> elements, mirrored natively."""

    player: IAudioPlayer
    session: IAudioSession

    async def __call__(self, msg: BridgeMessage) -> dict[str, Any]:
        command = msg.command
        if command == "play":
            url = resolve_url(msg.url or "", msg.page_url)
            if not is_audio_url(url):
                logger.info("nativeAudio: ignoring non-audio source %r", msg.url)
                return {"ok": False, "reason": "not_audio"}
            await self.session.activate()
            await self.player.play(url, title=msg.title, artist=msg.artist, artwork_url=msg.artwork)
        elif command == "pause":
            await self.player.pause()
        elif command == "resume":
            await self.player.resume()
        elif command in ("stop", "ended"):
            await self.player.stop()
        elif command == "seek":
            try:
                position = parse_position(msg.position)
            except ValueError as exc:
                logger.info("nativeAudio: %s", exc)
                return {"ok": False, "reason": "invalid_position"}
            await self.player.seek(position)
        elif command == "volume":
            if msg.volume is None:
                return {"ok": False, "reason": "invalid_volume"}
            await self.player.set_volume(msg.volume)
        else:
            return _unknown(BridgeChannel.NATIVE_AUDIO, command)
        return {"ok": True, "status": self.player.status.value}


@dataclass(slots=True)
class HandleYoutubeAudioMessage:
    """``youtubeAudio`` channel: YouTube ids seen in the page, played through extraction.

    Only the most recently resolved id is remembered, for ``prepared_ttl``
    seconds at most. A play for an id whose extraction is still running waits
    for it instead of starting another. A remembered source that no longer
    plays (expired tunnel, cleaned-up download) is forgotten so the next play
    extracts again.
    """

    player: IAudioPlayer
    extractor: IAudioExtractor
    session: IAudioSession
    toast_error: ToastError
    sniff_url_filter: str = "search/audio"
    prepared_ttl: float = 1800.0
    clock: Callable[[], float] = time.monotonic
    # video id -> (source, resolved at)
    prepared: dict[str, tuple[str, float]] = field(default_factory=dict)
    inflight: dict[str, "asyncio.Future[Optional[str]]"] = field(default_factory=dict)

    def _cached(self, video_id: str) -> Optional[str]:
        entry = self.prepared.get(video_id)
        if entry is None:
            return None
        source, resolved_at = entry
        if self.prepared_ttl > 0 and self.clock() - resolved_at > self.prepared_ttl:
            logger.info("youtubeAudio: prepared source for %s expired", video_id)
        elif not urlsplit(source).scheme and not os.path.exists(source):
            logger.info("youtubeAudio: prepared file for %s is gone", video_id)
        else:
            return source
        self.forget(video_id)
        return None

    def forget(self, video_id: str) -> None:
        self.prepared.pop(video_id, None)

    async def resolve(self, video_id: str) -> Optional[str]:
        cached = self._cached(video_id)
        if cached:
            return cached
        pending = self.inflight.get(video_id)
        if pending is not None:
            return await asyncio.shield(pending)
        task = asyncio.ensure_future(self.extractor.extract(video_id))
        self.inflight = {video_id: task}
        try:
            source = await asyncio.shield(task)
        finally:
            if self.inflight.get(video_id) is task:
                self.inflight = {}
        if source:
            self.prepared = {video_id: (source, self.clock())}
        return source

    async def _play(self, msg: BridgeMessage, video_id: str) -> dict[str, Any]:
        source = await self.resolve(video_id)
        if not source:
            logger.warning("youtubeAudio: no audio source for %s", video_id)
            await self.toast_error(EXTRACTION_FAILED_MESSAGE)
            return {"ok": False, "reason": "extraction_failed", "videoId": video_id}
        await self.session.activate()
        await self.player.play(
            source,
            title=msg.title,
            artist=msg.artist,
            artwork_url=msg.artwork or youtube_thumbnail_url(video_id),
        )
        if self.player.status is not PlayerStatus.PLAYING or self.player.current_source != source:
            logger.warning("youtubeAudio: source for %s did not play, forgetting it", video_id)
            self.forget(video_id)
            await self.toast_error(EXTRACTION_FAILED_MESSAGE)
            return {
                "ok": False,
                "reason": "playback_failed",
                "status": self.player.status.value,
                "videoId": video_id,
            }
        return {"ok": True, "status": self.player.status.value, "videoId": video_id}

    async def __call__(self, msg: BridgeMessage) -> dict[str, Any]:
        command = msg.command
        if command in ("prepare", "play", "background"):
            video_id = (msg.video_id or "").strip()
            if not is_valid_video_id(video_id):
                return {"ok": False, "reason": "invalid_video_id"}
            if command == "prepare":
                source = await self.resolve(video_id)
                return {"ok": bool(source), "videoId": video_id, "prepared": bool(source)}
            return await self._play(msg, video_id)
        if command == "sniff":
            video_id = sniff_video_id(msg.url, msg.body, self.sniff_url_filter)
            if video_id is None:
                return {"ok": False, "reason": "no_video_id"}
            logger.info("youtubeAudio: sniffed video id %s from %s", video_id, msg.url)
            source = await self.resolve(video_id)
            return {"ok": bool(source), "videoId": video_id, "prepared": bool(source)}
        if command == "pause":
            await self.player.pause()
        elif command == "ended":
            await self.player.stop()
        elif command == "foreground":
            # hand playback back to the page at the native position
            position = self.player.position
            await self.player.pause()
            return {"ok": True, "status": self.player.status.value, "position": position}
        else:
            return _unknown(BridgeChannel.YOUTUBE_AUDIO, command)
        return {"ok": True, "status": self.player.status.value}


@dataclass(slots=True)
class HandleBackgroundAudioMessage:
    """``backgroundAudio`` channel: keep the audio session alive while backgrounded."""

    keepalive: IKeepalive
    enabled: bool = True

    async def __call__(self, msg: BridgeMessage) -> dict[str, Any]:
        if msg.command == "start":
            if not self.enabled:
                return {"ok": False, "reason": "disabled"}
            self.keepalive.start()
        elif msg.command == "stop":
            self.keepalive.stop()
        else:
            return _unknown(BridgeChannel.BACKGROUND_AUDIO, msg.command)
        return {"ok": True, "keepalive": self.keepalive.running}


@dataclass(slots=True)
class HandleShellMessage:
    """``shell`` channel: page loads, app lifecycle and interstitial ad events."""

    session: IAudioSession
    record_page_load: RecordPageLoad
    mark_ad_loaded: MarkAdLoaded
    replace_ad: ReplaceAd

    async def __call__(self, msg: BridgeMessage) -> dict[str, Any]:
        command = msg.command
        if command == "page_loaded":
            await self.session.activate()
            shown = await self.record_page_load()
            return {"ok": True, "interstitial": shown}
        if command == "lifecycle":
            state = (msg.state or "").strip().lower()
            if state in ("paused", "resumed"):
                # keep the session active across background/foreground transitions
                await self.session.activate()
            elif state == "interrupted":
                await self.session.interruption(begin=True)
            elif state == "interruption_ended":
                await self.session.interruption(begin=False)
            else:
                logger.debug("shell: lifecycle state %r ignored", state)
            return {"ok": True, "session_active": self.session.is_active}
        if command == "ad_loaded":
            self.mark_ad_loaded()
        elif command in ("ad_dismissed", "ad_failed"):
            await self.replace_ad(failed=command == "ad_failed")
        else:
            return _unknown(BridgeChannel.SHELL, command)
        return {"ok": True}


@dataclass(slots=True)
class DispatchBridgeMessage:
    """Routes a raw channel message to its handler.

    Raises UnknownChannelError for an unknown channel and ValueError for a
    malformed message. Handler failures are logged and reported as ``ok: False``.
    """

    handlers: Mapping[BridgeChannel, Handler]
    # latest intent only, never persisted
    last_intent: Optional[PlaybackIntent] = None

    async def __call__(self, channel: str, payload: Mapping[str, Any] | BridgeMessage) -> dict[str, Any]:
        try:
            ch = BridgeChannel(channel)
        except ValueError:
            raise UnknownChannelError(f"unknown channel: {channel}") from None
        handler = self.handlers.get(ch)
        if handler is None:
            raise UnknownChannelError(f"channel not enabled: {channel}")
        msg = payload if isinstance(payload, BridgeMessage) else BridgeMessage.model_validate(payload)
        self.last_intent = msg.to_intent()
        logger.debug("bridge %s.%s", ch.value, msg.command)
        try:
            result = await handler(msg)
        except Exception:  # noqa: BLE001
            logger.exception("bridge %s.%s failed", ch.value, msg.command)
            result = {"ok": False, "reason": "internal_error"}
        return {"channel": ch.value, "command": msg.command, **result}
