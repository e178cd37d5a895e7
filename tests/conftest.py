from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest

from soundfly.application.use_cases.ad_use_cases import MarkAdLoaded, RecordPageLoad, ReplaceAd, RequestAdLoad
from soundfly.application.use_cases.bridge_use_cases import (
    DispatchBridgeMessage,
    HandleBackgroundAudioMessage,
    HandleNativeAudioMessage,
    HandleShellMessage,
    HandleYoutubeAudioMessage,
)
from soundfly.application.use_cases.toast_use_cases import ToastError
from soundfly.domain.models import BridgeChannel, InterstitialAdState, TrackMetadata
from soundfly.infrastructure.ads.shell_ad_service import ShellAdService
from soundfly.infrastructure.audio.audio_session import LocalAudioSession, SessionKeepalive
from soundfly.infrastructure.audio.native_player import NativeAudioPlayer


class FakeEngine:
    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self._position_ms = 0
        self._playing = False
        self.track_end_callbacks: list = []

    def _record(self, name: str, *args: Any) -> None:
        if name in self.fail_on:
            raise RuntimeError(f"engine {name} failed")
        self.calls.append((name, *args))

    def load(self, url: str, metadata: TrackMetadata) -> None:
        self._record("load", url, metadata)

    def play(self) -> None:
        self._record("play")
        self._playing = True

    def pause(self) -> None:
        self._record("pause")
        self._playing = False

    def stop(self) -> None:
        self._record("stop")
        self._playing = False
        self._position_ms = 0

    def seek(self, position_ms: int) -> None:
        self._record("seek", position_ms)
        self._position_ms = position_ms

    def set_volume(self, volume: float) -> None:
        self._record("set_volume", volume)

    @property
    def position_ms(self) -> int:
        return self._position_ms

    @property
    def duration_ms(self) -> int:
        return 180_000

    @property
    def playing(self) -> bool:
        return self._playing

    def shutdown(self) -> None:
        self._record("shutdown")

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def add_track_end_callback(self, callback) -> None:
        self.track_end_callbacks.append(callback)

    def finish(self) -> None:
        """Plays the loaded track to its end, as the engine thread would report it."""
        self._playing = False
        for callback in list(self.track_end_callbacks):
            callback()


class FakeNotifier:
    def __init__(self) -> None:
        self.events: list[dict] = []

    async def publish(self, event: dict) -> None:
        self.events.append(event)

    async def publish_toast(self, message: str, *, level: str = "info", timeout_ms: int = 2000) -> None:
        await self.publish({"type": "toast", "message": message, "level": level, "timeout_ms": timeout_ms})

    def toasts(self, level: Optional[str] = None) -> list[dict]:
        return [e for e in self.events if e.get("type") == "toast" and (level is None or e.get("level") == level)]


class FakeExtractor:
    name = "fake"

    def __init__(self, results: Optional[dict[str, Optional[str]]] = None, delay: float = 0.0) -> None:
        self.results = results or {}
        self.delay = delay
        self.calls: list[str] = []

    async def extract(self, video_id: str) -> Optional[str]:
        self.calls.append(video_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.results.get(video_id)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, chunks: Optional[list[bytes]] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self._chunks = chunks or []

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")

    def iter_content(self, chunk_size: int = 1024):
        yield from self._chunks

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None


class FakeSession:
    """Maps URL -> response (or exception) for both GET and POST."""

    def __init__(self, responses: dict[str, Any]) -> None:
        self.responses = responses
        self.requests: list[dict] = []

    def _respond(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        result = self.responses.get(url)
        if result is None:
            return FakeResponse(status_code=404, payload={})
        if isinstance(result, Exception):
            raise result
        return result

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._respond("POST", url, **kwargs)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._respond("GET", url, **kwargs)


class Bridge:
    """A fully wired dispatcher over fakes."""

    def __init__(
        self,
        extractor: FakeExtractor,
        *,
        ads_enabled: bool = False,
        interval: int = 3,
        ad_retry_delay: float = 30.0,
        notifier: Any = None,
        clock: Any = None,
    ) -> None:
        self.engine = FakeEngine()
        self.notifier = notifier or FakeNotifier()
        self.player = NativeAudioPlayer(self.engine, self.notifier)
        self.session = LocalAudioSession()
        self.keepalive = SessionKeepalive(self.session, interval=5.0)
        self.extractor = extractor
        self.ad_state = InterstitialAdState()
        ad_service = ShellAdService(self.notifier)
        self.request_ad_load = RequestAdLoad(
            state=self.ad_state,
            svc=ad_service,
            enabled=ads_enabled,
            unit_id="unit-1",
            retry_delay=ad_retry_delay,
        )
        self.youtube = HandleYoutubeAudioMessage(
            player=self.player,
            extractor=extractor,
            session=self.session,
            toast_error=ToastError(svc=self.notifier),
        )
        if clock is not None:
            self.youtube.clock = clock
        self.dispatch = DispatchBridgeMessage(
            handlers={
                BridgeChannel.NATIVE_AUDIO: HandleNativeAudioMessage(player=self.player, session=self.session),
                BridgeChannel.YOUTUBE_AUDIO: self.youtube,
                BridgeChannel.BACKGROUND_AUDIO: HandleBackgroundAudioMessage(keepalive=self.keepalive),
                BridgeChannel.SHELL: HandleShellMessage(
                    session=self.session,
                    record_page_load=RecordPageLoad(
                        state=self.ad_state,
                        svc=ad_service,
                        enabled=ads_enabled,
                        unit_id="unit-1",
                        request_load=self.request_ad_load,
                        interval=interval,
                    ),
                    mark_ad_loaded=MarkAdLoaded(state=self.ad_state),
                    replace_ad=ReplaceAd(state=self.ad_state, request_load=self.request_ad_load),
                ),
            }
        )

    def send(self, channel: str, payload: dict) -> dict:
        return asyncio.run(self.dispatch(channel, payload))


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def player(engine: FakeEngine, notifier: FakeNotifier) -> NativeAudioPlayer:
    return NativeAudioPlayer(engine, notifier)


@pytest.fixture
def bridge() -> Bridge:
    return Bridge(FakeExtractor({"dQw4w9WgXcQ": "https://cdn.example/x.mp3"}))
