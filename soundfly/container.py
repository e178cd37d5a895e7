from __future__ import annotations

from functools import lru_cache

from soundfly.config import settings
from soundfly.domain.models import BridgeChannel, InterstitialAdState
from soundfly.domain.ports.audio_engine import IAudioEngine
from soundfly.domain.ports.audio_extractor import IAudioExtractor
from soundfly.domain.ports.notification_service import INotificationService
from soundfly.infrastructure.ads.shell_ad_service import ShellAdService
from soundfly.infrastructure.audio.audio_session import LocalAudioSession, SessionKeepalive
from soundfly.infrastructure.audio.native_player import NativeAudioPlayer
from soundfly.infrastructure.bridge.notification_service_impl import bridge_notifications
from soundfly.infrastructure.extraction.factory import build_extractor
from soundfly.application.use_cases.ad_use_cases import MarkAdLoaded, RecordPageLoad, ReplaceAd, RequestAdLoad
from soundfly.application.use_cases.toast_use_cases import ToastError
from soundfly.application.use_cases.playback_use_cases import (
    GetPlayerStatus,
    PauseAudio,
    PlayAudio,
    ResumeAudio,
    SeekAudio,
    SetVolume,
    StopAudio,
)
from soundfly.application.use_cases.bridge_use_cases import (
    DispatchBridgeMessage,
    HandleBackgroundAudioMessage,
    HandleNativeAudioMessage,
    HandleShellMessage,
    HandleYoutubeAudioMessage,
)


@lru_cache(maxsize=1)
def audio_engine() -> IAudioEngine:
    # lazy import: loading python-mpv needs libmpv on the host
    from soundfly.infrastructure.audio.mpv_engine import MpvAudioEngine

    return MpvAudioEngine()


@lru_cache(maxsize=1)
def notification_service() -> INotificationService:
    return bridge_notifications


@lru_cache(maxsize=1)
def native_player() -> NativeAudioPlayer:
    return NativeAudioPlayer(engine=audio_engine(), notifier=notification_service())


@lru_cache(maxsize=1)
def audio_extractor() -> IAudioExtractor:
    return build_extractor(settings)


@lru_cache(maxsize=1)
def audio_session() -> LocalAudioSession:
    return LocalAudioSession()


@lru_cache(maxsize=1)
def session_keepalive() -> SessionKeepalive:
    return SessionKeepalive(audio_session(), interval=settings.keepalive_interval)


@lru_cache(maxsize=1)
def ad_state() -> InterstitialAdState:
    return InterstitialAdState()


@lru_cache(maxsize=1)
def ad_service() -> ShellAdService:
    return ShellAdService(notification_service())


@lru_cache(maxsize=None)
def toast_error() -> ToastError:
    return ToastError(svc=notification_service())


# Player use-cases
@lru_cache(maxsize=None)
def get_player_status() -> GetPlayerStatus:
    return GetPlayerStatus(player=native_player())


@lru_cache(maxsize=None)
def play_audio() -> PlayAudio:
    return PlayAudio(player=native_player())


@lru_cache(maxsize=None)
def pause_audio() -> PauseAudio:
    return PauseAudio(player=native_player())


@lru_cache(maxsize=None)
def resume_audio() -> ResumeAudio:
    return ResumeAudio(player=native_player())


@lru_cache(maxsize=None)
def stop_audio() -> StopAudio:
    return StopAudio(player=native_player())


@lru_cache(maxsize=None)
def seek_audio() -> SeekAudio:
    return SeekAudio(player=native_player())


@lru_cache(maxsize=None)
def set_volume() -> SetVolume:
    return SetVolume(player=native_player())


# Ad use-cases
@lru_cache(maxsize=1)
def request_ad_load() -> RequestAdLoad:
    return RequestAdLoad(
        state=ad_state(),
        svc=ad_service(),
        enabled=settings.admob_enabled,
        unit_id=settings.admob_interstitial_id,
        retry_delay=settings.interstitial_retry_delay,
    )


@lru_cache(maxsize=None)
def record_page_load() -> RecordPageLoad:
    return RecordPageLoad(
        state=ad_state(),
        svc=ad_service(),
        enabled=settings.admob_enabled,
        unit_id=settings.admob_interstitial_id,
        request_load=request_ad_load(),
        interval=settings.interstitial_interval,
    )


# Bridge channel handlers
@lru_cache(maxsize=None)
def handle_native_audio() -> HandleNativeAudioMessage:
    return HandleNativeAudioMessage(player=native_player(), session=audio_session())


@lru_cache(maxsize=None)
def handle_youtube_audio() -> HandleYoutubeAudioMessage:
    return HandleYoutubeAudioMessage(
        player=native_player(),
        extractor=audio_extractor(),
        session=audio_session(),
        toast_error=toast_error(),
        sniff_url_filter=settings.sniff_url_filter,
        prepared_ttl=settings.extraction_preference_ttl,
    )


@lru_cache(maxsize=None)
def handle_background_audio() -> HandleBackgroundAudioMessage:
    return HandleBackgroundAudioMessage(keepalive=session_keepalive(), enabled=settings.background_audio_enabled)


@lru_cache(maxsize=None)
def handle_shell() -> HandleShellMessage:
    return HandleShellMessage(
        session=audio_session(),
        record_page_load=record_page_load(),
        mark_ad_loaded=MarkAdLoaded(state=ad_state()),
        replace_ad=ReplaceAd(state=ad_state(), request_load=request_ad_load()),
    )


@lru_cache(maxsize=1)
def bridge_dispatcher() -> DispatchBridgeMessage:
    return DispatchBridgeMessage(
        handlers={
            BridgeChannel.NATIVE_AUDIO: handle_native_audio(),
            BridgeChannel.YOUTUBE_AUDIO: handle_youtube_audio(),
            BridgeChannel.BACKGROUND_AUDIO: handle_background_audio(),
            BridgeChannel.SHELL: handle_shell(),
        }
    )
