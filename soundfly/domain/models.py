from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from soundfly.domain.audio_url import parse_position


DEFAULT_TITLE = "Soundfly"
DEFAULT_ARTIST = "Unknown Artist"


class BridgeChannel(str, Enum):
    NATIVE_AUDIO = "nativeAudio"
    YOUTUBE_AUDIO = "youtubeAudio"
    BACKGROUND_AUDIO = "backgroundAudio"
    SHELL = "shell"


class PlayerStatus(str, Enum):
    STOPPED = "stopped"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(slots=True, frozen=True)
class TrackMetadata:
    """Now-playing details shown on the lock screen / media controls."""

    title: str = DEFAULT_TITLE
    artist: str = DEFAULT_ARTIST
    artwork_url: Optional[str] = None

    @classmethod
    def of(cls, title: str | None = None, artist: str | None = None, artwork_url: str | None = None) -> "TrackMetadata":
        return cls(
            title=(title or "").strip() or DEFAULT_TITLE,
            artist=(artist or "").strip() or DEFAULT_ARTIST,
            artwork_url=(artwork_url or "").strip() or None,
        )


@dataclass(slots=True, frozen=True)
class PlaybackIntent:
    """A single detected playback request. Not persisted; the next intent supersedes it."""

    command: str
    source: Optional[str] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    artwork_url: Optional[str] = None
    position: Optional[float] = None


class BridgeMessage(BaseModel):
    """Message as posted by the injected page script on any channel.

    Field names follow the page side (camelCase); unknown keys are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    command: str
    url: Optional[str] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    artwork: Optional[str] = None
    # seconds; the page sends it as a string
    position: Optional[str | float] = None
    volume: Optional[float] = None
    video_id: Optional[str] = Field(default=None, alias="videoId")
    page_url: Optional[str] = Field(default=None, alias="pageUrl")
    body: Optional[str] = None
    state: Optional[str] = None

    def _seconds(self) -> Optional[float]:
        if self.position is None:
            return None
        try:
            return parse_position(self.position)
        except ValueError:
            return None

    def to_intent(self) -> PlaybackIntent:
        return PlaybackIntent(
            command=self.command,
            source=self.url or self.video_id,
            title=self.title,
            artist=self.artist,
            artwork_url=self.artwork,
            position=self._seconds(),
        )


@dataclass(slots=True)
class InterstitialAdState:
    """One pending interstitial unit; replaced after every show or failure."""

    loaded: bool = False
    # a load was asked for and neither loaded nor failed yet
    requested: bool = False
    page_loads: int = 0
