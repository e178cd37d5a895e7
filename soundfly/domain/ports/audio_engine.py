from __future__ import annotations

from typing import Callable, Protocol

from soundfly.domain.models import TrackMetadata


class IAudioEngine(Protocol):
    """Low-level playback engine. Calls are blocking; callers offload them to a thread."""

    def load(self, url: str, metadata: TrackMetadata) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def stop(self) -> None: ...

    def seek(self, position_ms: int) -> None: ...

    def set_volume(self, volume: float) -> None: ...

    @property
    def position_ms(self) -> int: ...

    @property
    def duration_ms(self) -> int: ...

    @property
    def playing(self) -> bool: ...

    def shutdown(self) -> None: ...

    def add_track_end_callback(self, callback: Callable[[], None]) -> None:
        """Called from the engine's own thread when a loaded track plays to its end."""
        ...
