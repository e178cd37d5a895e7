from __future__ import annotations

from typing import Protocol


class IAudioExtractor(Protocol):
    name: str

    async def extract(self, video_id: str) -> str | None:
        """Resolve a YouTube video id to a directly playable URL or local file path.

        Returns None when every configured service instance failed.
        """
        ...
