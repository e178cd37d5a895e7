"""URL and payload heuristics shared by the native handlers and the injected page script.

These are approximations: a URL is treated as audio based on its extension or a
path keyword, and a "video id" is any 11-character token found where the hosted
site's search API puts its first result id. Nothing here inspects content.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Mapping, Optional
from urllib.parse import urljoin, urlsplit


AUDIO_EXTENSIONS: tuple[str, ...] = (
    ".mp3",
    ".m4a",
    ".aac",
    ".ogg",
    ".oga",
    ".opus",
    ".wav",
    ".flac",
    ".webm",
    ".weba",
    ".mp4a",
)

AUDIO_PATH_KEYWORDS: tuple[str, ...] = (
    "/audio/",
    "/storage/",
    "/stream",
    "/track",
    "/music/",
    "/media/",
    "/uploads/",
    "/songs/",
)

NON_MEDIA_SCHEMES: tuple[str, ...] = ("blob:", "data:")

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")


def is_audio_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    candidate = url.strip()
    if candidate.lower().startswith(NON_MEDIA_SCHEMES):
        return False
    path = urlsplit(candidate).path.lower()
    if not path:
        return False
    if path.endswith(AUDIO_EXTENSIONS):
        return True
    return any(keyword in path for keyword in AUDIO_PATH_KEYWORDS)


def resolve_url(url: str, base: Optional[str] = None) -> str:
    """Absolute form of an element's src; relative sources need the page URL."""
    url = (url or "").strip()
    if not base or urlsplit(url).scheme:
        return url
    return urljoin(base, url)


def is_valid_video_id(value: Any) -> bool:
    return isinstance(value, str) and bool(VIDEO_ID_PATTERN.match(value.strip()))


def extract_video_id(payload: Any) -> Optional[str]:
    """First search result id (``results[0].id``) if it looks like a YouTube id."""
    data = payload
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except ValueError:
            return None
    if not isinstance(data, Mapping):
        return None
    results = data.get("results")
    if not isinstance(results, list) or not results:
        return None
    first = results[0]
    if not isinstance(first, Mapping):
        return None
    video_id = first.get("id")
    if not is_valid_video_id(video_id):
        return None
    return video_id.strip()


def sniff_video_id(request_url: Optional[str], body: Any, url_filter: str = "search/audio") -> Optional[str]:
    if url_filter and url_filter not in (request_url or ""):
        return None
    return extract_video_id(body)


def parse_position(value: Any) -> float:
    """Seek position in seconds. The page sends it as a string."""
    if value is None or isinstance(value, bool):
        raise ValueError("position is required")
    try:
        seconds = float(str(value).strip())
    except ValueError:
        raise ValueError(f"invalid position: {value!r}") from None
    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(f"invalid position: {value!r}")
    return seconds
