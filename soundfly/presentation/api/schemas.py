from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class PlayRequest(BaseModel):
    url: str
    title: Optional[str] = None
    artist: Optional[str] = None
    artwork: Optional[str] = None


class SeekRequest(BaseModel):
    # seconds, string or number like the page sends it
    position: str | float


class VolumeRequest(BaseModel):
    volume: float = Field(ge=0.0, le=1.0)
