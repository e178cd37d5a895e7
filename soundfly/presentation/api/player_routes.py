from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from soundfly.application.use_cases.playback_use_cases import (
    GetPlayerStatus,
    PauseAudio,
    PlayAudio,
    ResumeAudio,
    SeekAudio,
    SetVolume,
    StopAudio,
)
from soundfly.container import (
    get_player_status,
    pause_audio,
    play_audio,
    resume_audio,
    seek_audio,
    set_volume as uc_set_volume,
    stop_audio,
)
from soundfly.presentation.api.schemas import PlayRequest, SeekRequest, VolumeRequest


router = APIRouter(prefix="/api/player")


@router.get("/status")
async def player_status(uc: GetPlayerStatus = Depends(get_player_status)) -> dict:
    return uc()


@router.post("/play")
async def player_play(req: PlayRequest, uc: PlayAudio = Depends(play_audio)) -> dict:
    if not req.url.strip():
        raise HTTPException(status_code=400, detail="url is required")
    return await uc(req.url.strip(), title=req.title, artist=req.artist, artwork_url=req.artwork)


@router.post("/pause")
async def player_pause(uc: PauseAudio = Depends(pause_audio)) -> dict:
    return await uc()


@router.post("/resume")
async def player_resume(uc: ResumeAudio = Depends(resume_audio)) -> dict:
    return await uc()


@router.post("/stop")
async def player_stop(uc: StopAudio = Depends(stop_audio)) -> dict:
    return await uc()


@router.post("/seek")
async def player_seek(req: SeekRequest, uc: SeekAudio = Depends(seek_audio)) -> dict:
    try:
        return await uc(req.position)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/volume")
async def player_volume(req: VolumeRequest, uc: SetVolume = Depends(uc_set_volume)) -> dict:
    return await uc(req.volume)
