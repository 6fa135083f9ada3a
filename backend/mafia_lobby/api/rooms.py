from __future__ import annotations

from fastapi import APIRouter, HTTPException

from mafia_lobby.runtime import runtime

router = APIRouter(tags=["rooms"])


@router.get("/api/rooms/{room_code}")
async def room_summary(room_code: str) -> dict[str, object]:
    summary = runtime.room_summary(room_code)
    if summary is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return summary
