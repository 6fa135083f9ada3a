from __future__ import annotations

from fastapi import APIRouter

from mafia_lobby.runtime import runtime

router = APIRouter(tags=["system"])


@router.get("/api/health")
async def health() -> dict[str, object]:
    ws_stats = runtime.get_ws_stats()
    ws_summary = {
        "activeConnections": ws_stats["stats"].get("activeConnections", 0),
        "peakConnections": ws_stats["stats"].get("peakConnections", 0),
        "connectSuccess": ws_stats["stats"].get("connectSuccess", 0),
        "sendFailures": ws_stats["stats"].get("sendFailures", 0),
    }
    return {
        "ok": True,
        "activeRooms": runtime.active_rooms_count,
        "websocket": ws_summary,
    }


@router.get("/api/ws-stats")
async def websocket_stats() -> dict[str, object]:
    return runtime.get_ws_stats()
