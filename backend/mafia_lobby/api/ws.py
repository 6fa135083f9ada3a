from __future__ import annotations

from fastapi import APIRouter, WebSocket

from mafia_lobby.runtime import runtime

router = APIRouter(tags=["websocket"])


# "/ws" is the path older lobby clients dial.
@router.websocket("/api/ws")
@router.websocket("/ws")
async def lobby_socket(ws: WebSocket) -> None:
    await runtime.handle_websocket(ws)
