"""Shared fixtures: an in-memory lobby runtime and fake websocket clients."""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Callable

import pytest
from starlette.websockets import WebSocketState

from mafia_lobby.runtime import LobbyRuntime
from mafia_lobby.runtime_types import ClientConnection
from mafia_lobby.runtime_utils import random_id

DEFAULT_SETTINGS = {"totalPlayers": 7, "mafia": 2, "detective": 1, "doctor": 1}


class FakeWebSocket:
    """Records every frame sent to it; can be told to fail or look closed."""

    def __init__(self, *, fail: bool = False, delay: float = 0.0) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail
        self.delay = delay
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.close_code: int | None = None

    async def send_text(self, text: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("socket is broken")
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000) -> None:
        self.close_code = code
        self.mark_closed()

    def mark_closed(self) -> None:
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED


@dataclass
class LobbyClient:
    runtime: LobbyRuntime
    connection_id: str
    websocket: FakeWebSocket
    player_id: str | None = None
    room_code: str | None = None

    async def send(self, **payload: Any) -> None:
        await self.runtime.process_frame(self.connection_id, json.dumps(payload))

    async def send_raw(self, raw: str) -> None:
        await self.runtime.process_frame(self.connection_id, raw)

    def events(self, event_type: str | None = None) -> list[dict[str, Any]]:
        return [
            event
            for event in self.websocket.sent
            if event_type is None or event.get("type") == event_type
        ]

    def last(self, event_type: str) -> dict[str, Any]:
        matching = self.events(event_type)
        assert matching, f"no {event_type} event received; got {self.websocket.sent}"
        return matching[-1]

    def clear(self) -> None:
        self.websocket.sent.clear()

    async def create(self, username: str = "Host", settings: dict[str, int] | None = None) -> dict[str, Any]:
        await self.send(type="createRoom", username=username, settings=settings or DEFAULT_SETTINGS)
        event = self.last("roomCreated")
        self.player_id = event["playerId"]
        self.room_code = event["roomCode"]
        return event

    async def join(self, room_code: str, username: str) -> dict[str, Any]:
        await self.send(type="joinRoom", username=username, roomCode=room_code)
        event = self.last("roomJoined")
        self.player_id = event["playerId"]
        self.room_code = event["roomCode"]
        return event

    async def toggle_ready(self) -> None:
        await self.send(type="toggleReady", playerId=self.player_id)

    async def start_game(self) -> None:
        await self.send(type="startGame", playerId=self.player_id)

    async def leave(self) -> None:
        await self.send(type="leaveRoom", playerId=self.player_id)

    async def disconnect(self) -> None:
        self.websocket.mark_closed()
        await self.runtime._cleanup_connection(self.connection_id, reason="test")


@pytest.fixture
def lobby() -> LobbyRuntime:
    return LobbyRuntime(sweep_interval_seconds=3600, send_timeout_seconds=0.5)


@pytest.fixture
def make_client(lobby: LobbyRuntime) -> Callable[..., LobbyClient]:
    def _make(*, fail: bool = False, delay: float = 0.0) -> LobbyClient:
        websocket = FakeWebSocket(fail=fail, delay=delay)
        connection = ClientConnection(connection_id=random_id(), websocket=websocket)  # type: ignore[arg-type]
        lobby.registry.admit(connection)
        return LobbyClient(runtime=lobby, connection_id=connection.connection_id, websocket=websocket)

    return _make
