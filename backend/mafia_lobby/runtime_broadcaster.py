from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Iterable

from starlette.websockets import WebSocketState

from .runtime_constants import SEND_TIMEOUT_SECONDS
from .runtime_protocol import (
    BroadcastToRoom,
    Outbound,
    SendToConnection,
    SendToPlayer,
    encode_event,
)

if TYPE_CHECKING:
    from .runtime_connections import ConnectionRegistry
    from .runtime_rooms import RoomStore
    from .runtime_types import ClientConnection

logger = logging.getLogger(__name__)


def is_open(connection: "ClientConnection") -> bool:
    websocket = connection.websocket
    return (
        getattr(websocket, "client_state", WebSocketState.CONNECTED) == WebSocketState.CONNECTED
        and getattr(websocket, "application_state", WebSocketState.CONNECTED)
        == WebSocketState.CONNECTED
    )


class Broadcaster:
    """Fire-and-forget delivery of events to room members.

    A closed, slow or failing socket is logged and skipped; it never raises to
    the caller and never holds up the other recipients.
    """

    def __init__(
        self,
        store: "RoomStore",
        registry: "ConnectionRegistry",
        send_timeout_seconds: float = SEND_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store
        self.registry = registry
        self.send_timeout_seconds = send_timeout_seconds
        self.sent = 0
        self.send_failures = 0
        self.skipped_closed = 0

    async def send_safe(
        self,
        connection: "ClientConnection | None",
        event: dict[str, Any],
        room_code: str | None = None,
    ) -> bool:
        if connection is None:
            return False
        if not is_open(connection):
            self.skipped_closed += 1
            return False

        try:
            await asyncio.wait_for(
                connection.websocket.send_text(encode_event(event)),
                timeout=self.send_timeout_seconds,
            )
        except Exception as exc:
            # Connection may already be closed.
            self.send_failures += 1
            logger.debug(
                "[SEND_FAIL] room=%s connection=%s event=%s reason=%r",
                room_code or "-",
                connection.connection_id,
                event.get("type"),
                exc,
            )
            return False

        self.sent += 1
        return True

    async def broadcast(
        self,
        room_code: str,
        event: dict[str, Any],
        exclude_player_id: str | None = None,
    ) -> int:
        room = self.store.get_room(room_code)
        if room is None:
            return 0

        recipients = [
            self.registry.connection_for_player(player.player_id)
            for player in room.players
            if player.player_id != exclude_player_id
        ]
        results = await asyncio.gather(
            *(
                self.send_safe(connection, event, room_code=room_code)
                for connection in recipients
                if connection is not None
            )
        )
        return sum(1 for delivered in results if delivered)

    async def send_to_player(self, player_id: str, event: dict[str, Any]) -> bool:
        return await self.send_safe(self.registry.connection_for_player(player_id), event)

    async def send_to_connection(self, connection_id: str, event: dict[str, Any]) -> bool:
        return await self.send_safe(self.registry.get_connection(connection_id), event)

    async def deliver(self, outbound: Iterable[Outbound]) -> None:
        for item in outbound:
            if isinstance(item, BroadcastToRoom):
                await self.broadcast(item.room_code, item.event, item.exclude_player_id)
            elif isinstance(item, SendToPlayer):
                await self.send_to_player(item.player_id, item.event)
            elif isinstance(item, SendToConnection):
                await self.send_to_connection(item.connection_id, item.event)
