from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from .runtime_broadcaster import Broadcaster
from .runtime_connections import ConnectionRegistry
from .runtime_constants import (
    MAX_PLAYERS,
    MIN_PLAYERS,
    MIN_READY_PLAYERS,
    SEND_TIMEOUT_SECONDS,
    SWEEP_INTERVAL_SECONDS,
)
from .runtime_errors import LobbyError
from .runtime_message_handlers import MessageRouter
from .runtime_protocol import decode_command, error_event
from .runtime_rooms import RoomStore
from .runtime_types import ClientConnection
from .runtime_utils import is_valid_room_code, normalize_room_code, now_ms, random_id

logger = logging.getLogger(__name__)


class LobbyRuntime:
    def __init__(
        self,
        store: RoomStore | None = None,
        registry: ConnectionRegistry | None = None,
        *,
        sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS,
        send_timeout_seconds: float = SEND_TIMEOUT_SECONDS,
        min_ready_players: int = MIN_READY_PLAYERS,
        min_players: int = MIN_PLAYERS,
        max_players: int = MAX_PLAYERS,
    ) -> None:
        self.store = store or RoomStore()
        self.registry = registry or ConnectionRegistry()
        self.broadcaster = Broadcaster(
            self.store,
            self.registry,
            send_timeout_seconds=send_timeout_seconds,
        )
        self.router = MessageRouter(
            self.store,
            self.registry,
            min_ready_players=min_ready_players,
            min_players=min_players,
            max_players=max_players,
            increment_stat=self._increment_stat,
            log_event=self._log_ws_event,
        )
        self.sweep_interval_seconds = sweep_interval_seconds
        self._sweep_task: asyncio.Task[None] | None = None
        self._ws_stats: dict[str, int] = {
            "connectSuccess": 0,
            "disconnects": 0,
            "messageReceived": 0,
            "invalidFrames": 0,
            "pingReceived": 0,
            "commandsRejected": 0,
            "roomsCreated": 0,
            "roomsSwept": 0,
            "gamesStarted": 0,
            "sweepRuns": 0,
            "activeConnections": 0,
            "peakConnections": 0,
        }

    @property
    def active_rooms_count(self) -> int:
        return len(self.store)

    def _increment_stat(self, key: str, amount: int = 1) -> None:
        self._ws_stats[key] = int(self._ws_stats.get(key, 0)) + amount

    def _on_connect(self) -> None:
        self._increment_stat("connectSuccess")
        active_connections = int(self._ws_stats.get("activeConnections", 0)) + 1
        self._ws_stats["activeConnections"] = active_connections
        if active_connections > int(self._ws_stats.get("peakConnections", 0)):
            self._ws_stats["peakConnections"] = active_connections

    def _on_disconnect(self) -> None:
        self._increment_stat("disconnects")
        active_connections = max(0, int(self._ws_stats.get("activeConnections", 0)) - 1)
        self._ws_stats["activeConnections"] = active_connections

    def _log_ws_event(self, event: str, level: int = logging.INFO, **fields: object) -> None:
        logger.log(
            level,
            "ws.%s %s",
            event,
            json.dumps(fields, ensure_ascii=False, separators=(",", ":")),
        )

    def get_ws_stats(self) -> dict[str, Any]:
        room_summaries = [
            {
                "roomCode": room.code,
                "players": len(room.players),
                "connected": len(room.connected_players()),
                "phase": room.phase,
            }
            for room in self.store.rooms.values()
        ]
        room_summaries.sort(key=lambda item: int(item.get("players", 0)), reverse=True)

        stats = dict(self._ws_stats)
        stats["messagesSent"] = self.broadcaster.sent
        stats["sendFailures"] = self.broadcaster.send_failures
        stats["sendSkippedClosed"] = self.broadcaster.skipped_closed
        return {
            "generatedAt": now_ms(),
            "activeRooms": len(room_summaries),
            "stats": stats,
            "rooms": room_summaries[:50],
        }

    def room_summary(self, raw_code: str) -> dict[str, Any] | None:
        room_code = normalize_room_code(raw_code)
        if not is_valid_room_code(room_code):
            return None
        room = self.store.get_room(room_code)
        if room is None:
            return None
        return {
            "roomCode": room.code,
            "playerCount": len(room.players),
            "totalPlayers": room.settings.total_players,
            "gameStarted": room.started,
            "joinable": not room.started and len(room.players) < room.settings.total_players,
        }

    def start(self) -> None:
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="lobby-sweep")

    async def shutdown(self) -> None:
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None

        self.store.clear()
        for connection in self.registry.clear():
            try:
                await connection.websocket.close(code=1001)
            except Exception as exc:
                logger.debug("Close on shutdown failed for %s: %r", connection.connection_id, exc)

        self._ws_stats["activeConnections"] = 0

    async def handle_websocket(self, websocket: WebSocket) -> None:
        await websocket.accept()

        connection = ClientConnection(connection_id=random_id(), websocket=websocket)
        self.registry.admit(connection)
        self._on_connect()
        self._log_ws_event("connect", connectionId=connection.connection_id)

        disconnect_code: int | None = None
        disconnect_reason = "unknown"

        try:
            while True:
                raw = await websocket.receive_text()
                self._increment_stat("messageReceived")
                await self.process_frame(connection.connection_id, raw)
        except WebSocketDisconnect as exc:
            disconnect_code = exc.code
            disconnect_reason = "websocket_disconnect"
        except Exception:
            disconnect_reason = "server_error"
            logger.exception("Unexpected websocket error for connection %s", connection.connection_id)
        finally:
            await self._cleanup_connection(
                connection.connection_id,
                reason=disconnect_reason,
                close_code=disconnect_code,
            )

    async def process_frame(self, connection_id: str, raw: str | bytes) -> None:
        try:
            command = decode_command(raw)
        except LobbyError as exc:
            self._increment_stat("invalidFrames")
            await self.broadcaster.send_to_connection(connection_id, error_event(exc.message))
            return

        room_code = self.router.target_room(connection_id, command)
        async with self.store.lock_for(room_code):
            outbound = self.router.dispatch(connection_id, command)
            await self.broadcaster.deliver(outbound)

    async def _cleanup_connection(
        self,
        connection_id: str,
        reason: str = "unknown",
        close_code: int | None = None,
    ) -> None:
        entry = self.registry.lookup(connection_id)
        room_code = entry.room_code if entry else None

        async with self.store.lock_for(room_code):
            outbound = self.router.handle_disconnect(connection_id)
            await self.broadcaster.deliver(outbound)

        self._on_disconnect()
        self._log_ws_event(
            "disconnect",
            connectionId=connection_id,
            roomCode=room_code,
            playerId=entry.player_id if entry else None,
            reason=reason,
            closeCode=close_code,
        )

    async def sweep_once(self) -> None:
        self._increment_stat("sweepRuns")
        for room_code in list(self.store.rooms):
            async with self.store.lock_for(room_code):
                outbound = self.router.sweep_room(room_code)
                await self.broadcaster.deliver(outbound)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("Room sweep failed")


runtime = LobbyRuntime()
