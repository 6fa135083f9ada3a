from __future__ import annotations

import logging
from typing import Any, Callable

from .runtime_constants import (
    ERROR_INTERNAL,
    ERROR_START_FAILED,
    MAX_PLAYERS,
    MIN_PLAYERS,
    MIN_READY_PLAYERS,
)
from .runtime_connections import ConnectionRegistry
from .runtime_errors import (
    AlreadyInRoom,
    InvalidSettings,
    InvalidUsername,
    LobbyError,
    NotHost,
    QuotaMismatch,
    RoomNotFound,
    UnknownCommand,
)
from .runtime_protocol import (
    BroadcastToRoom,
    Outbound,
    SendToConnection,
    SendToPlayer,
    error_event,
    game_started_event,
    player_disconnected_event,
    player_joined_event,
    player_left_event,
    player_ready_changed_event,
    players_updated_event,
    pong_event,
    room_created_event,
    room_joined_event,
    room_left_event,
)
from .runtime_rooms import RoomStore
from .runtime_types import ConnectionEntry, Player, RoomSettings
from .runtime_utils import (
    calculate_role_distribution,
    generate_player_id,
    is_valid_room_code,
    normalize_room_code,
    now_iso,
    sanitize_log_text,
    validate_username,
)
from .schemas.commands import (
    Command,
    CreateRoomCommand,
    JoinRoomCommand,
    LeaveRoomCommand,
    PingCommand,
    RoomSettingsPayload,
    StartGameCommand,
    ToggleReadyCommand,
)

logger = logging.getLogger(__name__)

StatHook = Callable[[str], None]
LogHook = Callable[..., None]


def _noop_stat(key: str) -> None:
    return None


def _noop_log(event: str, level: int = logging.INFO, **fields: object) -> None:
    return None


class MessageRouter:
    """Turns decoded commands into room mutations plus the events they cause.

    Every handler is synchronous: it mutates the store and registry in one step
    and returns the outbound events for the caller to deliver.
    """

    def __init__(
        self,
        store: RoomStore,
        registry: ConnectionRegistry,
        *,
        min_ready_players: int = MIN_READY_PLAYERS,
        min_players: int = MIN_PLAYERS,
        max_players: int = MAX_PLAYERS,
        increment_stat: StatHook | None = None,
        log_event: LogHook | None = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.min_ready_players = min_ready_players
        self.min_players = min_players
        self.max_players = max_players
        self._increment_stat = increment_stat or _noop_stat
        self._log_event = log_event or _noop_log

    def target_room(self, connection_id: str, command: Command) -> str | None:
        if isinstance(command, JoinRoomCommand):
            return normalize_room_code(command.roomCode)
        if isinstance(command, (CreateRoomCommand, PingCommand)):
            return None
        entry = self.registry.lookup(connection_id)
        return entry.room_code if entry else None

    def dispatch(self, connection_id: str, command: Command) -> list[Outbound]:
        try:
            return self._dispatch(connection_id, command)
        except LobbyError as exc:
            self._increment_stat("commandsRejected")
            self._log_event(
                "command_rejected",
                level=logging.INFO,
                connectionId=connection_id,
                command=command.type,
                code=exc.code,
            )
            return [SendToConnection(connection_id, error_event(exc.message))]
        except QuotaMismatch:
            logger.exception("Role quota mismatch for connection %s", connection_id)
            return [SendToConnection(connection_id, error_event(ERROR_START_FAILED))]
        except Exception:
            logger.exception(
                "Unexpected error handling %s for connection %s",
                command.type,
                connection_id,
            )
            return [SendToConnection(connection_id, error_event(ERROR_INTERNAL))]

    def _dispatch(self, connection_id: str, command: Command) -> list[Outbound]:
        message_type = command.type

        if message_type == "ping":
            self._increment_stat("pingReceived")
            return [SendToConnection(connection_id, pong_event())]

        if message_type == "createRoom":
            return self._create_room(connection_id, command)  # type: ignore[arg-type]

        if message_type == "joinRoom":
            return self._join_room(connection_id, command)  # type: ignore[arg-type]

        if message_type == "leaveRoom":
            return self._leave_room(connection_id, command)  # type: ignore[arg-type]

        if message_type == "toggleReady":
            return self._toggle_ready(connection_id, command)  # type: ignore[arg-type]

        if message_type == "startGame":
            return self._start_game(connection_id, command)  # type: ignore[arg-type]

        raise UnknownCommand()

    def _require_username(self, raw: Any) -> str:
        is_valid, message = validate_username(raw)
        if not is_valid:
            raise InvalidUsername(message)
        return str(raw).strip()

    def _build_settings(self, payload: RoomSettingsPayload) -> RoomSettings:
        room_settings = RoomSettings(
            total_players=payload.totalPlayers,
            mafia=payload.mafia,
            detective=payload.detective,
            doctor=payload.doctor,
        )
        distribution = calculate_role_distribution(
            room_settings.total_players,
            room_settings.mafia,
            room_settings.detective,
            room_settings.doctor,
        )
        if not distribution.is_valid:
            raise InvalidSettings()
        if not self.min_players <= room_settings.total_players <= self.max_players:
            raise InvalidSettings(
                f"Total players must be between {self.min_players} and {self.max_players}"
            )
        return room_settings

    def _own_entry(self, connection_id: str, player_id: str) -> ConnectionEntry | None:
        entry = self.registry.lookup(connection_id)
        if entry is None or entry.player_id != player_id:
            return None
        return entry

    def _create_room(self, connection_id: str, command: CreateRoomCommand) -> list[Outbound]:
        if self.registry.lookup(connection_id) is not None:
            raise AlreadyInRoom()

        username = self._require_username(command.username)
        room_settings = self._build_settings(command.settings)
        host = Player(player_id=generate_player_id(), username=username, joined_at=now_iso())
        room = self.store.create_room(room_settings, host)
        self.registry.register(connection_id, room.code, host.player_id)

        self._increment_stat("roomsCreated")
        self._log_event(
            "room_created",
            roomCode=room.code,
            playerId=host.player_id,
            username=sanitize_log_text(username),
            totalPlayers=room_settings.total_players,
        )
        return [SendToConnection(connection_id, room_created_event(room, host))]

    def _join_room(self, connection_id: str, command: JoinRoomCommand) -> list[Outbound]:
        if self.registry.lookup(connection_id) is not None:
            raise AlreadyInRoom()

        username = self._require_username(command.username)
        room_code = normalize_room_code(command.roomCode)
        if not is_valid_room_code(room_code):
            raise RoomNotFound()

        player = Player(player_id=generate_player_id(), username=username, joined_at=now_iso())
        room = self.store.join_room(room_code, player)
        self.registry.register(connection_id, room.code, player.player_id)

        self._log_event(
            "room_joined",
            roomCode=room.code,
            playerId=player.player_id,
            username=sanitize_log_text(username),
            players=len(room.players),
        )
        return [
            SendToConnection(connection_id, room_joined_event(room, player)),
            BroadcastToRoom(room.code, player_joined_event(room, player), player.player_id),
        ]

    def _leave_room(self, connection_id: str, command: LeaveRoomCommand) -> list[Outbound]:
        entry = self._own_entry(connection_id, command.playerId)
        if entry is None:
            return []

        self.registry.unregister(connection_id)
        room = self.store.leave_room(entry.room_code, entry.player_id)

        outbound: list[Outbound] = []
        if room is not None:
            outbound.append(
                BroadcastToRoom(room.code, player_left_event(room, entry.player_id))
            )
        outbound.append(SendToConnection(connection_id, room_left_event()))

        self._log_event(
            "room_left",
            roomCode=entry.room_code,
            playerId=entry.player_id,
            roomClosed=room is None,
            newHost=room.host.player_id if room is not None and room.host else None,
        )
        return outbound

    def _toggle_ready(self, connection_id: str, command: ToggleReadyCommand) -> list[Outbound]:
        entry = self._own_entry(connection_id, command.playerId)
        if entry is None:
            return []

        room = self.store.get_room(entry.room_code)
        player = room.find_player(entry.player_id) if room is not None else None
        if room is None or player is None or room.started:
            return []

        self.store.set_ready(room.code, player.player_id, not player.ready)
        return [BroadcastToRoom(room.code, player_ready_changed_event(room, player))]

    def _start_game(self, connection_id: str, command: StartGameCommand) -> list[Outbound]:
        entry = self._own_entry(connection_id, command.playerId)
        if entry is None:
            raise NotHost()

        outcome = self.store.start_game(
            entry.room_code,
            entry.player_id,
            min_ready_players=self.min_ready_players,
        )
        room = outcome.room

        outbound: list[Outbound] = [
            SendToPlayer(player.player_id, game_started_event(room, player, room.players))
            for player in room.players
        ]
        for dropped in outcome.dropped:
            dropped_entry = self.registry.unregister_player(dropped.player_id)
            if dropped_entry is not None:
                outbound.append(
                    SendToConnection(dropped_entry.connection_id, room_left_event("notReady"))
                )

        self._increment_stat("gamesStarted")
        self._log_event(
            "game_started",
            roomCode=room.code,
            players=len(room.players),
            dropped=len(outcome.dropped),
        )
        return outbound

    def handle_disconnect(self, connection_id: str) -> list[Outbound]:
        entry = self.registry.release(connection_id)
        if entry is None:
            return []

        room = self.store.mark_disconnected(entry.room_code, entry.player_id)
        if room is None:
            self._log_event("room_closed", roomCode=entry.room_code, reason="all_disconnected")
            return []
        return [BroadcastToRoom(room.code, player_disconnected_event(room, entry.player_id))]

    def sweep_room(self, room_code: str) -> list[Outbound]:
        result = self.store.sweep_room(room_code)
        for player in result.removed_players:
            self.registry.unregister_player(player.player_id)

        if result.outcome == "removed":
            self._increment_stat("roomsSwept")
            self._log_event("room_swept", roomCode=room_code, outcome="removed")
            return []
        if result.outcome == "updated" and result.room is not None:
            self._log_event(
                "room_swept",
                roomCode=room_code,
                outcome="updated",
                removed=len(result.removed_players),
            )
            return [BroadcastToRoom(room_code, players_updated_event(result.room))]
        return []
