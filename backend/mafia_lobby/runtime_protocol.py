from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Sequence, Union

from pydantic import ValidationError

from .runtime_errors import InvalidMessageFormat, UnknownCommand
from .runtime_roles import mafia_teammates, role_info
from .runtime_types import Player, Room
from .runtime_utils import all_players_ready, get_minimum_players, now_ms
from .schemas.commands import COMMAND_MODELS, Command


@dataclass(frozen=True)
class SendToConnection:
    connection_id: str
    event: dict[str, Any]


@dataclass(frozen=True)
class SendToPlayer:
    player_id: str
    event: dict[str, Any]


@dataclass(frozen=True)
class BroadcastToRoom:
    room_code: str
    event: dict[str, Any]
    exclude_player_id: str | None = None


Outbound = Union[SendToConnection, SendToPlayer, BroadcastToRoom]


def decode_command(raw: str | bytes) -> Command:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as exc:
        raise InvalidMessageFormat() from exc

    if not isinstance(data, dict):
        raise InvalidMessageFormat()

    message_type = data.get("type")
    if not isinstance(message_type, str) or not message_type:
        raise InvalidMessageFormat()

    model = COMMAND_MODELS.get(message_type)
    if model is None:
        raise UnknownCommand()

    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except (ValidationError, RecursionError) as exc:
        raise InvalidMessageFormat() from exc


def encode_event(event: dict[str, Any]) -> str:
    return json.dumps(event, ensure_ascii=False, separators=(",", ":"))


def build_player_view(player: Player) -> dict[str, Any]:
    return {
        "id": player.player_id,
        "username": player.username,
        "ready": player.ready,
        "isHost": player.is_host,
        "connected": player.connected,
        "joinedAt": player.joined_at,
    }


def build_room_view(room: Room) -> dict[str, Any]:
    # Roles are secret; each player only learns their own through gameStarted.
    return {
        "code": room.code,
        "settings": room.settings.to_payload(),
        "players": [build_player_view(player) for player in room.players],
        "gameStarted": room.started,
        "createdAt": room.created_at,
        "minimumPlayers": get_minimum_players(room.settings),
        "allReady": all_players_ready(room.players),
    }


def error_event(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}


def pong_event() -> dict[str, Any]:
    return {"type": "pong", "serverTime": now_ms()}


def room_created_event(room: Room, player: Player) -> dict[str, Any]:
    return {
        "type": "roomCreated",
        "roomCode": room.code,
        "playerId": player.player_id,
        "room": build_room_view(room),
    }


def room_joined_event(room: Room, player: Player) -> dict[str, Any]:
    return {
        "type": "roomJoined",
        "roomCode": room.code,
        "playerId": player.player_id,
        "room": build_room_view(room),
    }


def player_joined_event(room: Room, player: Player) -> dict[str, Any]:
    return {
        "type": "playerJoined",
        "player": build_player_view(player),
        "room": build_room_view(room),
    }


def player_left_event(room: Room, player_id: str) -> dict[str, Any]:
    return {"type": "playerLeft", "playerId": player_id, "room": build_room_view(room)}


def room_left_event(reason: str | None = None) -> dict[str, Any]:
    event: dict[str, Any] = {"type": "roomLeft"}
    if reason:
        event["reason"] = reason
    return event


def player_ready_changed_event(room: Room, player: Player) -> dict[str, Any]:
    return {
        "type": "playerReadyChanged",
        "playerId": player.player_id,
        "ready": player.ready,
        "room": build_room_view(room),
    }


def game_started_event(room: Room, player: Player, roster: Sequence[Player]) -> dict[str, Any]:
    return {
        "type": "gameStarted",
        "role": player.role,
        "roleInfo": role_info(player.role),
        "teammates": mafia_teammates(roster, player),
        "room": build_room_view(room),
    }


def player_disconnected_event(room: Room, player_id: str) -> dict[str, Any]:
    return {"type": "playerDisconnected", "playerId": player_id, "room": build_room_view(room)}


def players_updated_event(room: Room) -> dict[str, Any]:
    return {"type": "playersUpdated", "room": build_room_view(room)}
