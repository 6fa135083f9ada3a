from __future__ import annotations

import contextlib
import logging
import random
from dataclasses import dataclass, field
from typing import AsyncContextManager, Literal

from .runtime_constants import MIN_READY_PLAYERS
from .runtime_errors import (
    GameAlreadyStarted,
    NotEnoughReady,
    NotHost,
    RoomFull,
    RoomNotFound,
)
from .runtime_roles import assign_roles
from .runtime_types import Player, Room, RoomSettings
from .runtime_utils import now_iso, quota_for_ready_players, random_room_code

logger = logging.getLogger(__name__)

SweepOutcome = Literal["removed", "updated", "unchanged", "missing"]


@dataclass
class StartOutcome:
    room: Room
    dropped: list[Player] = field(default_factory=list)


@dataclass
class SweepResult:
    outcome: SweepOutcome
    room: Room | None = None
    removed_players: list[Player] = field(default_factory=list)


class RoomStore:
    """Owns every active room and enforces capacity, host and lifecycle rules.

    Mutating methods are synchronous and never await, so a single call cannot
    interleave with another on the same event loop. Callers that also need to
    order their outbound events hold ``lock_for(code)`` around the call and
    the delivery.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rooms: dict[str, Room] = {}
        self._rng = rng

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, code: object) -> bool:
        return code in self.rooms

    def get_room(self, code: str) -> Room | None:
        return self.rooms.get(code)

    def require_room(self, code: str) -> Room:
        room = self.rooms.get(code)
        if room is None:
            raise RoomNotFound()
        return room

    def lock_for(self, code: str | None) -> AsyncContextManager[object]:
        room = self.rooms.get(code) if code else None
        if room is None:
            return contextlib.nullcontext()
        return room.lock

    def _allocate_code(self) -> str:
        code = random_room_code(rng=self._rng)
        while code in self.rooms:
            logger.debug("Room code collision on %s, regenerating", code)
            code = random_room_code(rng=self._rng)
        return code

    def create_room(self, settings: RoomSettings, host: Player) -> Room:
        host.is_host = True
        host.ready = False
        host.connected = True
        host.role = None
        room = Room(
            code=self._allocate_code(),
            settings=settings,
            created_at=now_iso(),
            players=[host],
        )
        self.rooms[room.code] = room
        return room

    def join_room(self, code: str, player: Player) -> Room:
        room = self.require_room(code)
        if room.started:
            raise GameAlreadyStarted()
        if len(room.players) >= room.settings.total_players:
            raise RoomFull()

        player.is_host = False
        player.ready = False
        player.connected = True
        player.role = None
        room.players.append(player)
        return room

    def leave_room(self, code: str, player_id: str) -> Room | None:
        room = self.rooms.get(code)
        if room is None:
            return None

        removed = room.find_player(player_id)
        if removed is None:
            return room

        room.players = [player for player in room.players if player.player_id != player_id]
        if not room.players:
            self.delete_room(code)
            return None

        if removed.is_host:
            self._promote_earliest(room)
        return room

    def set_ready(self, code: str, player_id: str, ready: bool) -> Room:
        room = self.require_room(code)
        player = room.find_player(player_id)
        if player is not None and not room.started:
            player.ready = ready
        return room

    def mark_disconnected(self, code: str, player_id: str) -> Room | None:
        """Flag a player as gone; drop the room once nobody connected remains."""
        room = self.rooms.get(code)
        if room is None:
            return None

        player = room.find_player(player_id)
        if player is not None:
            player.connected = False

        if not room.connected_players():
            self.delete_room(code)
            return None
        return room

    def start_game(
        self,
        code: str,
        requesting_player_id: str,
        min_ready_players: int = MIN_READY_PLAYERS,
    ) -> StartOutcome:
        room = self.require_room(code)
        requester = room.find_player(requesting_player_id)
        if requester is None or not requester.is_host:
            raise NotHost()
        if room.started:
            raise GameAlreadyStarted()

        ready_players = room.ready_players()
        if len(ready_players) < min_ready_players:
            raise NotEnoughReady(f"Need at least {min_ready_players} ready players")

        quota = quota_for_ready_players(room.settings, len(ready_players))
        players_with_roles = assign_roles(ready_players, quota, self._rng)
        dropped = [player for player in room.players if not player.ready]

        room.players = players_with_roles
        if not any(player.is_host for player in room.players):
            room.players[0].is_host = True
        room.started = True
        return StartOutcome(room=room, dropped=dropped)

    def sweep_room(self, code: str) -> SweepResult:
        room = self.rooms.get(code)
        if room is None:
            return SweepResult(outcome="missing")

        connected = room.connected_players()
        if not connected:
            self.delete_room(code)
            return SweepResult(outcome="removed", removed_players=list(room.players))

        if len(connected) == len(room.players):
            return SweepResult(outcome="unchanged", room=room)

        removed_players = [player for player in room.players if not player.connected]
        host_removed = any(player.is_host for player in removed_players)
        room.players = connected
        if host_removed:
            self._promote_earliest(room)
        return SweepResult(outcome="updated", room=room, removed_players=removed_players)

    def delete_room(self, code: str) -> Room | None:
        return self.rooms.pop(code, None)

    def clear(self) -> list[Room]:
        rooms = list(self.rooms.values())
        self.rooms.clear()
        return rooms

    @staticmethod
    def _promote_earliest(room: Room) -> None:
        for index, player in enumerate(room.players):
            player.is_host = index == 0
