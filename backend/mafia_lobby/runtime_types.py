from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Literal

from fastapi import WebSocket

Role = Literal["mafia", "detective", "doctor", "civilian"]
RoomPhase = Literal["open", "started"]


@dataclass(frozen=True)
class RoomSettings:
    total_players: int
    mafia: int
    detective: int
    doctor: int

    def to_payload(self) -> dict[str, int]:
        return {
            "totalPlayers": self.total_players,
            "mafia": self.mafia,
            "detective": self.detective,
            "doctor": self.doctor,
        }


@dataclass(frozen=True)
class RoleQuota:
    mafia: int
    detective: int
    doctor: int
    civilian: int
    total: int

    @property
    def is_valid(self) -> bool:
        return (
            min(self.mafia, self.detective, self.doctor) >= 0
            and self.civilian >= 0
            and self.mafia + self.detective + self.doctor + self.civilian == self.total
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "mafia": self.mafia,
            "detective": self.detective,
            "doctor": self.doctor,
            "civilian": self.civilian,
            "total": self.total,
            "isValid": self.is_valid,
        }


@dataclass
class Player:
    player_id: str
    username: str
    joined_at: str
    is_host: bool = False
    ready: bool = False
    connected: bool = True
    role: Role | None = None


@dataclass
class Room:
    code: str
    settings: RoomSettings
    created_at: str
    players: list[Player] = field(default_factory=list)
    started: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def phase(self) -> RoomPhase:
        return "started" if self.started else "open"

    @property
    def host(self) -> Player | None:
        return next((player for player in self.players if player.is_host), None)

    def find_player(self, player_id: str) -> Player | None:
        return next((player for player in self.players if player.player_id == player_id), None)

    def connected_players(self) -> list[Player]:
        return [player for player in self.players if player.connected]

    def ready_players(self) -> list[Player]:
        return [player for player in self.players if player.ready]


@dataclass
class ClientConnection:
    connection_id: str
    websocket: WebSocket


@dataclass(frozen=True)
class ConnectionEntry:
    connection_id: str
    room_code: str
    player_id: str
