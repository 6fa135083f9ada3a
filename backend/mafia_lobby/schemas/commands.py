from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class RoomSettingsPayload(BaseModel):
    totalPlayers: int = Field(default=7)
    mafia: int = Field(default=2)
    detective: int = Field(default=1)
    doctor: int = Field(default=1)


class CreateRoomCommand(BaseModel):
    type: Literal["createRoom"]
    username: str = Field(max_length=200)
    settings: RoomSettingsPayload


class JoinRoomCommand(BaseModel):
    type: Literal["joinRoom"]
    username: str = Field(max_length=200)
    roomCode: str = Field(max_length=32)


class LeaveRoomCommand(BaseModel):
    type: Literal["leaveRoom"]
    playerId: str = Field(max_length=128)


class ToggleReadyCommand(BaseModel):
    type: Literal["toggleReady"]
    playerId: str = Field(max_length=128)


class StartGameCommand(BaseModel):
    type: Literal["startGame"]
    playerId: str = Field(max_length=128)


class PingCommand(BaseModel):
    type: Literal["ping"]


Command = (
    CreateRoomCommand
    | JoinRoomCommand
    | LeaveRoomCommand
    | ToggleReadyCommand
    | StartGameCommand
    | PingCommand
)

COMMAND_MODELS: dict[str, type[BaseModel]] = {
    "createRoom": CreateRoomCommand,
    "joinRoom": JoinRoomCommand,
    "leaveRoom": LeaveRoomCommand,
    "toggleReady": ToggleReadyCommand,
    "startGame": StartGameCommand,
    "ping": PingCommand,
}
