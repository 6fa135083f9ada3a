from __future__ import annotations


class LobbyError(Exception):
    """User-facing failure reported back to the originating connection."""

    code = "LOBBY_ERROR"
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class RoomNotFound(LobbyError):
    code = "ROOM_NOT_FOUND"
    default_message = "Room not found"


class GameAlreadyStarted(LobbyError):
    code = "GAME_ALREADY_STARTED"
    default_message = "Game already started"


class RoomFull(LobbyError):
    code = "ROOM_FULL"
    default_message = "Room is full"


class NotHost(LobbyError):
    code = "NOT_HOST"
    default_message = "Only host can start game"


class NotEnoughReady(LobbyError):
    code = "NOT_ENOUGH_READY"
    default_message = "Need at least 4 ready players"


class InvalidMessageFormat(LobbyError):
    code = "INVALID_MESSAGE_FORMAT"
    default_message = "Invalid message format"


class UnknownCommand(LobbyError):
    code = "UNKNOWN_COMMAND"
    default_message = "Unknown message type"


class InvalidUsername(LobbyError):
    code = "INVALID_USERNAME"
    default_message = "Username is required"


class InvalidSettings(LobbyError):
    code = "INVALID_SETTINGS"
    default_message = "Invalid room settings"


class AlreadyInRoom(LobbyError):
    code = "ALREADY_IN_ROOM"
    default_message = "Already in a room. Leave it first."


class QuotaMismatch(RuntimeError):
    # Raised only when the store computes a quota that does not fit the roster.
    def __init__(self, player_count: int, quota_total: int) -> None:
        self.player_count = player_count
        self.quota_total = quota_total
        super().__init__(
            f"Player count {player_count} does not match role distribution total {quota_total}"
        )
