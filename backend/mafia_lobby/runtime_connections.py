from __future__ import annotations

from .runtime_types import ClientConnection, ConnectionEntry


class ConnectionRegistry:
    """Maps live connections to the room and player they act for.

    Rooms and players never hold sockets; this table is the only link between
    transport state and room state. All methods run on the event loop without
    awaiting, so each call is atomic with respect to other connections.
    """

    def __init__(self) -> None:
        self._connections: dict[str, ClientConnection] = {}
        self._entries: dict[str, ConnectionEntry] = {}
        self._by_player: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def admit(self, connection: ClientConnection) -> None:
        self._connections[connection.connection_id] = connection

    def release(self, connection_id: str) -> ConnectionEntry | None:
        entry = self.unregister(connection_id)
        self._connections.pop(connection_id, None)
        return entry

    def get_connection(self, connection_id: str) -> ClientConnection | None:
        return self._connections.get(connection_id)

    def register(self, connection_id: str, room_code: str, player_id: str) -> ConnectionEntry:
        previous = self._entries.get(connection_id)
        if previous is not None and self._by_player.get(previous.player_id) == connection_id:
            self._by_player.pop(previous.player_id, None)

        entry = ConnectionEntry(
            connection_id=connection_id,
            room_code=room_code,
            player_id=player_id,
        )
        self._entries[connection_id] = entry
        self._by_player[player_id] = connection_id
        return entry

    def lookup(self, connection_id: str) -> ConnectionEntry | None:
        return self._entries.get(connection_id)

    def unregister(self, connection_id: str) -> ConnectionEntry | None:
        entry = self._entries.pop(connection_id, None)
        if entry is not None and self._by_player.get(entry.player_id) == connection_id:
            self._by_player.pop(entry.player_id, None)
        return entry

    def unregister_player(self, player_id: str) -> ConnectionEntry | None:
        connection_id = self._by_player.get(player_id)
        if connection_id is None:
            return None
        return self.unregister(connection_id)

    def connection_for_player(self, player_id: str) -> ClientConnection | None:
        connection_id = self._by_player.get(player_id)
        if connection_id is None:
            return None
        return self._connections.get(connection_id)

    def entries(self) -> list[ConnectionEntry]:
        return list(self._entries.values())

    def clear(self) -> list[ClientConnection]:
        connections = list(self._connections.values())
        self._connections.clear()
        self._entries.clear()
        self._by_player.clear()
        return connections
