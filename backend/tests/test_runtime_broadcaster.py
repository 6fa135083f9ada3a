"""Tests for fan-out delivery and send isolation."""
import pytest

from mafia_lobby.runtime_broadcaster import Broadcaster
from mafia_lobby.runtime_connections import ConnectionRegistry
from mafia_lobby.runtime_protocol import BroadcastToRoom, SendToConnection, SendToPlayer
from mafia_lobby.runtime_rooms import RoomStore
from mafia_lobby.runtime_types import ClientConnection, Player, RoomSettings

from conftest import FakeWebSocket


def _seat(store, registry, room, player_id, websocket):
    if room is None:
        room = store.create_room(RoomSettings(7, 2, 1, 1), Player(player_id, player_id, "t"))
    else:
        store.join_room(room.code, Player(player_id, player_id, "t"))
    connection = ClientConnection(connection_id=f"conn-{player_id}", websocket=websocket)
    registry.admit(connection)
    registry.register(connection.connection_id, room.code, player_id)
    return room


@pytest.fixture
def setup():
    store = RoomStore()
    registry = ConnectionRegistry()
    sockets = {
        "alice": FakeWebSocket(),
        "bob": FakeWebSocket(fail=True),
        "cara": FakeWebSocket(),
        "dan": FakeWebSocket(),
    }
    room = None
    for player_id, websocket in sockets.items():
        room = _seat(store, registry, room, player_id, websocket)
    broadcaster = Broadcaster(store, registry, send_timeout_seconds=0.2)
    return broadcaster, room, sockets


@pytest.mark.asyncio
async def test_failing_socket_does_not_block_others(setup):
    broadcaster, room, sockets = setup

    delivered = await broadcaster.broadcast(room.code, {"type": "playersUpdated"})

    assert delivered == 3
    assert broadcaster.send_failures == 1
    for name in ("alice", "cara", "dan"):
        assert sockets[name].sent == [{"type": "playersUpdated"}]


@pytest.mark.asyncio
async def test_closed_socket_is_skipped(setup):
    broadcaster, room, sockets = setup
    sockets["cara"].mark_closed()

    delivered = await broadcaster.broadcast(room.code, {"type": "ping"})

    assert delivered == 2
    assert sockets["cara"].sent == []
    assert broadcaster.skipped_closed == 1


@pytest.mark.asyncio
async def test_exclude_player(setup):
    broadcaster, room, sockets = setup

    await broadcaster.broadcast(room.code, {"type": "playerJoined"}, exclude_player_id="dan")

    assert sockets["dan"].sent == []
    assert sockets["alice"].sent == [{"type": "playerJoined"}]


@pytest.mark.asyncio
async def test_slow_socket_times_out():
    store = RoomStore()
    registry = ConnectionRegistry()
    fast = FakeWebSocket()
    room = _seat(store, registry, None, "fast", fast)
    _seat(store, registry, room, "slow", FakeWebSocket(delay=5))
    broadcaster = Broadcaster(store, registry, send_timeout_seconds=0.05)

    delivered = await broadcaster.broadcast(room.code, {"type": "playersUpdated"})

    assert delivered == 1
    assert fast.sent == [{"type": "playersUpdated"}]
    assert broadcaster.send_failures == 1


@pytest.mark.asyncio
async def test_unknown_room_and_targets_are_ignored(setup):
    broadcaster, _, _ = setup

    assert await broadcaster.broadcast("ZZZZZZ", {"type": "x"}) == 0
    assert await broadcaster.send_to_player("nobody", {"type": "x"}) is False
    assert await broadcaster.send_to_connection("nowhere", {"type": "x"}) is False


@pytest.mark.asyncio
async def test_deliver_routes_each_outbound_kind(setup):
    broadcaster, room, sockets = setup

    await broadcaster.deliver(
        [
            SendToConnection("conn-alice", {"type": "roomJoined"}),
            SendToPlayer("cara", {"type": "gameStarted"}),
            BroadcastToRoom(room.code, {"type": "playerLeft"}, exclude_player_id="alice"),
        ]
    )

    assert [event["type"] for event in sockets["alice"].sent] == ["roomJoined"]
    assert [event["type"] for event in sockets["cara"].sent] == ["gameStarted", "playerLeft"]
    assert [event["type"] for event in sockets["dan"].sent] == ["playerLeft"]
