import pytest

from battle_relay.domain.lifecycle.handlers import handle_disconnect


async def _pair(make_client):
    a = make_client("a")
    b = make_client("b")
    await a.send({"type": "create_room", "address": "GA"})
    code = a.received[-1]["roomCode"]
    await b.send({"type": "join_room", "roomCode": code, "address": "GB"})
    return a, b, code


@pytest.mark.asyncio
async def test_create_then_join_assigns_indices(make_client, registry):
    a, b, code = await _pair(make_client)

    assert a.received[0] == {"type": "room_created", "roomCode": code, "playerIndex": 0}
    assert a.received[1] == {"type": "opponent_joined", "opponentAddress": "GB"}
    assert b.received == [
        {
            "type": "room_joined",
            "roomCode": code,
            "playerIndex": 1,
            "opponentAddress": "GA",
            "opponentCommitted": False,
        }
    ]
    assert registry.get(code).phase == "placing"


@pytest.mark.asyncio
async def test_join_unknown_room(make_client):
    c = make_client("c")
    await c.send({"type": "join_room", "roomCode": "QQQQQQ"})
    assert c.received[-1]["type"] == "error"
    assert c.received[-1]["code"] == "ROOM_NOT_FOUND"
    assert c.session.room_code is None


@pytest.mark.asyncio
async def test_third_join_gets_room_full(make_client, registry):
    a, b, code = await _pair(make_client)
    c = make_client("c")
    await c.send({"type": "join_room", "roomCode": code})

    assert c.received[-1]["code"] == "ROOM_FULL"
    assert [p.conn for p in registry.get(code).players] == [a.conn, b.conn]
    # nobody else hears about it
    assert a.received[-1]["type"] == "opponent_joined"
    assert len(b.received) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("who", ["a", "b"])
async def test_seated_player_rejoining_own_full_room_mid_battle_is_refused(make_client, registry, who):
    a, b, code = await _pair(make_client)
    await a.send({"type": "fleet_committed"})
    await b.send({"type": "fleet_committed"})
    seen_a, seen_b = len(a.received), len(b.received)

    caller = a if who == "a" else b
    reply = await caller.send({"type": "join_room", "roomCode": code, "address": "GX"})

    assert [e["code"] for e in reply] == ["ROOM_FULL"]
    room = registry.get(code)
    assert room.phase == "battle"
    assert [p.conn for p in room.players] == [a.conn, b.conn]
    assert [p.address for p in room.players] == ["GA", "GB"]
    assert all(p.committed for p in room.players)
    assert caller.session.room_code == code
    # the opponent hears nothing
    other = b if who == "a" else a
    assert len(other.received) == (seen_b if other is b else seen_a)


@pytest.mark.asyncio
async def test_rejoin_after_battle_disconnect_returns_room_to_placing(app, make_client, registry):
    a, b, code = await _pair(make_client)
    await a.send({"type": "fleet_committed"})
    await b.send({"type": "fleet_committed"})
    await handle_disconnect(app=app, session=b.session)
    assert registry.get(code).phase == "battle"

    b2 = make_client("b2")
    await b2.send({"type": "join_room", "roomCode": code, "address": "GB"})

    assert b2.received[-1]["type"] == "room_joined"
    assert registry.get(code).phase == "placing"


@pytest.mark.asyncio
async def test_disconnect_while_placing_sends_no_opponent_disconnected(app, make_client, registry):
    a, b, code = await _pair(make_client)

    _, to_peers = await handle_disconnect(app=app, session=b.session)
    assert "opponent_disconnected" not in [d.event.type for d in to_peers]
    assert [p.conn for p in registry.get(code).players] == [a.conn]
    assert registry.get(code).phase == "placing"


@pytest.mark.asyncio
async def test_disconnect_while_placing_informs_survivor(app, make_client):
    a, b, code = await _pair(make_client)
    _, to_peers = await handle_disconnect(app=app, session=b.session)

    assert len(to_peers) == 1
    assert to_peers[0].event.type == "opponent_left"
    assert to_peers[0].targets == [a.conn]


@pytest.mark.asyncio
async def test_disconnect_during_battle_notifies_survivor_once(app, make_client):
    a, b, code = await _pair(make_client)
    await a.send({"type": "fleet_committed"})
    await b.send({"type": "fleet_committed"})

    _, to_peers = await handle_disconnect(app=app, session=b.session)
    assert [d.event.type for d in to_peers] == ["opponent_disconnected"]
    assert to_peers[0].targets == [a.conn]

    # second close event for the same socket is a no-op
    _, again = await handle_disconnect(app=app, session=b.session)
    assert again == []


@pytest.mark.asyncio
async def test_last_player_leaving_schedules_deletion(app, make_client, registry):
    a, b, code = await _pair(make_client)
    await handle_disconnect(app=app, session=a.session)
    await handle_disconnect(app=app, session=b.session)

    room = registry.get(code)
    assert room is not None
    assert room.is_empty
    assert room.pending_deletion is not None


@pytest.mark.asyncio
async def test_rejoin_empty_room_cancels_deletion(app, make_client, registry):
    a, b, code = await _pair(make_client)
    await handle_disconnect(app=app, session=a.session)
    await handle_disconnect(app=app, session=b.session)

    again = make_client("a-again")
    await again.send({"type": "join_room", "roomCode": code, "address": "GA"})

    room = registry.get(code)
    assert room.pending_deletion is None
    assert again.received[-1]["type"] == "room_joined"
    assert again.received[-1]["playerIndex"] == 0
    assert again.received[-1]["opponentAddress"] is None


@pytest.mark.asyncio
async def test_rejoin_reports_committed_opponent(app, make_client, registry):
    a, b, code = await _pair(make_client)
    await a.send({"type": "fleet_committed"})
    await handle_disconnect(app=app, session=b.session)

    b2 = make_client("b2")
    await b2.send({"type": "join_room", "roomCode": code, "address": "GB"})
    reply = b2.received[-1]
    assert reply["playerIndex"] == 1
    assert reply["opponentCommitted"] is True


@pytest.mark.asyncio
async def test_create_while_seated_leaves_previous_room(make_client, registry):
    a, b, code = await _pair(make_client)
    await b.send({"type": "create_room"})

    assert b.session.room_code != code
    assert [p.conn for p in registry.get(code).players] == [a.conn]
    assert a.received[-1]["type"] == "opponent_left"


@pytest.mark.asyncio
async def test_ping_pong(make_client):
    c = make_client("c")
    await c.send({"type": "ping"})
    assert c.received == [{"type": "pong"}]
