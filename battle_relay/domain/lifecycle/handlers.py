# battle_relay/domain/lifecycle/handlers.py
from __future__ import annotations

import logging
from typing import List

from battle_relay.domain.common.errors import RoomFull, RoomNotFound
from battle_relay.domain.common.events import Delivery, Result, to_peers
from battle_relay.store.room_registry import RoomRegistry
from battle_relay.transport.connection import Session
from battle_relay.transport.protocols import (
    InCreateRoom,
    InJoinRoom,
    InPing,
    OutOpponentDisconnected,
    OutOpponentJoined,
    OutOpponentLeft,
    OutPong,
    OutRoomCreated,
    OutRoomJoined,
)

logger = logging.getLogger(__name__)


def _leave_current_room(registry: RoomRegistry, session: Session) -> List[Delivery]:
    """
    Unseat the session from its room, if any.
    During battle the survivor gets opponent_disconnected (read by clients as a
    win); otherwise a remaining occupant only gets opponent_left.
    """
    code = session.room_code
    session.room_code = None
    if code is None:
        return []

    room = registry.get(code)
    if room is None or room.index_of(session.conn) < 0:
        return []

    was_battle = room.phase == "battle"
    registry.remove_player(code, session.conn)
    if room.is_empty:
        return []

    if was_battle:
        logger.info("[Room %s] Opponent disconnected mid-battle", code)
        return [to_peers(room, session.conn, OutOpponentDisconnected())]
    return [to_peers(room, session.conn, OutOpponentLeft())]


# -------------------------
# Handlers
# -------------------------

async def handle_create_room(*, app, session: Session, msg: InCreateRoom) -> Result:
    """
    New room with the caller seated at index 0, phase waiting.
    A caller already seated elsewhere leaves that room first.
    """
    registry: RoomRegistry = app.state.registry
    to_room = _leave_current_room(registry, session)

    room = registry.create_room(session.conn, msg.address)
    session.room_code = room.code

    return [OutRoomCreated(roomCode=room.code, playerIndex=0)], to_room


async def handle_join(*, app, session: Session, msg: InJoinRoom) -> Result:
    """
    Join:
    - RoomNotFound / RoomFull propagate to the dispatcher untouched
    - joiner learns the opponent address and whether they already committed
    - the occupant (if any) gets opponent_joined
    """
    registry: RoomRegistry = app.state.registry

    target = registry.get(msg.roomCode)
    if target is None:
        raise RoomNotFound()
    if target.is_full:
        raise RoomFull()
    to_room = _leave_current_room(registry, session)

    room, idx = registry.join_room(msg.roomCode, session.conn, msg.address)
    session.room_code = room.code

    joiner = room.players[idx]
    peers = room.peers_of(session.conn)
    opponent = peers[0] if peers else None

    reply = OutRoomJoined(
        roomCode=room.code,
        playerIndex=idx,
        opponentAddress=opponent.address if opponent else None,
        opponentCommitted=bool(opponent and opponent.committed),
    )
    if opponent is not None:
        to_room.append(to_peers(room, session.conn, OutOpponentJoined(opponentAddress=joiner.address)))
    return [reply], to_room


async def handle_ping(*, app, session: Session, msg: InPing) -> Result:
    return [OutPong()], []


async def handle_disconnect(*, app, session: Session) -> Result:
    """
    Called by transport when the websocket closes.
    Mirrors a leave without requiring a message model.
    """
    registry: RoomRegistry = app.state.registry
    return [], _leave_current_room(registry, session)
