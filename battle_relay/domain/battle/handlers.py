# battle_relay/domain/battle/handlers.py
from __future__ import annotations

import logging

from battle_relay.domain.common.errors import NotInRoom
from battle_relay.domain.common.events import Result, to_peers, to_player
from battle_relay.domain.common.fsm import can_transition_room
from battle_relay.store.models import Room
from battle_relay.store.room_registry import RoomRegistry
from battle_relay.transport.connection import Session
from battle_relay.transport.protocols import (
    InFireShot,
    InFleetCommitted,
    InGameOver,
    InShotResponse,
    OutBattleStart,
    OutIncomingShot,
    OutOpponentCommitted,
    OutOpponentWins,
    OutShotResult,
)

logger = logging.getLogger(__name__)


def _seated_room(app, session: Session) -> Room:
    registry: RoomRegistry = app.state.registry
    room = registry.get(session.room_code) if session.room_code else None
    if room is None or room.index_of(session.conn) < 0:
        session.room_code = None
        raise NotInRoom()
    return room


async def handle_fleet_committed(*, app, session: Session, msg: InFleetCommitted) -> Result:
    """
    Mark the caller committed and tell the opponent.
    When both players are committed the room enters battle exactly once and
    each side gets battle_start; index 0 moves first.
    """
    room = _seated_room(app, session)
    player = room.player_for(session.conn)
    player.committed = True

    to_sender = []
    to_room = [to_peers(room, session.conn, OutOpponentCommitted())]

    if room.all_committed() and can_transition_room(room.phase, "battle"):
        room.phase = "battle"
        for idx, p in enumerate(room.players):
            event = OutBattleStart(yourTurn=(idx == 0))
            if p.conn is session.conn:
                to_sender.append(event)
            else:
                to_room.append(to_player(p, event))
        logger.info("[Room %s] Battle begins", room.code)

    return to_sender, to_room


async def handle_fire_shot(*, app, session: Session, msg: InFireShot) -> Result:
    # turn order is the clients' business; the relay only forwards
    room = _seated_room(app, session)
    logger.debug("[Room %s] Shot fired at (%d, %d)", room.code, msg.x, msg.y)
    return [], [to_peers(room, session.conn, OutIncomingShot(x=msg.x, y=msg.y))]


async def handle_shot_response(*, app, session: Session, msg: InShotResponse) -> Result:
    room = _seated_room(app, session)
    logger.debug(
        "[Room %s] Response: %s at (%d, %d)", room.code, "HIT" if msg.isHit else "MISS", msg.x, msg.y
    )
    event = OutShotResult(x=msg.x, y=msg.y, isHit=msg.isHit, proof=msg.proof)
    return [], [to_peers(room, session.conn, event)]


async def handle_game_over(*, app, session: Session, msg: InGameOver) -> Result:
    """Sender claims the win: opponent is told, room is deleted."""
    room = _seated_room(app, session)
    delivery = to_peers(room, session.conn, OutOpponentWins())

    registry: RoomRegistry = app.state.registry
    registry.delete_room(room.code, reason="game over")
    session.room_code = None
    return [], [delivery]
