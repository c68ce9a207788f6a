# battle_relay/transport/dispatcher.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Tuple, Union

from battle_relay.domain.battle.handlers import (
    handle_fire_shot,
    handle_fleet_committed,
    handle_game_over,
    handle_shot_response,
)
from battle_relay.domain.common.errors import MalformedMessage, RelayError
from battle_relay.domain.common.events import Delivery
from battle_relay.domain.lifecycle.handlers import handle_create_room, handle_join, handle_ping
from battle_relay.transport.connection import Session
from battle_relay.transport.protocols import (
    InCreateRoom,
    InFireShot,
    InFleetCommitted,
    InGameOver,
    InJoinRoom,
    InPing,
    InShotResponse,
    OutError,
    OutgoingEvent,
    parse_incoming,
)

logger = logging.getLogger(__name__)

# (to_sender_events, to_peer_deliveries); deliveries carry JSON dicts
DispatchResult = Tuple[List[Dict[str, Any]], List[Tuple[Dict[str, Any], List[Any]]]]

_HANDLERS = {
    InCreateRoom: handle_create_room,
    InJoinRoom: handle_join,
    InPing: handle_ping,
    InFleetCommitted: handle_fleet_committed,
    InFireShot: handle_fire_shot,
    InShotResponse: handle_shot_response,
    InGameOver: handle_game_over,
}


def decode_frame(raw: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
    """Text frame -> JSON object. Raises MalformedMessage."""
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMessage() from e
    if not isinstance(data, dict):
        raise MalformedMessage("Message must be a JSON object")
    return data


async def dispatch_message(
    *,
    app,
    session: Session,
    raw: Union[str, bytes, Dict[str, Any]],
) -> DispatchResult:
    """
    Transport layer calls this.
    - Decodes + validates the frame
    - Routes to the correct domain handler
    - Returns (to_sender, to_peers) as JSON dicts

    A RelayError becomes one error reply to the sender; nothing reaches peers.
    """
    try:
        msg = parse_incoming(decode_frame(raw))
        handler = _HANDLERS[type(msg)]
        to_sender, to_peers = await handler(app=app, session=session, msg=msg)
    except RelayError as e:
        if isinstance(e, MalformedMessage):
            logger.warning("Malformed frame from %r: %s", session.conn, e.message)
        return [_error(e.code, e.message)], []
    except Exception:
        logger.exception("Handler failed for %r", session.conn)
        return [_error("INTERNAL", "Internal server error")], []

    return _dump(to_sender), dump_deliveries(to_peers)


def _error(code: str, message: str) -> Dict[str, Any]:
    return OutError(code=code, message=message).model_dump()


def _dump(events: List[OutgoingEvent]) -> List[Dict[str, Any]]:
    """
    Convert pydantic events -> JSON dicts.
    """
    return [e.model_dump() for e in events]


def dump_deliveries(deliveries: List[Delivery]) -> List[Tuple[Dict[str, Any], List[Any]]]:
    return [(d.event.model_dump(), d.targets) for d in deliveries]
