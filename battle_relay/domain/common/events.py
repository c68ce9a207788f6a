# battle_relay/domain/common/events.py
from __future__ import annotations

"""
Handler result shape shared by every domain handler.
Events are defined in battle_relay/transport/protocols.py as OutgoingEvent types.
"""

from dataclasses import dataclass
from typing import Any, List, Tuple

from battle_relay.store.models import Player, Room
from battle_relay.transport.protocols import OutgoingEvent


@dataclass
class Delivery:
    """An event bound for specific peer connections (never the sender)."""
    event: OutgoingEvent
    targets: List[Any]


# (to_sender, to_peers)
Result = Tuple[List[OutgoingEvent], List[Delivery]]


def to_peers(room: Room, sender: Any, event: OutgoingEvent) -> Delivery:
    return Delivery(event=event, targets=[p.conn for p in room.peers_of(sender)])


def to_player(player: Player, event: OutgoingEvent) -> Delivery:
    return Delivery(event=event, targets=[player.conn])
