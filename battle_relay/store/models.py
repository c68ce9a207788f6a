# battle_relay/store/models.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, List, Optional

from battle_relay.domain.common.types import MAX_PLAYERS, RoomPhase


@dataclass
class Player:
    conn: Any                # exclusively owned transport, see transport/connection.py
    address: str
    committed: bool = False  # never reset while the room lives


@dataclass
class Room:
    """
    One session binding at most two connections under a short code.
    Index 0 in `players` is the creator and always moves first.
    """
    code: str
    players: List[Player] = field(default_factory=list)
    phase: RoomPhase = "waiting"
    created_at: int = 0
    # present only while the room is empty
    pending_deletion: Optional[asyncio.TimerHandle] = None

    @property
    def is_full(self) -> bool:
        return len(self.players) >= MAX_PLAYERS

    @property
    def is_empty(self) -> bool:
        return not self.players

    def index_of(self, conn: Any) -> int:
        for i, p in enumerate(self.players):
            if p.conn is conn:
                return i
        return -1

    def player_for(self, conn: Any) -> Optional[Player]:
        idx = self.index_of(conn)
        return self.players[idx] if idx >= 0 else None

    def peers_of(self, conn: Any) -> List[Player]:
        return [p for p in self.players if p.conn is not conn]

    def all_committed(self) -> bool:
        return len(self.players) == MAX_PLAYERS and all(p.committed for p in self.players)

    def all_closed(self) -> bool:
        return all(not getattr(p.conn, "is_open", False) for p in self.players)
