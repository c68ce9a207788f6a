# battle_relay/store/room_registry.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from battle_relay.domain.common.errors import RoomFull, RoomNotFound
from battle_relay.store.codes import gen_room_code, normalize_room_code, unique_room_code
from battle_relay.store.models import Player, Room
from battle_relay.util.timeutil import now_ts

logger = logging.getLogger(__name__)


class RoomRegistry:
    """
    In-memory room store: room code -> Room.
    Only touched from the event loop, and no method awaits, so each call
    runs to completion before any other connection's handler resumes.
    """

    def __init__(
        self,
        *,
        grace_sec: float = 120,
        code_length: int = 6,
        code_gen: Optional[Callable[[], str]] = None,
    ) -> None:
        self._rooms: Dict[str, Room] = {}
        self.grace_sec = grace_sec
        self.code_gen = code_gen or (lambda: gen_room_code(code_length))

    # ----------------------------
    # Lookups
    # ----------------------------
    def __len__(self) -> int:
        return len(self._rooms)

    def room_exists(self, code: str) -> bool:
        return code in self._rooms

    def get(self, code: str) -> Optional[Room]:
        return self._rooms.get(code)

    def list_rooms(self) -> List[Room]:
        return list(self._rooms.values())

    # ----------------------------
    # Create / join
    # ----------------------------
    def create_room(self, conn: Any, address: Optional[str] = None) -> Room:
        code = unique_room_code(self._rooms, self.code_gen)
        room = Room(
            code=code,
            players=[Player(conn=conn, address=address or "Player1")],
            phase="waiting",
            created_at=now_ts(),
        )
        self._rooms[code] = room
        logger.info("[Room %s] Created by %s", code, address or "anon")
        return room

    def join_room(self, code: str, conn: Any, address: Optional[str] = None) -> Tuple[Room, int]:
        """
        Seat `conn` in room `code`.
        Returns (room, player_index). Raises RoomNotFound / RoomFull.
        """
        code = normalize_room_code(code)
        room = self._rooms.get(code)
        if room is None:
            raise RoomNotFound()
        if room.is_full:
            raise RoomFull()

        room.players.append(Player(conn=conn, address=address or "Player2"))
        room.phase = "placing"
        self.cancel_deletion(room)

        idx = len(room.players) - 1
        logger.info("[Room %s] Player %d joined: %s", code, idx + 1, address or "anon")
        return room, idx

    # ----------------------------
    # Leave / delete
    # ----------------------------
    def remove_player(self, code: str, conn: Any) -> Optional[Room]:
        """
        Drop `conn` from its room. An emptied room is kept for the grace
        period instead of being deleted. Returns the room, or None if gone.
        """
        room = self._rooms.get(code)
        if room is None:
            return None
        room.players = [p for p in room.players if p.conn is not conn]

        if room.is_empty:
            logger.info(
                "[Room %s] Empty, will delete in %ss if no one rejoins", code, self.grace_sec
            )
            self.schedule_deletion(room)
        else:
            logger.info("[Room %s] Player disconnected, %d remaining", code, len(room.players))
        return room

    def delete_room(self, code: str, reason: str = "") -> Optional[Room]:
        room = self._rooms.pop(code, None)
        if room is None:
            return None
        self.cancel_deletion(room)
        logger.info("[Room %s] Deleted%s", code, f" ({reason})" if reason else "")
        return room

    # ----------------------------
    # Timers
    # ----------------------------
    def schedule_deletion(self, room: Room) -> None:
        self.cancel_deletion(room)
        loop = asyncio.get_running_loop()
        room.pending_deletion = loop.call_later(self.grace_sec, self._expire, room.code, room)

    def cancel_deletion(self, room: Room) -> bool:
        # single check-and-clear; no await between test and reset
        handle = room.pending_deletion
        if handle is None:
            return False
        room.pending_deletion = None
        handle.cancel()
        return True

    def _expire(self, code: str, room: Room) -> None:
        room.pending_deletion = None
        # code may have been reused by a newer room after an explicit delete
        if self._rooms.get(code) is room and room.is_empty:
            self.delete_room(code, reason="timeout")

    def sweep_stale(self) -> List[str]:
        """Delete every room whose occupants' transports are all closed."""
        stale = [code for code, room in self._rooms.items() if room.all_closed()]
        for code in stale:
            self.delete_room(code, reason="stale")
        return stale
