# battle_relay/transport/admin.py
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from battle_relay.store.codes import normalize_room_code
from battle_relay.store.room_registry import RoomRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/rooms")
async def list_rooms(request: Request):
    """
    List all live rooms (debug/admin).
    """
    registry: RoomRegistry = request.app.state.registry

    rooms = []
    for room in sorted(registry.list_rooms(), key=lambda r: r.code):
        rooms.append(
            {
                "room_code": room.code,
                "phase": room.phase,
                "players": len(room.players),
                "connected": sum(1 for p in room.players if getattr(p.conn, "is_open", False)),
                "committed": sum(1 for p in room.players if p.committed),
                "pending_deletion": room.pending_deletion is not None,
                "created_at": room.created_at,
            }
        )

    return {"rooms": rooms}


@router.post("/rooms/{room_code}/close")
async def close_room(room_code: str, request: Request):
    """
    Force close a room (debug/admin). Deletes it and closes its websockets.
    """
    registry: RoomRegistry = request.app.state.registry
    code = normalize_room_code(room_code)

    room = registry.delete_room(code, reason="admin close")
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")

    for p in list(room.players):
        try:
            await p.conn.close(code=4000)
        except Exception:
            logger.debug("[Room %s] close failed for %r", code, p.conn)

    return {"ok": True, "room_code": code}
