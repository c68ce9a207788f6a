# battle_relay/transport/connection.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from battle_relay.domain.common.errors import TransportUnavailable

logger = logging.getLogger(__name__)


class WSConnection:
    """
    Transport channel owned by exactly one Player.
    Registry and handlers only see `cid`, `is_open`, `send_json`, `close`.
    """

    def __init__(self, ws: WebSocket) -> None:
        self.ws = ws
        self.cid = uuid.uuid4().hex[:10]

    @property
    def is_open(self) -> bool:
        return (
            self.ws.client_state == WebSocketState.CONNECTED
            and self.ws.application_state == WebSocketState.CONNECTED
        )

    async def send_json(self, event: dict) -> None:
        if not self.is_open:
            raise TransportUnavailable()
        await self.ws.send_json(event)

    async def close(self, code: int = 1000) -> None:
        if self.is_open:
            await self.ws.close(code=code)

    def __repr__(self) -> str:
        return f"WSConnection({self.cid})"


@dataclass
class Session:
    """Per-connection context: which room this socket is seated in."""
    conn: Any
    room_code: Optional[str] = None


async def safe_send(conn: Any, event: dict) -> bool:
    """
    Fire-and-forget send. A closed or failing transport is skipped,
    never retried and never reported to the sender.
    """
    if not getattr(conn, "is_open", False):
        logger.debug("drop %s to closed transport %r", event.get("type"), conn)
        return False
    try:
        await conn.send_json(event)
    except Exception as exc:  # noqa: BLE001 - peer may vanish mid-send
        logger.debug("drop %s to %r: %s", event.get("type"), conn, exc)
        return False
    return True


async def send_all(conns: Iterable[Any], event: dict) -> int:
    sent = 0
    for c in conns:
        if await safe_send(c, event):
            sent += 1
    return sent
