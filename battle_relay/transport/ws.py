# battle_relay/transport/ws.py
from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from battle_relay.domain.lifecycle.handlers import handle_disconnect
from battle_relay.transport.connection import Session, WSConnection, safe_send, send_all
from battle_relay.transport.dispatcher import dispatch_message, dump_deliveries

logger = logging.getLogger(__name__)

router = APIRouter()


def _allowed_origins(websocket: WebSocket) -> set:
    settings = websocket.app.state.settings
    return {o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()}


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    allowed = _allowed_origins(websocket)
    origin = websocket.headers.get("origin")
    # non-browser clients send no Origin
    if origin is None or "*" in allowed or origin in allowed:
        return True
    await websocket.close(code=1008)
    return False


async def _deliver(deliveries) -> None:
    for event, targets in deliveries:
        await send_all(targets, event)


@router.websocket("/")
@router.websocket("/ws")
async def ws_relay(websocket: WebSocket):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()
    conn = WSConnection(websocket)
    session = Session(conn=conn)
    logger.debug("Connection %s opened", conn.cid)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""

            to_sender, to_peers = await dispatch_message(
                app=websocket.app,
                session=session,
                raw=raw,
            )

            # unicast
            for e in to_sender:
                await safe_send(conn, e)

            # relay to the other occupant(s) only
            await _deliver(to_peers)

    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WebSocket error on %s", conn.cid)
    finally:
        _, to_peers = await handle_disconnect(app=websocket.app, session=session)
        await _deliver(dump_deliveries(to_peers))
        logger.debug("Connection %s closed", conn.cid)
