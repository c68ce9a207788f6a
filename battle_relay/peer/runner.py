# battle_relay/peer/runner.py
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import random
from collections import deque
from typing import Deque, Optional, Tuple

import websockets

from battle_relay.peer.collaborators import OfflineLedger
from battle_relay.peer.fleet import BOARD_SIZE, EMPTY, random_fleet
from battle_relay.peer.session import PeerSession

logger = logging.getLogger(__name__)


def pick_target(session: PeerSession, rng: random.Random) -> Tuple[int, int]:
    open_cells = [
        (x, y)
        for y in range(BOARD_SIZE)
        for x in range(BOARD_SIZE)
        if session.opponent_board[y][x] == EMPTY
    ]
    return rng.choice(open_cells)


async def _flush(ws, outbox: Deque[dict]) -> None:
    while outbox:
        await ws.send(json.dumps(outbox.popleft()))


async def play(
    url: str,
    *,
    code: Optional[str] = None,
    address: Optional[str] = None,
    seed: Optional[int] = None,
) -> PeerSession:
    """
    Play one full game as a bot: create (or join `code`), place a random
    fleet, fire at random open cells until game over.
    """
    rng = random.Random(seed)
    outbox: Deque[dict] = deque()
    session = PeerSession(outbox.append, ledger=OfflineLedger())
    session.connect_identity(address or f"bot-{rng.randrange(16**6):06x}")

    async with websockets.connect(url) as ws:
        if code:
            session.join_room(code)
        else:
            session.create_room()
        await _flush(ws, outbox)

        async for raw in ws:
            msg = json.loads(raw)
            session.handle(msg)

            if msg.get("type") == "room_created":
                logger.info("Room %s created, share the code with your opponent", session.room_code)
            elif msg.get("type") == "error" and session.phase == "waiting_opponent" and code:
                logger.error("Could not join %s: %s", code, session.last_error)
                break

            if session.phase == "placing":
                session.use_board(random_fleet(rng))
                session.commit_fleet()
            elif session.phase == "your_turn":
                session.fire(*pick_target(session, rng))

            await _flush(ws, outbox)
            if session.phase == "game_over":
                break

    return session


def main() -> None:
    parser = argparse.ArgumentParser(description="Battleship relay bot - plays one random game")
    parser.add_argument("--url", type=str, default="ws://localhost:3001/ws", help="Relay websocket URL")
    parser.add_argument("--address", type=str, default=None, help="Display address")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for fleet and shots")
    parser.add_argument("--log-level", type=str, default="INFO")
    subparsers = parser.add_subparsers(dest="mode", required=True)

    subparsers.add_parser("create", help="Create a room and wait for an opponent")
    join_p = subparsers.add_parser("join", help="Join a room by code")
    join_p.add_argument("code", type=str, help="6-character room code")

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    session = asyncio.run(
        play(args.url, code=getattr(args, "code", None), address=args.address, seed=args.seed)
    )
    if session.phase == "game_over":
        print("You win!" if session.is_winner else "You lose.")
        print(f"Shots fired: {len(session.my_shots)}  hits: {session.hits_scored}")


if __name__ == "__main__":
    main()
