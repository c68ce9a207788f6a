# battle_relay/peer/session.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from battle_relay.domain.common.fsm import InvalidTransition, PhaseMachine
from battle_relay.peer.collaborators import HashCommitmentEngine, Ledger, ProofEngine
from battle_relay.peer.fleet import (
    EMPTY,
    HIT,
    MISS,
    TOTAL_SHIP_CELLS,
    Board,
    Placement,
    generate_salt,
    in_bounds,
    make_empty_board,
)

logger = logging.getLogger(__name__)

Send = Callable[[Dict[str, Any]], None]


class PeerSession:
    """
    One participant's side of the game.

    Local actions (identity, room, placement, commit, fire) and relay events
    both drive the same PhaseMachine. Outbound wire messages go through `send`;
    the relay is only a transport here. Relay events that arrive in a phase
    that cannot take them are logged and dropped, because nothing upstream
    enforces turn order.
    """

    def __init__(
        self,
        send: Send,
        *,
        proof_engine: Optional[ProofEngine] = None,
        ledger: Optional[Ledger] = None,
    ) -> None:
        self.send = send
        self.proof_engine = proof_engine or HashCommitmentEngine()
        self.ledger = ledger
        self.machine = PhaseMachine()
        self._handlers: Dict[str, Callable[[Dict[str, Any]], bool]] = {
            "room_created": self._on_room_created,
            "room_joined": self._on_room_joined,
            "opponent_joined": self._on_opponent_joined,
            "opponent_left": self._on_opponent_left,
            "opponent_committed": self._on_opponent_committed,
            "battle_start": self._on_battle_start,
            "incoming_shot": self._on_incoming_shot,
            "shot_result": self._on_shot_result,
            "opponent_wins": self._on_opponent_wins,
            "opponent_disconnected": self._on_opponent_disconnected,
            "error": self._on_error,
            "pong": lambda msg: True,
        }
        self._clear()

    def _clear(self) -> None:
        self.address: Optional[str] = None
        self.opponent_address: Optional[str] = None
        self.room_code: Optional[str] = None
        self.player_index: Optional[int] = None
        self.opponent_present = False
        self.opponent_committed = False

        self.board = Board()
        self.opponent_board = make_empty_board()
        self.salt: Optional[str] = None
        self.commitment: Optional[str] = None

        self.my_shots: List[Tuple[int, int, bool]] = []
        self.opponent_shots: List[Tuple[int, int, bool]] = []
        self.hits_taken = 0
        self.hits_scored = 0
        self.pending_shot: Optional[Tuple[int, int]] = None

        self.winner: Optional[str] = None
        self.is_winner: Optional[bool] = None
        self.last_error: Optional[str] = None

    @property
    def phase(self) -> str:
        return self.machine.phase

    def reset(self) -> None:
        self.machine.reset()
        self._clear()

    # ----------------------------
    # Local actions
    # ----------------------------
    def connect_identity(self, address: str) -> None:
        self.machine.advance("waiting_opponent")
        self.address = address

    def create_room(self) -> None:
        self._require("waiting_opponent")
        self.send({"type": "create_room", "address": self.address})

    def join_room(self, code: str) -> None:
        self._require("waiting_opponent")
        self.send({"type": "join_room", "roomCode": code, "address": self.address})

    def place_ship(self, ship_id: str, x: int, y: int, horizontal: bool = True) -> Placement:
        self._require("placing")
        return self.board.place_ship(ship_id, x, y, horizontal)

    def remove_ship(self, ship_id: str) -> None:
        self._require("placing")
        self.board.remove_ship(ship_id)

    def use_board(self, board: Board) -> None:
        self._require("placing")
        self.board = board

    def commit_fleet(self) -> str:
        """
        Bind the placed fleet to a commitment and tell the opponent.
        placing -> committing -> waiting_commits, or back to placing on failure.
        """
        if not self.board.complete:
            raise ValueError("all ships must be placed before committing")
        self.machine.advance("committing")
        try:
            salt = generate_salt()
            commitment = self.proof_engine.commit(self.board.fleet_grid(), salt)
        except Exception:
            logger.exception("Fleet commitment failed")
            self.machine.advance("placing")
            raise

        self.salt = salt
        self.commitment = commitment
        self.send({"type": "fleet_committed"})
        self._ledger("commit_fleet", commitment)
        self.machine.advance("waiting_commits")
        return commitment

    def fire(self, x: int, y: int) -> None:
        if not self.machine.is_my_turn:
            raise InvalidTransition(self.phase, "waiting_proof")
        if not in_bounds(x, y):
            raise ValueError(f"shot out of bounds: ({x}, {y})")
        if self.opponent_board[y][x] != EMPTY:
            raise ValueError(f"already fired at ({x}, {y})")

        self.send({"type": "fire_shot", "x": x, "y": y})
        self._ledger("fire_shot", x, y)
        self.pending_shot = (x, y)
        self.machine.advance("waiting_proof")

    # ----------------------------
    # Relay events
    # ----------------------------
    def handle(self, msg: Dict[str, Any]) -> bool:
        """Feed one server->client message. Returns False if it was dropped."""
        handler = self._handlers.get(msg.get("type"))
        if handler is None:
            logger.warning("Ignoring unknown relay message %r", msg.get("type"))
            return False
        return handler(msg)

    def _on_room_created(self, msg: Dict[str, Any]) -> bool:
        self.room_code = msg.get("roomCode")
        self.player_index = msg.get("playerIndex", 0)
        return True

    def _on_room_joined(self, msg: Dict[str, Any]) -> bool:
        self.room_code = msg.get("roomCode")
        self.player_index = msg.get("playerIndex")
        self.opponent_address = msg.get("opponentAddress")
        self.opponent_committed = bool(msg.get("opponentCommitted"))
        self.opponent_present = self.opponent_address is not None
        # an emptied room can be rejoined alone; wait for the opponent then
        if self.opponent_present and self.phase == "waiting_opponent":
            self.machine.advance("placing")
        return True

    def _on_opponent_joined(self, msg: Dict[str, Any]) -> bool:
        self.opponent_address = msg.get("opponentAddress")
        self.opponent_present = True
        self.opponent_committed = False
        if self.phase == "waiting_opponent":
            self.machine.advance("placing")
        return True

    def _on_opponent_left(self, msg: Dict[str, Any]) -> bool:
        self.opponent_present = False
        self.opponent_committed = False
        return True

    def _on_opponent_committed(self, msg: Dict[str, Any]) -> bool:
        self.opponent_committed = True
        return True

    def _on_battle_start(self, msg: Dict[str, Any]) -> bool:
        if self.phase != "waiting_commits":
            return self._drop(msg)
        self.machine.advance("your_turn" if msg.get("yourTurn") else "opponent_turn")
        return True

    def _on_incoming_shot(self, msg: Dict[str, Any]) -> bool:
        if self.phase != "opponent_turn":
            return self._drop(msg)
        x, y = int(msg["x"]), int(msg["y"])
        is_hit, newly_hit = self.board.receive_shot(x, y)
        if newly_hit:
            self.hits_taken += 1
        self.opponent_shots.append((x, y, is_hit))

        self.machine.advance("proving")
        proof = self._prove(x, y, is_hit)
        self.send({"type": "shot_response", "x": x, "y": y, "isHit": is_hit, "proof": proof})
        self._ledger("submit_response", int(is_hit), proof)

        if self.hits_taken >= TOTAL_SHIP_CELLS:
            self._finish(won=False)
        else:
            self.machine.advance("your_turn")
        return True

    def _on_shot_result(self, msg: Dict[str, Any]) -> bool:
        if self.phase != "waiting_proof":
            return self._drop(msg)
        x, y, is_hit = int(msg["x"]), int(msg["y"]), bool(msg.get("isHit"))
        if self.pending_shot != (x, y):
            logger.warning("shot_result for (%d, %d) but fired at %r", x, y, self.pending_shot)
        self.pending_shot = None

        if is_hit and self.opponent_board[y][x] != HIT:
            self.hits_scored += 1
        self.opponent_board[y][x] = HIT if is_hit else MISS
        self.my_shots.append((x, y, is_hit))

        if self.hits_scored >= TOTAL_SHIP_CELLS:
            self.send({"type": "game_over"})
            self._ledger("claim_victory")
            self._finish(won=True)
        else:
            self.machine.advance("opponent_turn")
        return True

    def _on_opponent_wins(self, msg: Dict[str, Any]) -> bool:
        if not self.machine.in_battle:
            return self._drop(msg)
        self._finish(won=False)
        return True

    def _on_opponent_disconnected(self, msg: Dict[str, Any]) -> bool:
        if not self.machine.in_battle:
            return self._drop(msg)
        self.last_error = "Opponent disconnected from the game."
        self._finish(won=True)
        return True

    def _on_error(self, msg: Dict[str, Any]) -> bool:
        self.last_error = msg.get("message")
        logger.warning("Relay error %s: %s", msg.get("code"), self.last_error)
        return True

    # ----------------------------
    # Helpers
    # ----------------------------
    def _finish(self, *, won: bool) -> None:
        self.machine.advance("game_over")
        self.is_winner = won
        self.winner = self.address if won else (self.opponent_address or "opponent")

    def _prove(self, x: int, y: int, is_hit: bool) -> Optional[Any]:
        try:
            return self.proof_engine.prove(
                self.board.fleet_grid(), self.salt, self.commitment, x, y, int(is_hit)
            )
        except Exception:
            logger.exception("Proof generation failed for (%d, %d)", x, y)
            return None

    def _ledger(self, name: str, *args: Any) -> None:
        if self.ledger is None:
            return
        try:
            getattr(self.ledger, name)(*args)
        except Exception as exc:
            logger.warning("Ledger %s failed: %s", name, exc)

    def _require(self, phase: str) -> None:
        if self.phase != phase:
            raise InvalidTransition(self.phase, phase)

    def _drop(self, msg: Dict[str, Any]) -> bool:
        logger.warning("Dropping %s in phase %s", msg.get("type"), self.phase)
        return False
