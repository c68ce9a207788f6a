# battle_relay/peer/collaborators.py
from __future__ import annotations

"""
Interfaces to the two external subsystems a peer talks to besides the relay.

The proof engine binds a private fleet grid and salt to a public commitment and
produces an opaque proof for each hit/miss answer. The ledger records the same
events publicly for settlement. Neither is needed for the relay protocol, and
ledger calls are fire-and-forget.
"""

import hashlib
import itertools
import logging
from typing import Any, List, Optional, Protocol

logger = logging.getLogger(__name__)


class ProofEngine(Protocol):
    def commit(self, fleet_grid: List[int], salt: str) -> str: ...

    def prove(
        self,
        fleet_grid: List[int],
        salt: str,
        commitment: str,
        shot_x: int,
        shot_y: int,
        response: int,
    ) -> Optional[Any]: ...


class Ledger(Protocol):
    def commit_fleet(self, commitment: str) -> str: ...

    def fire_shot(self, x: int, y: int) -> str: ...

    def submit_response(self, response: int, proof: Optional[Any]) -> str: ...

    def claim_victory(self) -> str: ...


class HashCommitmentEngine:
    """
    Local stand-in: sha256(grid || salt) commitment and no proof.
    Peers using it trust each other's answers.
    """

    def commit(self, fleet_grid: List[int], salt: str) -> str:
        digest = hashlib.sha256()
        digest.update(bytes(fleet_grid))
        digest.update(bytes.fromhex(salt))
        return digest.hexdigest()

    def prove(self, fleet_grid, salt, commitment, shot_x, shot_y, response) -> Optional[Any]:
        return None


class OfflineLedger:
    """Logs each call and hands back a placeholder transaction id."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self._seq = itertools.count(1)

    def _record(self, name: str, *args: Any) -> str:
        self.calls.append((name,) + args)
        tx = f"offline-{name}-{next(self._seq)}"
        logger.info("[ledger] %s%r -> %s", name, args, tx)
        return tx

    def commit_fleet(self, commitment: str) -> str:
        return self._record("commit_fleet", commitment)

    def fire_shot(self, x: int, y: int) -> str:
        return self._record("fire_shot", x, y)

    def submit_response(self, response: int, proof: Optional[Any]) -> str:
        return self._record("submit_response", response)

    def claim_victory(self) -> str:
        return self._record("claim_victory")
