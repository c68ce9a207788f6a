# battle_relay/domain/common/types.py
from __future__ import annotations

from typing import Literal

# Coarse server-side room phase
RoomPhase = Literal["waiting", "placing", "battle"]

# Rich per-peer phase, mirrored on both clients
ClientPhase = Literal[
    "connecting",
    "waiting_opponent",
    "placing",
    "committing",
    "waiting_commits",
    "your_turn",
    "opponent_turn",
    "proving",
    "waiting_proof",
    "game_over",
]

MAX_PLAYERS = 2
