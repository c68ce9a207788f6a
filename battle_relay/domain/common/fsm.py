# battle_relay/domain/common/fsm.py
from __future__ import annotations

from typing import Dict, FrozenSet, List

from battle_relay.domain.common.types import ClientPhase, RoomPhase

BATTLE_PHASES: FrozenSet[ClientPhase] = frozenset(
    {"your_turn", "opponent_turn", "proving", "waiting_proof"}
)

CLIENT_TRANSITIONS: Dict[ClientPhase, List[ClientPhase]] = {
    "connecting": ["waiting_opponent"],
    "waiting_opponent": ["placing"],
    "placing": ["committing"],
    # failed commit falls back to placing
    "committing": ["waiting_commits", "placing"],
    "waiting_commits": ["your_turn", "opponent_turn"],
    "your_turn": ["waiting_proof", "game_over"],
    "waiting_proof": ["opponent_turn", "game_over"],
    "opponent_turn": ["proving", "your_turn", "game_over"],
    "proving": ["your_turn", "game_over"],
    "game_over": [],
}


def can_transition_room(current: RoomPhase, target: RoomPhase) -> bool:
    """
    Validate server room phase transitions.
    A join into a vacated seat (a rejoin mid-battle included) sends the room
    back to placing. Full rooms never reach this.
    """
    transitions: Dict[RoomPhase, List[RoomPhase]] = {
        "waiting": ["placing"],
        "placing": ["placing", "battle"],
        "battle": ["placing"],
    }
    return target in transitions.get(current, [])


def can_transition_phase(current: ClientPhase, target: ClientPhase) -> bool:
    """
    Validate client phase transitions (mirrored on both peers).
    """
    return target in CLIENT_TRANSITIONS.get(current, [])


class InvalidTransition(ValueError):
    def __init__(self, current: ClientPhase, target: ClientPhase) -> None:
        super().__init__(f"cannot move from {current} to {target}")
        self.current = current
        self.target = target


class PhaseMachine:
    """Holds one peer's phase; every move goes through the transition table."""

    def __init__(self, phase: ClientPhase = "connecting") -> None:
        self.phase: ClientPhase = phase
        self.history: List[ClientPhase] = [phase]

    def can(self, target: ClientPhase) -> bool:
        return can_transition_phase(self.phase, target)

    def advance(self, target: ClientPhase) -> ClientPhase:
        if not self.can(target):
            raise InvalidTransition(self.phase, target)
        self.phase = target
        self.history.append(target)
        return target

    @property
    def in_battle(self) -> bool:
        return self.phase in BATTLE_PHASES

    @property
    def is_my_turn(self) -> bool:
        return self.phase == "your_turn"

    def reset(self) -> None:
        self.phase = "connecting"
        self.history = ["connecting"]
