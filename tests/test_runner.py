import random

from battle_relay.peer.fleet import BOARD_SIZE, EMPTY, HIT, MISS
from battle_relay.peer.runner import pick_target
from battle_relay.peer.session import PeerSession


def test_pick_target_only_chooses_unresolved_cells():
    session = PeerSession(lambda msg: None)
    for y in range(BOARD_SIZE):
        for x in range(BOARD_SIZE):
            session.opponent_board[y][x] = MISS
    session.opponent_board[7][2] = HIT
    session.opponent_board[4][6] = EMPTY

    rng = random.Random(7)
    assert {pick_target(session, rng) for _ in range(20)} == {(6, 4)}


def test_pick_target_is_seeded():
    a = pick_target(PeerSession(lambda msg: None), random.Random(3))
    b = pick_target(PeerSession(lambda msg: None), random.Random(3))
    assert a == b
