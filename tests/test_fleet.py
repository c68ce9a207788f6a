import random

import pytest

from battle_relay.peer.fleet import (
    BOARD_SIZE,
    SHIPS,
    TOTAL_SHIP_CELLS,
    Board,
    generate_salt,
    random_fleet,
)


def test_standard_fleet_totals_seventeen_cells():
    assert sum(s.size for s in SHIPS) == TOTAL_SHIP_CELLS == 17


def test_place_and_remove_ship():
    board = Board()
    board.place_ship("carrier", 0, 0, horizontal=True)
    assert sum(board.fleet_grid()) == 5
    assert board.fleet_grid()[:5] == [1, 1, 1, 1, 1]

    board.remove_ship("carrier")
    assert sum(board.fleet_grid()) == 0
    assert board.placements == {}


def test_place_ship_rejects_overlap_and_out_of_bounds():
    board = Board()
    board.place_ship("carrier", 0, 0, horizontal=False)
    with pytest.raises(ValueError):
        board.place_ship("battleship", 0, 2, horizontal=True)
    with pytest.raises(ValueError):
        board.place_ship("destroyer", 9, 0, horizontal=True)
    with pytest.raises(ValueError):
        board.place_ship("carrier", 5, 5)
    with pytest.raises(ValueError):
        board.place_ship("rowboat", 5, 5)


def test_random_fleet_is_complete():
    board = random_fleet(random.Random(7))
    assert board.complete
    grid = board.fleet_grid()
    assert len(grid) == BOARD_SIZE * BOARD_SIZE
    assert sum(grid) == TOTAL_SHIP_CELLS


def test_receive_shot_counts_each_cell_once():
    board = Board()
    board.place_ship("destroyer", 2, 3, horizontal=True)
    assert board.receive_shot(2, 3) == (True, True)
    assert board.receive_shot(2, 3) == (True, False)
    assert board.receive_shot(0, 0) == (False, False)
    # hit cells stay part of the committed grid
    assert sum(board.fleet_grid()) == 2


def test_generate_salt():
    salt = generate_salt()
    assert len(salt) == 64
    int(salt, 16)
    assert generate_salt() != salt
