# battle_relay/peer/fleet.py
from __future__ import annotations

import random
import secrets
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

BOARD_SIZE = 10

EMPTY = "empty"
SHIP = "ship"
HIT = "hit"
MISS = "miss"


@dataclass(frozen=True)
class ShipDef:
    id: str
    name: str
    size: int


SHIPS: List[ShipDef] = [
    ShipDef("carrier", "Carrier", 5),
    ShipDef("battleship", "Battleship", 4),
    ShipDef("cruiser", "Cruiser", 3),
    ShipDef("submarine", "Submarine", 3),
    ShipDef("destroyer", "Destroyer", 2),
]
SHIPS_BY_ID: Dict[str, ShipDef] = {s.id: s for s in SHIPS}

# 5+4+3+3+2, fixed by the standard fleet
TOTAL_SHIP_CELLS = 17


@dataclass(frozen=True)
class Placement:
    ship_id: str
    x: int
    y: int
    horizontal: bool


def in_bounds(x: int, y: int) -> bool:
    return 0 <= x < BOARD_SIZE and 0 <= y < BOARD_SIZE


def ship_cells(size: int, x: int, y: int, horizontal: bool) -> List[Tuple[int, int]]:
    return [(x + i, y) if horizontal else (x, y + i) for i in range(size)]


def make_empty_board() -> List[List[str]]:
    return [[EMPTY for _ in range(BOARD_SIZE)] for _ in range(BOARD_SIZE)]


class Board:
    """
    A peer's own 10x10 grid: ship cells plus the marks of shots received.
    Indexed board[y][x].
    """

    def __init__(self) -> None:
        self.cells = make_empty_board()
        self.placements: Dict[str, Placement] = {}

    def can_place(self, ship: ShipDef, x: int, y: int, horizontal: bool) -> bool:
        for cx, cy in ship_cells(ship.size, x, y, horizontal):
            if not in_bounds(cx, cy) or self.cells[cy][cx] != EMPTY:
                return False
        return True

    def place_ship(self, ship_id: str, x: int, y: int, horizontal: bool = True) -> Placement:
        ship = SHIPS_BY_ID.get(ship_id)
        if ship is None:
            raise ValueError(f"unknown ship: {ship_id}")
        if ship_id in self.placements:
            raise ValueError(f"{ship.name} is already placed")
        if not self.can_place(ship, x, y, horizontal):
            raise ValueError(f"{ship.name} does not fit at ({x}, {y})")

        for cx, cy in ship_cells(ship.size, x, y, horizontal):
            self.cells[cy][cx] = SHIP
        placement = Placement(ship_id, x, y, horizontal)
        self.placements[ship_id] = placement
        return placement

    def remove_ship(self, ship_id: str) -> None:
        placement = self.placements.pop(ship_id, None)
        if placement is None:
            return
        ship = SHIPS_BY_ID[ship_id]
        for cx, cy in ship_cells(ship.size, placement.x, placement.y, placement.horizontal):
            self.cells[cy][cx] = EMPTY

    @property
    def complete(self) -> bool:
        return len(self.placements) == len(SHIPS)

    def fleet_grid(self) -> List[int]:
        """Flat row-major 100-cell 0/1 grid, the proof engine's private input."""
        return [
            1 if self.cells[y][x] in (SHIP, HIT) else 0
            for y in range(BOARD_SIZE)
            for x in range(BOARD_SIZE)
        ]

    def receive_shot(self, x: int, y: int) -> Tuple[bool, bool]:
        """
        Mark an incoming shot. Returns (is_hit, newly_hit).
        A repeat shot on a hit cell is still a hit but scores nothing.
        """
        if not in_bounds(x, y):
            raise ValueError(f"shot out of bounds: ({x}, {y})")
        cell = self.cells[y][x]
        if cell == SHIP:
            self.cells[y][x] = HIT
            return True, True
        if cell == HIT:
            return True, False
        self.cells[y][x] = MISS
        return False, False


def random_fleet(rng: Optional[random.Random] = None) -> Board:
    rng = rng or random.Random()
    board = Board()
    for ship in SHIPS:
        while True:
            horizontal = rng.random() < 0.5
            x = rng.randrange(BOARD_SIZE)
            y = rng.randrange(BOARD_SIZE)
            if board.can_place(ship, x, y, horizontal):
                board.place_ship(ship.id, x, y, horizontal)
                break
    return board


def generate_salt() -> str:
    """Random 256-bit nonce as hex."""
    return secrets.token_hex(32)
