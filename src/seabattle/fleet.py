"""Ship roster and placement rules.

Ships are placed one at a time in a fixed order (the four-decker first,
then the two three-deckers). The pending orientation is a pure UI toggle
and only matters when the next ship is actually placed.
"""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

from . import config as _cfg
from .board import Board, Cell, in_bounds


class Orientation(enum.Enum):
    HORIZONTAL = "H"
    VERTICAL = "V"

    def flipped(self) -> "Orientation":
        return Orientation.VERTICAL if self is Orientation.HORIZONTAL else Orientation.HORIZONTAL


@dataclass
class Ship:
    name: str
    size: int
    x: int = 0
    y: int = 0
    orientation: Orientation = Orientation.VERTICAL
    placed: bool = False

    def cells(self) -> List[Tuple[int, int]]:
        return ship_cells(self.size, self.x, self.y, self.orientation)


@dataclass(frozen=True)
class PlacementRules:
    """Placement constraints.

    no_touching forbids a ship in the 8-neighbourhood of another ship.
    It is off by default; both peers are expected to run with the same value.
    """

    no_touching: bool = False

    @classmethod
    def from_config(cls) -> "PlacementRules":
        return cls(no_touching=_cfg.NO_TOUCH)


def ship_cells(size: int, x: int, y: int, orientation: Orientation) -> List[Tuple[int, int]]:
    """Cells covered by a ship of *size* whose origin is (*x*, *y*)."""
    if orientation is Orientation.HORIZONTAL:
        return [(x + i, y) for i in range(size)]
    return [(x, y + i) for i in range(size)]


def can_place(
    board: Board,
    size: int,
    x: int,
    y: int,
    orientation: Orientation,
    rules: PlacementRules = PlacementRules(),
) -> bool:
    """Return True if a ship of *size* fits at (*x*, *y*) under *rules*."""
    cells = ship_cells(size, x, y, orientation)
    for cx, cy in cells:
        if not in_bounds(cx, cy, board.size):
            return False
        if board.cell_state(cx, cy) is not Cell.EMPTY:
            return False
    if rules.no_touching:
        for cx, cy in cells:
            for dx in (-1, 0, 1):
                for dy in (-1, 0, 1):
                    nx, ny = cx + dx, cy + dy
                    if in_bounds(nx, ny, board.size) and board.cell_state(nx, ny) is Cell.SHIP:
                        return False
    return True


class Fleet:
    """The three ships of one peer plus the placement cursor."""

    def __init__(self, rules: Optional[PlacementRules] = None):
        self.rules = rules if rules is not None else PlacementRules()
        self.ships: List[Ship] = [Ship(name, size) for name, size in _cfg.SHIPS]
        self.orientation = Orientation.VERTICAL
        self._index = 0

    @property
    def current(self) -> Optional[Ship]:
        """Next ship to place, or None once the fleet is complete."""
        return self.ships[self._index] if self._index < len(self.ships) else None

    @property
    def total_cells(self) -> int:
        return sum(ship.size for ship in self.ships)

    def rotate(self) -> Orientation:
        self.orientation = self.orientation.flipped()
        return self.orientation

    def can_place(self, board: Board, x: int, y: int, orientation: Optional[Orientation] = None) -> bool:
        ship = self.current
        if ship is None:
            return False
        return can_place(board, ship.size, x, y, orientation or self.orientation, self.rules)

    def place(self, board: Board, x: int, y: int) -> bool:
        """Place the current ship with the pending orientation; fails closed."""
        ship = self.current
        if ship is None or not self.can_place(board, x, y):
            return False
        ship.x, ship.y = x, y
        ship.orientation = self.orientation
        board.place_cells(ship.cells())
        ship.placed = True
        self._index += 1
        return True

    def all_placed(self) -> bool:
        return all(ship.placed for ship in self.ships)

    def place_remaining_randomly(self, board: Board, rng: Optional[random.Random] = None) -> None:
        """Randomly position every unplaced ship on *board* without collisions."""
        rng = rng or random.Random()
        while self.current is not None:
            ship = self.current
            candidates = [
                (x, y, orientation)
                for orientation in Orientation
                for x in range(board.size)
                for y in range(board.size)
                if can_place(board, ship.size, x, y, orientation, self.rules)
            ]
            if not candidates:
                raise RuntimeError(f"no legal position left for {ship.name}")
            x, y, orientation = rng.choice(candidates)
            self.orientation = orientation
            self.place(board, x, y)
