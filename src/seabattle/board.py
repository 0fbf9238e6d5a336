"""
board.py

Core grid data structure for SeaBattle:
 - Cell enum for the four states a square can be in
 - Board class holding a 10x10 grid addressed by (x, y)
 - ShotOutcome / MarkResult enums returned by board mutations

Each peer keeps two Board instances:
  - its *own* board, the ground truth of where its ships are, mutated by
    incoming enemy shots;
  - a *tracking* board, built solely from the results of its own shots.
    It never contains Ship cells.
"""

from __future__ import annotations

import enum
from typing import Iterable, List, Tuple

from .config import BOARD_SIZE


class Cell(enum.Enum):
    """State of a single square. HIT and MISS are terminal."""

    EMPTY = "."
    SHIP = "S"
    HIT = "X"
    MISS = "o"

    @property
    def resolved(self) -> bool:
        return self in (Cell.HIT, Cell.MISS)


class ShotOutcome(str, enum.Enum):
    """Outcome of a shot on one cell, spelled as on the wire."""

    HIT = "HIT"
    MISS = "MISS"

    @property
    def cell(self) -> Cell:
        return Cell.HIT if self is ShotOutcome.HIT else Cell.MISS


class MarkResult(enum.Enum):
    MARKED = "marked"
    ALREADY_RESOLVED = "already_resolved"


def in_bounds(x: int, y: int, size: int = BOARD_SIZE) -> bool:
    """Return True if (*x*, *y*) lies on a *size*×*size* board."""
    return 0 <= x < size and 0 <= y < size


class Board:
    """
    A fixed-size grid of Cell values.

    Coordinates are (x, y): x is the column, y is the row, both zero-based.
    Out-of-range coordinates raise IndexError; callers validate with
    in_bounds() first.
    """

    def __init__(self, size: int = BOARD_SIZE):
        self.size = size
        self._grid: List[List[Cell]] = [[Cell.EMPTY for _ in range(size)] for _ in range(size)]

    def _check(self, x: int, y: int) -> None:
        if not in_bounds(x, y, self.size):
            raise IndexError(f"cell ({x}, {y}) outside {self.size}x{self.size} board")

    def cell_state(self, x: int, y: int) -> Cell:
        self._check(x, y)
        return self._grid[y][x]

    def place_cells(self, cells: Iterable[Tuple[int, int]]) -> None:
        """Mutating helper that writes Ship cells. Legality is the caller's job."""
        for x, y in cells:
            self._check(x, y)
            self._grid[y][x] = Cell.SHIP

    def mark_shot(self, x: int, y: int, outcome: ShotOutcome) -> MarkResult:
        """Set (*x*, *y*) to Hit or Miss unless it is already resolved.

        Idempotent: a duplicate or late message aimed at a resolved cell
        leaves the board untouched.
        """
        self._check(x, y)
        if self._grid[y][x].resolved:
            return MarkResult.ALREADY_RESOLVED
        self._grid[y][x] = outcome.cell
        return MarkResult.MARKED

    def ship_cell_count(self) -> int:
        """Cells still in Ship state; zero on an own board means the fleet is destroyed."""
        return sum(row.count(Cell.SHIP) for row in self._grid)

    def hit_count(self) -> int:
        return sum(row.count(Cell.HIT) for row in self._grid)

    def cells(self) -> Iterable[Tuple[int, int, Cell]]:
        for y, row in enumerate(self._grid):
            for x, cell in enumerate(row):
                yield x, y, cell

    def rows(self, *, reveal: bool = True) -> List[str]:
        """Board -> ["o . X …", …] helper; ships hidden as water unless *reveal*."""
        out: list[str] = []
        for row in self._grid:
            symbols = [
                Cell.EMPTY.value if (cell is Cell.SHIP and not reveal) else cell.value for cell in row
            ]
            out.append(" ".join(symbols))
        return out

    def __repr__(self) -> str:
        return f"Board(size={self.size}, ships={self.ship_cell_count()}, hits={self.hit_count()})"
