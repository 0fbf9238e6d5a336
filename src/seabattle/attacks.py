"""Attack resolution against a board.

Every resolver returns the ordered list of ``(x, y, outcome)`` tuples it
actually resolved. Cells that were already Hit or Miss are skipped and
not reported, so replaying an attack never double-counts.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from .board import Board, Cell, ShotOutcome, in_bounds

Resolved = Tuple[int, int, ShotOutcome]


class SpecialAttack(str, enum.Enum):
    """Single-use attack patterns; values are the wire names."""

    LINE_HORIZONTAL = "HorizontalLine"
    LINE_VERTICAL = "VerticalLine"
    AREA_3X3 = "Area3x3"


@dataclass
class SpecialInventory:
    """Availability of each special attack for one side of the match."""

    available: Dict[SpecialAttack, bool] = field(
        default_factory=lambda: {kind: True for kind in SpecialAttack}
    )

    def has(self, kind: SpecialAttack) -> bool:
        return self.available.get(kind, False)

    def consume(self, kind: SpecialAttack) -> bool:
        """Spend *kind*; returns False if it was already spent."""
        if not self.has(kind):
            return False
        self.available[kind] = False
        return True

    def remaining(self) -> List[SpecialAttack]:
        return [kind for kind in SpecialAttack if self.available[kind]]


def _resolve_cell(board: Board, x: int, y: int) -> Optional[Resolved]:
    cell = board.cell_state(x, y)
    if cell.resolved:
        return None
    outcome = ShotOutcome.HIT if cell is Cell.SHIP else ShotOutcome.MISS
    board.mark_shot(x, y, outcome)
    return x, y, outcome


def resolve_shot(board: Board, x: int, y: int) -> List[Resolved]:
    """Normal shot: Hit if the cell holds a ship, else Miss."""
    hit = _resolve_cell(board, x, y)
    return [hit] if hit is not None else []


def _sweep_offsets(origin: int, size: int) -> Iterator[int]:
    """Yield line positions outward from *origin*: o, o-1, o+1, o-2, o+2, …"""
    yield origin
    for distance in range(1, size):
        for pos in (origin - distance, origin + distance):
            if 0 <= pos < size:
                yield pos


def resolve_line(board: Board, x: int, y: int, horizontal: bool) -> List[Resolved]:
    """Sweep outward along the row (or column) through (x, y).

    Empty cells become Miss; the first Ship cell found becomes Hit and the
    sweep stops there, so at most one Hit is produced per activation.
    """
    resolved: List[Resolved] = []
    origin = x if horizontal else y
    for pos in _sweep_offsets(origin, board.size):
        cx, cy = (pos, y) if horizontal else (x, pos)
        hit = _resolve_cell(board, cx, cy)
        if hit is None:
            continue
        resolved.append(hit)
        if hit[2] is ShotOutcome.HIT:
            break
    return resolved


def resolve_area(board: Board, x: int, y: int) -> List[Resolved]:
    """Resolve every unresolved cell of the 3x3 block centred on (x, y), clipped to the board."""
    resolved: List[Resolved] = []
    for cx in range(x - 1, x + 2):
        for cy in range(y - 1, y + 2):
            if not in_bounds(cx, cy, board.size):
                continue
            hit = _resolve_cell(board, cx, cy)
            if hit is not None:
                resolved.append(hit)
    return resolved


def resolve_special(
    board: Board,
    kind: SpecialAttack,
    x: int,
    y: int,
    inventory: SpecialInventory,
) -> List[Resolved]:
    """Run special attack *kind* from (x, y) if *inventory* still holds it.

    A spent slot yields an empty result with no board change; otherwise the
    slot is consumed whatever the outcome.
    """
    if not inventory.consume(kind):
        return []
    if kind is SpecialAttack.LINE_HORIZONTAL:
        return resolve_line(board, x, y, horizontal=True)
    if kind is SpecialAttack.LINE_VERTICAL:
        return resolve_line(board, x, y, horizontal=False)
    return resolve_area(board, x, y)


def count_hits(resolved: List[Resolved]) -> int:
    return sum(1 for _, _, outcome in resolved if outcome is ShotOutcome.HIT)
