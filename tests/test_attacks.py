"""Resolver behaviour for normal shots and the three special attacks."""

from __future__ import annotations

import pytest

from seabattle.attacks import (
    SpecialAttack,
    SpecialInventory,
    count_hits,
    resolve_area,
    resolve_line,
    resolve_shot,
    resolve_special,
)
from seabattle.board import Board, Cell, ShotOutcome

HIT, MISS = ShotOutcome.HIT, ShotOutcome.MISS


def _board_with(*cells) -> Board:
    board = Board()
    board.place_cells(cells)
    return board


def test_normal_shot_hit_and_miss() -> None:
    board = _board_with((2, 2))
    assert resolve_shot(board, 2, 2) == [(2, 2, HIT)]
    assert resolve_shot(board, 3, 2) == [(3, 2, MISS)]


def test_normal_shot_on_resolved_cell_reports_nothing() -> None:
    board = _board_with((2, 2))
    resolve_shot(board, 2, 2)
    assert resolve_shot(board, 2, 2) == []
    assert board.cell_state(2, 2) is Cell.HIT


def test_horizontal_line_sweeps_outward_and_stops_at_first_ship() -> None:
    # Ships at x=2 and x=7 on row 5; origin x=4 reaches x=2 first (distance 2).
    board = _board_with((2, 5), (7, 5))
    resolved = resolve_line(board, 4, 5, horizontal=True)
    assert resolved == [(4, 5, MISS), (3, 5, MISS), (5, 5, MISS), (2, 5, HIT)]
    assert board.cell_state(7, 5) is Cell.SHIP
    assert board.cell_state(6, 5) is Cell.EMPTY


def test_vertical_line_hits_origin_ship_only() -> None:
    board = _board_with((3, 0), (3, 1), (3, 2), (3, 6))
    resolved = resolve_line(board, 3, 1, horizontal=False)
    assert resolved == [(3, 1, HIT)]
    assert count_hits(resolved) == 1


def test_line_without_ships_misses_whole_line() -> None:
    board = Board()
    resolved = resolve_line(board, 0, 9, horizontal=True)
    assert [x for x, _, _ in resolved] == list(range(10))
    assert count_hits(resolved) == 0
    assert all(board.cell_state(x, 9) is Cell.MISS for x in range(10))


def test_line_skips_resolved_cells() -> None:
    board = _board_with((5, 0), (6, 0))
    resolve_shot(board, 5, 0)  # already Hit, must not stop the sweep
    resolve_shot(board, 4, 0)
    resolved = resolve_line(board, 5, 0, horizontal=True)
    assert resolved == [(6, 0, HIT)]


@pytest.mark.parametrize("origin", [0, 3, 5, 9])
def test_line_marks_at_most_one_hit_across_many_ships(origin: int) -> None:
    board = _board_with(*[(x, 4) for x in range(0, 10, 2)])
    resolved = resolve_line(board, origin, 4, horizontal=True)
    assert count_hits(resolved) == 1
    assert board.ship_cell_count() == 4


def test_area_resolves_full_block() -> None:
    board = _board_with((4, 4), (5, 5), (8, 8))
    resolved = resolve_area(board, 4, 4)
    assert len(resolved) == 9
    assert count_hits(resolved) == 2
    assert {(x, y) for x, y, _ in resolved} == {(x, y) for x in (3, 4, 5) for y in (3, 4, 5)}
    assert board.cell_state(8, 8) is Cell.SHIP


def test_area_clipped_at_corner() -> None:
    board = Board()
    resolved = resolve_area(board, 0, 0)
    assert {(x, y) for x, y, _ in resolved} == {(0, 0), (0, 1), (1, 0), (1, 1)}


def test_area_skips_resolved_cells() -> None:
    board = _board_with((1, 1))
    resolve_shot(board, 1, 1)
    resolved = resolve_area(board, 1, 1)
    assert len(resolved) == 8
    assert count_hits(resolved) == 0


@pytest.mark.parametrize("kind", list(SpecialAttack))
def test_special_usable_once(kind: SpecialAttack) -> None:
    board = _board_with((5, 5))
    inventory = SpecialInventory()
    first = resolve_special(board, kind, 5, 5, inventory)
    assert first
    assert not inventory.has(kind)
    before = board.rows()
    assert resolve_special(board, kind, 0, 0, inventory) == []
    assert board.rows() == before


def test_special_consumed_even_on_miss() -> None:
    board = Board()
    inventory = SpecialInventory()
    resolved = resolve_special(board, SpecialAttack.AREA_3X3, 5, 5, inventory)
    assert count_hits(resolved) == 0
    assert inventory.remaining() == [SpecialAttack.LINE_HORIZONTAL, SpecialAttack.LINE_VERTICAL]


def test_inventories_are_independent() -> None:
    board = Board()
    inventory = SpecialInventory()
    resolve_special(board, SpecialAttack.LINE_VERTICAL, 0, 0, inventory)
    assert inventory.has(SpecialAttack.LINE_HORIZONTAL)
    assert inventory.has(SpecialAttack.AREA_3X3)
    assert SpecialInventory().has(SpecialAttack.LINE_VERTICAL)
