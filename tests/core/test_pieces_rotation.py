"""Tests for piece geometry, kick tables and rotation."""

from __future__ import annotations

import pytest

from blockfall.core.pieces import get_kick_offsets, get_piece_cells, get_piece_shape, get_rotation_data
from blockfall.core.rng import PieceKind
from blockfall.core.rotation import (
    PieceState,
    Position,
    RotationContext,
    RotationDirection,
    attempt_rotation,
)

WIDTH = 20
HEIGHT = 40


def _empty_context() -> RotationContext:
    def is_occupied(row: int, col: int) -> bool:
        return row < 0 or row >= HEIGHT or col < 0 or col >= WIDTH

    return RotationContext(width=WIDTH, height=HEIGHT, is_occupied=is_occupied)


@pytest.mark.parametrize("kind", list(PieceKind))
@pytest.mark.parametrize("rotation", range(4))
def test_every_state_has_four_normalized_cells(kind, rotation):
    cells = get_piece_cells(kind, rotation)
    assert len(cells) == 4
    assert min(r for r, _ in cells) == 0
    assert min(c for _, c in cells) == 0
    assert get_piece_shape(kind, rotation).sum() == 4


def test_i_piece_alternates_between_flat_and_upright():
    assert get_piece_shape(PieceKind.I, 0).shape == (1, 4)
    assert get_piece_shape(PieceKind.I, 1).shape == (4, 1)


def test_bad_rotation_index_raises():
    with pytest.raises(ValueError):
        get_rotation_data(PieceKind.T, 4)


def test_missing_transition_falls_back_to_in_place():
    assert get_kick_offsets(PieceKind.T, 0, 2) == ((0, 0),)


def test_t_piece_rotation_shifts_with_pivot():
    piece = PieceState(PieceKind.T, 0, Position(0, 7))
    result = attempt_rotation(piece, RotationDirection.CW, _empty_context())
    assert result.success
    assert result.piece.rotation == 1
    assert result.piece.position == Position(0, 6)
    assert result.kick == Position(0, -1)


def test_i_piece_uses_first_kick():
    piece = PieceState(PieceKind.I, 0, Position(1, 6))
    result = attempt_rotation(piece, RotationDirection.CW, _empty_context())
    assert result.success
    assert result.piece.position == Position(0, 4)
    assert result.kick == Position(-1, -2)


def test_i_piece_falls_through_to_later_kick_at_ceiling():
    piece = PieceState(PieceKind.I, 0, Position(0, 6))
    result = attempt_rotation(piece, RotationDirection.CW, _empty_context())
    assert result.success
    assert result.piece.position == Position(0, 6)
    assert result.kick == Position(0, 0)


@pytest.mark.parametrize("direction", list(RotationDirection))
def test_o_piece_never_moves(direction):
    piece = PieceState(PieceKind.O, 0, Position(5, 5))
    result = attempt_rotation(piece, direction, _empty_context())
    assert result.success
    assert result.piece.position == Position(5, 5)
    assert result.kick == Position(0, 0)


def test_blocked_rotation_leaves_piece_unchanged():
    piece = PieceState(PieceKind.T, 0, Position(10, 8))
    own = {(10 + r, 8 + c) for r, c in get_piece_cells(PieceKind.T, 0)}

    def is_occupied(row: int, col: int) -> bool:
        return (row, col) not in own

    context = RotationContext(width=WIDTH, height=HEIGHT, is_occupied=is_occupied)
    result = attempt_rotation(piece, RotationDirection.CW, context)
    assert not result.success
    assert result.piece == piece
    assert result.kick is None


@pytest.mark.parametrize("kind", list(PieceKind))
@pytest.mark.parametrize("rotation", range(4))
@pytest.mark.parametrize(
    "first,second",
    [
        (RotationDirection.CW, RotationDirection.CCW),
        (RotationDirection.CCW, RotationDirection.CW),
    ],
)
def test_rotation_is_reversible_on_open_board(kind, rotation, first, second):
    context = _empty_context()
    piece = PieceState(kind, rotation, Position(10, 8))
    there = attempt_rotation(piece, first, context)
    back = attempt_rotation(there.piece, second, context)
    assert there.success and back.success
    assert back.piece == piece


def test_four_clockwise_turns_return_home():
    context = _empty_context()
    piece = PieceState(PieceKind.L, 0, Position(12, 9))
    current = piece
    for _ in range(4):
        current = attempt_rotation(current, RotationDirection.CW, context).piece
    assert current.rotation == 0
