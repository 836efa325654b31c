"""Tests for the ghost projection."""

from __future__ import annotations

from blockfall.core.board import create_empty_board
from blockfall.core.ghost import compute_ghost_position
from blockfall.core.rng import PieceKind
from blockfall.core.rotation import PieceState, Position


def test_ghost_reaches_the_floor():
    board = create_empty_board(40, 20)
    piece = PieceState(PieceKind.O, 0, Position(0, 0))
    assert compute_ghost_position(board, piece) == Position(38, 0)


def test_ghost_stops_on_settled_blocks():
    board = create_empty_board(40, 20)
    board[20, 0] = int(PieceKind.L)
    piece = PieceState(PieceKind.O, 0, Position(0, 0))
    assert compute_ghost_position(board, piece) == Position(18, 0)


def test_ghost_of_grounded_piece_is_its_position():
    board = create_empty_board(10, 10)
    piece = PieceState(PieceKind.I, 0, Position(9, 3))
    assert compute_ghost_position(board, piece) == Position(9, 3)


def test_no_ghost_without_piece_or_when_colliding():
    board = create_empty_board(10, 10)
    assert compute_ghost_position(board, None) is None
    board[0, 1] = int(PieceKind.T)
    assert compute_ghost_position(board, PieceState(PieceKind.O, 0, Position(0, 0))) is None


def test_projection_is_idempotent():
    board = create_empty_board(40, 20)
    board[30:40, 5] = int(PieceKind.S)
    piece = PieceState(PieceKind.T, 0, Position(2, 4))
    first = compute_ghost_position(board, piece)
    second = compute_ghost_position(board, piece)
    assert first == second == Position(28, 4)
    assert compute_ghost_position(board, PieceState(PieceKind.T, 0, first)) == first
