"""Tests for shape-versus-board collision checks."""

from __future__ import annotations

import numpy as np

from blockfall.core.board import create_empty_board
from blockfall.core.collision import can_place, check_collision
from blockfall.core.pieces import get_piece_shape
from blockfall.core.rng import PieceKind
from blockfall.core.rotation import Position


def test_fits_on_empty_board():
    board = create_empty_board(40, 20)
    shape = get_piece_shape(PieceKind.I, 0)
    report = check_collision(board, shape, Position(0, 0))
    assert not report.collides
    assert can_place(board, shape, Position(39, 16))


def test_bounding_box_past_right_wall_is_out_of_bounds():
    board = create_empty_board(40, 20)
    shape = get_piece_shape(PieceKind.I, 0)
    report = check_collision(board, shape, Position(0, 17))
    assert report.collides
    assert report.out_of_bounds
    assert not report.overlaps


def test_above_the_top_is_out_of_bounds():
    board = create_empty_board(40, 20)
    shape = get_piece_shape(PieceKind.O, 0)
    assert check_collision(board, shape, Position(-1, 5)).out_of_bounds


def test_below_the_floor_is_out_of_bounds():
    board = create_empty_board(40, 20)
    shape = get_piece_shape(PieceKind.O, 0)
    assert check_collision(board, shape, Position(39, 5)).out_of_bounds


def test_overlap_with_settled_block():
    board = create_empty_board(40, 20)
    board[5, 5] = int(PieceKind.Z)
    shape = get_piece_shape(PieceKind.O, 0)
    report = check_collision(board, shape, Position(4, 4))
    assert report.collides
    assert report.overlaps
    assert not report.out_of_bounds


def test_empty_shape_cells_do_not_overlap():
    board = create_empty_board(4, 4)
    # T spawn box has an empty top-left corner
    board[0, 0] = int(PieceKind.J)
    shape = get_piece_shape(PieceKind.T, 0)
    assert not shape[0, 0]
    assert not check_collision(board, shape, Position(0, 0)).collides


def test_board_is_not_modified():
    board = create_empty_board(10, 10)
    before = board.copy()
    check_collision(board, get_piece_shape(PieceKind.S, 0), Position(3, 3))
    assert np.array_equal(board, before)


def test_board_helpers_are_exported():
    from blockfall import core

    board = core.create_empty_board(4, 4)
    board[3, 1] = int(PieceKind.O)
    assert core.is_occupied(board, 3, 1)
    assert core.kind_at(board, 3, 1) is PieceKind.O
    assert not core.can_place(board, get_piece_shape(PieceKind.O, 0), Position(2, 0))
    assert isinstance(core.check_collision(board, board != 0, Position(0, 0)), core.CollisionReport)
