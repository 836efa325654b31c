"""
Collision checks for a shape placed on the board.

Two conditions are reported separately and OR'd into `collides`:
  - out_of_bounds: the shape's bounding box leaves the board. The box is the
    authority, even when every occupied cell would still land inside.
  - overlaps: an occupied shape cell lands on an occupied board cell.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from blockfall.core.rotation import Position


@dataclass(frozen=True)
class CollisionReport:
    collides: bool
    out_of_bounds: bool
    overlaps: bool


def check_collision(board: np.ndarray, shape: np.ndarray, position: Position) -> CollisionReport:
    """Test a shape placement against board bounds and occupied cells.

    Args:
        board: Board grid (height x width), 0 = empty.
        shape: Boolean mask of the piece's bounding box.
        position: Top-left of the bounding box on the board.

    Returns:
        CollisionReport with both conditions and their union.
    """
    board_height, board_width = board.shape
    shape_height, shape_width = shape.shape
    base_row, base_col = position.row, position.col

    out_of_bounds = (
        base_row < 0
        or base_col < 0
        or base_row + shape_height > board_height
        or base_col + shape_width > board_width
    )

    overlaps = False
    for r, c in zip(*np.nonzero(shape)):
        row = base_row + int(r)
        col = base_col + int(c)
        if not (0 <= row < board_height and 0 <= col < board_width):
            out_of_bounds = True
            continue
        if board[row, col] != 0:
            overlaps = True

    return CollisionReport(
        collides=out_of_bounds or overlaps,
        out_of_bounds=out_of_bounds,
        overlaps=overlaps,
    )


def can_place(board: np.ndarray, shape: np.ndarray, position: Position) -> bool:
    """Return True if the shape fits at `position`."""
    return not check_collision(board, shape, position).collides
