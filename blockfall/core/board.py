"""
Board model: empty-board construction, locking and row compaction.

The board is a 2D numpy array (height x width) of int8 values:
  - 0 = empty cell
  - 1-7 = PieceKind of the block occupying the cell

Row 0 is the top. Boards are never edited in place here: lock_piece() stamps
into a copy and returns a new array, so callers can hand old boards out as
snapshots without aliasing.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from blockfall.core.rng import PieceKind
from blockfall.core.rotation import Position

DEFAULT_BOARD_ROWS = 40
DEFAULT_BOARD_COLS = 20

EMPTY = 0


@dataclass(frozen=True)
class LockResult:
    """Board after a lock, plus the indices of the rows that were cleared."""
    board: np.ndarray
    cleared_lines: list[int]


def create_empty_board(rows: int = DEFAULT_BOARD_ROWS, cols: int = DEFAULT_BOARD_COLS) -> np.ndarray:
    """Return an all-empty board.

    Raises:
        ValueError: If either dimension is not positive.
    """
    if rows <= 0 or cols <= 0:
        raise ValueError(f"Board dimensions must be positive, got {rows}x{cols}")
    return np.zeros((rows, cols), dtype=np.int8)


def is_occupied(board: np.ndarray, row: int, col: int) -> bool:
    return bool(board[row, col] != EMPTY)


def kind_at(board: np.ndarray, row: int, col: int) -> PieceKind | None:
    """Return the kind occupying a cell, or None when it is empty."""
    value = int(board[row, col])
    return PieceKind(value) if value != EMPTY else None


def lock_piece(board: np.ndarray, shape: np.ndarray, position: Position, kind: PieceKind) -> LockResult:
    """Stamp a piece into a copy of the board and compact any full rows.

    Shape cells that fall outside the board are skipped. After stamping, rows
    that are completely filled are cleared. Remaining rows that still hold at
    least one block keep their order and sink to the bottom; the top is padded
    with empty rows so the height is unchanged.

    Args:
        board: Current board (not modified).
        shape: Boolean mask of the piece's bounding box.
        position: Top-left of the bounding box.
        kind: Kind written into the stamped cells.

    Returns:
        LockResult with the new board and the cleared row indices, top to
        bottom.
    """
    height, width = board.shape
    grid = board.copy()

    for r, c in zip(*np.nonzero(shape)):
        row = position.row + int(r)
        col = position.col + int(c)
        if 0 <= row < height and 0 <= col < width:
            grid[row, col] = int(kind)

    filled = grid != EMPTY
    cleared_lines = [int(r) for r in np.flatnonzero(filled.all(axis=1))]
    if not cleared_lines:
        return LockResult(board=grid, cleared_lines=cleared_lines)

    keep = np.ones(height, dtype=bool)
    keep[cleared_lines] = False
    keep &= filled.any(axis=1)
    compact_rows = grid[keep]

    if len(compact_rows) == 0:
        return LockResult(board=create_empty_board(height, width), cleared_lines=cleared_lines)

    if len(compact_rows) >= len(cleared_lines):
        padding = np.zeros((height - len(compact_rows), width), dtype=grid.dtype)
        return LockResult(board=np.vstack([padding, compact_rows]), cleared_lines=cleared_lines)

    # Fewer surviving rows than cleared ones: blank the cleared rows in place
    grid[cleared_lines] = EMPTY
    return LockResult(board=grid, cleared_lines=cleared_lines)
