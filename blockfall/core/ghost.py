"""Ghost projection: where the active piece would land if dropped now."""

from __future__ import annotations

import numpy as np

from blockfall.core.collision import check_collision
from blockfall.core.pieces import get_piece_shape
from blockfall.core.rotation import PieceState, Position


def compute_ghost_position(board: np.ndarray, piece: PieceState | None) -> Position | None:
    """Return the lowest reachable position straight below the piece.

    Returns None when there is no piece or when its current placement already
    collides (for example a blocked spawn).
    """
    if piece is None:
        return None

    shape = get_piece_shape(piece.kind, piece.rotation)
    if check_collision(board, shape, piece.position).collides:
        return None

    row = piece.position.row
    col = piece.position.col
    while not check_collision(board, shape, Position(row + 1, col)).collides:
        row += 1
    return Position(row, col)
