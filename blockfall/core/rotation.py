"""Rotation with wall kicks, resolved against a board occupancy oracle."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable

from blockfall.core.pieces import get_kick_offsets, get_rotation_data
from blockfall.core.rng import PieceKind


class RotationDirection(str, enum.Enum):
    CW = "cw"
    CCW = "ccw"


@dataclass(frozen=True)
class Position:
    row: int
    col: int


@dataclass(frozen=True)
class PieceState:
    """An active piece: kind, rotation state (0-3) and box top-left."""
    kind: PieceKind
    rotation: int
    position: Position


@dataclass(frozen=True)
class RotationContext:
    """Board view used while testing kicks.

    `is_occupied(row, col)` must report True for cells outside the board.
    """
    width: int
    height: int
    is_occupied: Callable[[int, int], bool]


@dataclass(frozen=True)
class RotationResult:
    success: bool
    piece: PieceState
    kick: Position | None


def _fits(kind: PieceKind, rotation: int, row: int, col: int, context: RotationContext) -> bool:
    cells = get_rotation_data(kind, rotation).cells
    return not any(context.is_occupied(row + r, col + c) for r, c in cells)


def attempt_rotation(
    piece: PieceState,
    direction: RotationDirection,
    context: RotationContext,
) -> RotationResult:
    """Rotate a piece one step, trying each kick offset in order.

    The candidate for a kick is the current position plus the kick plus the
    shift of the pivot inside the bounding box between the two states.

    Args:
        piece: The piece to rotate.
        direction: Clockwise or counter-clockwise.
        context: Occupancy oracle for the board.

    Returns:
        RotationResult. On success `kick` is the net displacement applied; on
        failure the piece is returned unchanged with `kick=None`.
    """
    delta = 1 if RotationDirection(direction) is RotationDirection.CW else 3
    target = (piece.rotation + delta) % 4

    from_pivot = get_rotation_data(piece.kind, piece.rotation).pivot
    to_pivot = get_rotation_data(piece.kind, target).pivot

    for kick_row, kick_col in get_kick_offsets(piece.kind, piece.rotation, target):
        row = int(round(piece.position.row + kick_row + from_pivot[0] - to_pivot[0]))
        col = int(round(piece.position.col + kick_col + from_pivot[1] - to_pivot[1]))
        if _fits(piece.kind, target, row, col, context):
            rotated = PieceState(kind=piece.kind, rotation=target, position=Position(row, col))
            return RotationResult(
                success=True,
                piece=rotated,
                kick=Position(row - piece.position.row, col - piece.position.col),
            )

    return RotationResult(success=False, piece=piece, kick=None)
