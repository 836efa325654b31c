"""
Tetromino geometry and wall-kick tables.

Each kind is defined once by its spawn cells and a pivot. The four rotation
states are generated by turning the raw cells 90 degrees around that pivot and
normalizing every result to its own bounding box, so cell (0, 0) of a shape is
always the top-left corner of the box.

Coordinate convention:
  - Positions and cells are (row, col); row 0 is the top, rows grow downward.
  - A piece position is the top-left of its normalized bounding box, NOT the
    pivot. Rotations compensate for the pivot moving inside the box via the
    per-state pivot offsets below.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from blockfall.core.rng import PieceKind

# Snap float noise from pivot arithmetic back onto the grid
_TOLERANCE = 1e-6

NUM_ROTATIONS = 4


@dataclass(frozen=True)
class RotationData:
    """Cells and pivot offset of a single rotation state."""
    cells: tuple[tuple[int, int], ...]
    pivot: tuple[float, float]


# =============================================================================
# Piece Definitions (spawn cells + rotation pivot)
# =============================================================================

PIECE_DEFINITIONS: dict[PieceKind, dict] = {
    PieceKind.I: {
        "cells": [(1, 0), (1, 1), (1, 2), (1, 3)],
        "pivot": (1.0, 1.5),
    },
    PieceKind.O: {
        "cells": [(0, 1), (0, 2), (1, 1), (1, 2)],
        "pivot": (1.5, 1.5),
    },
    PieceKind.T: {
        "cells": [(0, 1), (1, 0), (1, 1), (1, 2)],
        "pivot": (1.0, 1.0),
    },
    PieceKind.S: {
        "cells": [(0, 1), (0, 2), (1, 0), (1, 1)],
        "pivot": (1.0, 1.0),
    },
    PieceKind.Z: {
        "cells": [(0, 0), (0, 1), (1, 1), (1, 2)],
        "pivot": (1.0, 1.0),
    },
    PieceKind.J: {
        "cells": [(0, 0), (1, 0), (1, 1), (1, 2)],
        "pivot": (1.0, 1.0),
    },
    PieceKind.L: {
        "cells": [(0, 2), (1, 0), (1, 1), (1, 2)],
        "pivot": (1.0, 1.0),
    },
}

# Pivot offset inside the normalized box for rotation states 0-3. These follow
# the 4x4 bounding-box convention rather than the geometric centroid.
_JLSTZ_PIVOTS: tuple[tuple[float, float], ...] = ((1, 1), (1, 2), (2, 1), (1, 0))

PIVOT_OFFSETS: dict[PieceKind, tuple[tuple[float, float], ...]] = {
    PieceKind.I: ((1, 2), (1, 2), (1, 1), (1, 1)),
    PieceKind.O: ((1.5, 1.5),) * NUM_ROTATIONS,
    PieceKind.T: _JLSTZ_PIVOTS,
    PieceKind.S: _JLSTZ_PIVOTS,
    PieceKind.Z: _JLSTZ_PIVOTS,
    PieceKind.J: _JLSTZ_PIVOTS,
    PieceKind.L: _JLSTZ_PIVOTS,
}


def _snap(value: float) -> float:
    rounded = round(value * 1_000_000) / 1_000_000
    return 0.0 if abs(rounded) < _TOLERANCE else rounded


def _rotate_around(cell: tuple[float, float], pivot: tuple[float, float]) -> tuple[float, float]:
    d_row = cell[0] - pivot[0]
    d_col = cell[1] - pivot[1]
    return _snap(pivot[0] - d_col), _snap(pivot[1] + d_row)


def _build_rotations(kind: PieceKind) -> tuple[RotationData, ...]:
    definition = PIECE_DEFINITIONS[kind]
    raw = [(float(r), float(c)) for r, c in definition["cells"]]
    pivot = definition["pivot"]

    rotations = []
    for rotation in range(NUM_ROTATIONS):
        min_row = min(r for r, _ in raw)
        min_col = min(c for _, c in raw)
        cells = tuple(sorted(
            (int(round(_snap(r - min_row))), int(round(_snap(c - min_col))))
            for r, c in raw
        ))
        rotations.append(RotationData(cells=cells, pivot=PIVOT_OFFSETS[kind][rotation]))
        raw = [_rotate_around(cell, pivot) for cell in raw]
    return tuple(rotations)


ROTATIONS: dict[PieceKind, tuple[RotationData, ...]] = {
    kind: _build_rotations(kind) for kind in PieceKind
}


def get_rotation_data(kind: PieceKind, rotation: int) -> RotationData:
    """Return the cells and pivot of `kind` at `rotation`.

    Raises:
        ValueError: If rotation is not in 0-3.
    """
    if rotation not in range(NUM_ROTATIONS):
        raise ValueError(f"Rotation must be 0-3, got {rotation!r}")
    return ROTATIONS[kind][rotation]


def get_piece_cells(kind: PieceKind, rotation: int) -> list[tuple[int, int]]:
    """Return the occupied (row, col) cells relative to the box's top-left."""
    return list(get_rotation_data(kind, rotation).cells)


def get_piece_shape(kind: PieceKind, rotation: int) -> np.ndarray:
    """Return the piece as a boolean mask sized to its bounding box.

    Args:
        kind: Piece kind.
        rotation: Rotation state index (0-3).

    Returns:
        A (height, width) numpy bool array; True marks an occupied cell.
    """
    cells = get_rotation_data(kind, rotation).cells
    height = max(r for r, _ in cells) + 1
    width = max(c for _, c in cells) + 1
    shape = np.zeros((height, width), dtype=bool)
    for r, c in cells:
        shape[r, c] = True
    return shape


# =============================================================================
# Wall-Kick Offset Data
# =============================================================================
#
# Offsets are written as guideline (x, y) pairs: x is columns (positive =
# right), y is rows with positive = UP. They are converted to (row, col) board
# deltas with row = -y. Tests are tried in order and the first free
# placement wins; if none fits, the rotation fails.
#
# Key format: KICKS[from_rotation][to_rotation].
#
# Far-travel tests are not included:
# a rotation that would need a multi-row float is rejected.
# =============================================================================

# ---------------------------------------------------------------------------
# J, L, S, T, Z share one table: stay, horizontal nudge, combined nudge
# ---------------------------------------------------------------------------

RAW_JLSTZ_KICKS: dict[int, dict[int, list[tuple[int, int]]]] = {
    0: {
        1: [(0, 0), (-1, 0), (-1, 1)],
        3: [(0, 0), (1, 0), (1, 1)],
    },
    1: {
        2: [(0, 0), (1, 0), (1, -1)],
        0: [(0, 0), (-1, 0), (-1, -1)],
    },
    2: {
        3: [(0, 0), (1, 0), (1, 1)],
        1: [(0, 0), (-1, 0), (-1, 1)],
    },
    3: {
        0: [(0, 0), (-1, 0), (-1, -1)],
        2: [(0, 0), (1, 0), (1, -1)],
    },
}

# ---------------------------------------------------------------------------
# I piece: five tests, up to two cells. The first test of a -> b is the exact
# inverse of the first test of b -> a, so every cw/ccw pair from any state
# returns home on an open board. Relative to the common published I table,
# 3 -> 0, 3 -> 2 and 2 -> 1 lead with that inverse; 2 -> 1 keeps its usual
# first test as its last one.
# ---------------------------------------------------------------------------

RAW_I_KICKS: dict[int, dict[int, list[tuple[int, int]]]] = {
    0: {
        1: [(-2, 1), (0, 0), (-2, 0), (1, 0), (1, -2)],
        3: [(2, 1), (0, 0), (2, 0), (-1, 0), (-1, -2)],
    },
    1: {
        2: [(-1, -2), (0, 0), (-1, 0), (2, 0), (2, 1)],
        0: [(2, -1), (0, 0), (2, 0), (-1, 0), (-1, 2)],
    },
    2: {
        3: [(1, 2), (0, 0), (1, 0), (-2, 0), (-2, -1)],
        1: [(1, 2), (0, 0), (-2, 0), (1, 0), (-2, -1)],
    },
    3: {
        0: [(-2, -1), (0, 0), (1, 0), (-2, 0), (-2, 1)],
        2: [(-1, -2), (0, 0), (2, 0), (-1, 0), (-1, 2)],
    },
}

# ---------------------------------------------------------------------------
# O piece never kicks
# ---------------------------------------------------------------------------

RAW_O_KICKS: dict[int, dict[int, list[tuple[int, int]]]] = {
    0: {1: [(0, 0)], 3: [(0, 0)]},
    1: {2: [(0, 0)], 0: [(0, 0)]},
    2: {3: [(0, 0)], 1: [(0, 0)]},
    3: {0: [(0, 0)], 2: [(0, 0)]},
}


def _to_board_deltas(
    raw: dict[int, dict[int, list[tuple[int, int]]]],
) -> dict[int, dict[int, tuple[tuple[int, int], ...]]]:
    return {
        from_rot: {
            to_rot: tuple((-y, x) for x, y in kicks)
            for to_rot, kicks in transitions.items()
        }
        for from_rot, transitions in raw.items()
    }


KICK_TABLE_JLSTZ = _to_board_deltas(RAW_JLSTZ_KICKS)
KICK_TABLE_I = _to_board_deltas(RAW_I_KICKS)
KICK_TABLE_O = _to_board_deltas(RAW_O_KICKS)

KICK_TABLES: dict[PieceKind, dict[int, dict[int, tuple[tuple[int, int], ...]]]] = {
    PieceKind.I: KICK_TABLE_I,
    PieceKind.O: KICK_TABLE_O,
    PieceKind.T: KICK_TABLE_JLSTZ,
    PieceKind.S: KICK_TABLE_JLSTZ,
    PieceKind.Z: KICK_TABLE_JLSTZ,
    PieceKind.J: KICK_TABLE_JLSTZ,
    PieceKind.L: KICK_TABLE_JLSTZ,
}


def get_kick_offsets(kind: PieceKind, from_rot: int, to_rot: int) -> tuple[tuple[int, int], ...]:
    """Return the (row, col) kick deltas to try for a rotation transition.

    Args:
        kind: Piece kind.
        from_rot: Current rotation state (0-3).
        to_rot: Target rotation state (0-3).

    Returns:
        Ordered kick deltas. Transitions missing from a table fall back to a
        single in-place test.
    """
    kicks = KICK_TABLES[kind].get(from_rot, {}).get(to_rot)
    return kicks if kicks else ((0, 0),)
