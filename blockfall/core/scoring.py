"""
Scoring ladder: score, level and line totals.

Line clears pay LINE_CLEAR_POINTS[n] * (level + 1) at the level held before
the clear; the level is then recomputed as lines // LINES_PER_LEVEL, so one
clear can jump several levels and the next award uses the new level.
Soft drops pay 1 point per cell, hard drops 2.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

LINE_CLEAR_POINTS: dict[int, int] = {
    1: 100,
    2: 300,
    3: 500,
    4: 800,
}

LINES_PER_LEVEL = 10
SOFT_DROP_POINTS = 1
HARD_DROP_POINTS = 2


@dataclass(frozen=True)
class GameStats:
    score: int = 0
    level: int = 0
    lines: int = 0
    drop_distance_soft: int = 0
    drop_distance_hard: int = 0


def create_initial_stats() -> GameStats:
    return GameStats()


def apply_line_clear(stats: GameStats, lines_cleared: int) -> GameStats:
    """Award a clear of `lines_cleared` rows.

    Args:
        stats: Current stats.
        lines_cleared: Rows cleared by a single lock.

    Returns:
        Updated stats, or `stats` itself when nothing was cleared.
    """
    if lines_cleared <= 0:
        return stats

    points = LINE_CLEAR_POINTS.get(lines_cleared, 0) * (stats.level + 1)
    lines = stats.lines + lines_cleared
    return replace(
        stats,
        score=stats.score + points,
        lines=lines,
        level=lines // LINES_PER_LEVEL,
    )


def apply_soft_drop(stats: GameStats, cells: int) -> GameStats:
    if cells <= 0:
        return stats
    return replace(
        stats,
        score=stats.score + cells * SOFT_DROP_POINTS,
        drop_distance_soft=stats.drop_distance_soft + cells,
    )


def apply_hard_drop(stats: GameStats, cells: int) -> GameStats:
    if cells <= 0:
        return stats
    return replace(
        stats,
        score=stats.score + cells * HARD_DROP_POINTS,
        drop_distance_hard=stats.drop_distance_hard + cells,
    )
