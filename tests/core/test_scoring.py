"""Tests for the scoring ladder."""

from __future__ import annotations

from dataclasses import replace

import pytest

from blockfall.core.scoring import (
    GameStats,
    apply_hard_drop,
    apply_line_clear,
    apply_soft_drop,
    create_initial_stats,
)


@pytest.mark.parametrize("lines,points", [(1, 100), (2, 300), (3, 500), (4, 800)])
def test_line_clear_points_at_level_zero(lines, points):
    stats = apply_line_clear(create_initial_stats(), lines)
    assert stats.score == points
    assert stats.lines == lines
    assert stats.level == 0


def test_award_uses_level_before_the_clear():
    stats = GameStats(score=0, level=0, lines=8)
    stats = apply_line_clear(stats, 2)
    assert stats.score == 300
    assert stats.level == 1

    stats = apply_line_clear(stats, 1)
    assert stats.score == 300 + 200


def test_one_clear_can_jump_several_levels():
    stats = replace(create_initial_stats(), lines=19, level=1)
    stats = apply_line_clear(stats, 4)
    assert stats.level == 2
    assert stats.score == 800 * 2


def test_zero_lines_changes_nothing():
    stats = create_initial_stats()
    assert apply_line_clear(stats, 0) is stats


def test_drop_points():
    stats = apply_soft_drop(create_initial_stats(), 3)
    assert stats.score == 3
    assert stats.drop_distance_soft == 3

    stats = apply_hard_drop(stats, 5)
    assert stats.score == 13
    assert stats.drop_distance_hard == 5
