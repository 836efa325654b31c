"""Tests for the hold slot."""

from __future__ import annotations

import pytest

from blockfall.core.hold import HoldError, can_hold, create_hold_state, perform_hold, reset_hold
from blockfall.core.rng import PieceKind


def test_first_hold_takes_from_queue():
    result = perform_hold(create_hold_state(), PieceKind.T, PieceKind.I)
    assert result.state.slot is PieceKind.T
    assert result.next_active is PieceKind.I
    assert result.consumes_queue
    assert not can_hold(result.state)


def test_second_hold_in_same_turn_raises():
    result = perform_hold(create_hold_state(), PieceKind.T, PieceKind.I)
    with pytest.raises(HoldError):
        perform_hold(result.state, PieceKind.I, PieceKind.O)


def test_hold_swaps_after_reset():
    state = reset_hold(perform_hold(create_hold_state(), PieceKind.T, PieceKind.I).state)
    assert can_hold(state)
    assert state.slot is PieceKind.T

    result = perform_hold(state, PieceKind.O, None)
    assert result.next_active is PieceKind.T
    assert result.state.slot is PieceKind.O
    assert not result.consumes_queue


def test_empty_slot_without_queue_piece_raises():
    with pytest.raises(HoldError):
        perform_hold(create_hold_state(), PieceKind.S, None)
