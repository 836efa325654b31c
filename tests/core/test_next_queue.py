"""Tests for the lookahead queue."""

from __future__ import annotations

from blockfall.core.next_queue import NEXT_QUEUE_DEPTH, advance_queue, create_next_queue
from blockfall.core.rng import create_seven_bag_rng


def test_create_draws_active_plus_full_queue():
    state = create_next_queue(create_seven_bag_rng("queue"))
    assert len(state.queue) == NEXT_QUEUE_DEPTH
    assert (state.active,) + state.queue == state.rng.history


def test_advance_promotes_front_and_refills():
    state = create_next_queue(create_seven_bag_rng("queue"))
    advanced = advance_queue(state)
    assert advanced.active == state.queue[0]
    assert advanced.queue[:-1] == state.queue[1:]
    assert len(advanced.queue) == NEXT_QUEUE_DEPTH
    assert len(advanced.rng.history) == len(state.rng.history) + 1
    assert advanced.queue[-1] == advanced.rng.history[-1]


def test_queue_follows_randomizer_order():
    state = create_next_queue(create_seven_bag_rng("order"))
    actives = [state.active]
    for _ in range(20):
        state = advance_queue(state)
        actives.append(state.active)
    assert tuple(actives) == state.rng.history[:len(actives)]
