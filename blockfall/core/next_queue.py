"""Fixed-depth lookahead queue fed by the seven-bag randomizer."""

from __future__ import annotations

from dataclasses import dataclass

from blockfall.core.rng import PieceKind, RandomState, draw_next_piece

NEXT_QUEUE_DEPTH = 3


@dataclass(frozen=True)
class NextQueueState:
    """The active kind, the upcoming kinds and the randomizer behind them.

    `queue` always holds exactly NEXT_QUEUE_DEPTH kinds, and `rng` reflects
    every draw made to fill it.
    """
    active: PieceKind
    queue: tuple[PieceKind, ...]
    rng: RandomState


def create_next_queue(rng: RandomState) -> NextQueueState:
    """Draw one active kind plus a full queue."""
    pieces = []
    current = rng
    for _ in range(NEXT_QUEUE_DEPTH + 1):
        draw = draw_next_piece(current)
        pieces.append(draw.piece)
        current = draw.state
    return NextQueueState(active=pieces[0], queue=tuple(pieces[1:]), rng=current)


def advance_queue(state: NextQueueState) -> NextQueueState:
    """Promote the front of the queue to active and refill to full depth.

    Args:
        state: Current queue state (not modified).

    Returns:
        The successor state.
    """
    current = state.rng
    remaining = list(state.queue)

    if remaining:
        next_active = remaining.pop(0)
    else:
        draw = draw_next_piece(current)
        next_active = draw.piece
        current = draw.state

    while len(remaining) < NEXT_QUEUE_DEPTH:
        draw = draw_next_piece(current)
        remaining.append(draw.piece)
        current = draw.state

    return NextQueueState(active=next_active, queue=tuple(remaining), rng=current)
