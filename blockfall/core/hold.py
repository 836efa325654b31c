"""
Hold slot: bank the active piece, at most once per piece lifetime.

Misuse is a caller bug, not a game event, so it raises HoldError instead of
returning a failed result. The orchestrator checks can_hold() and the queue
before calling perform_hold().
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from blockfall.core.rng import PieceKind


class HoldError(RuntimeError):
    """Raised when perform_hold() is called in a state that forbids it."""


@dataclass(frozen=True)
class HoldState:
    slot: PieceKind | None = None
    used_this_turn: bool = False


@dataclass(frozen=True)
class HoldResult:
    """Outcome of a hold.

    Attributes:
        state: The new hold state (used_this_turn is always True).
        next_active: Kind that becomes active.
        consumes_queue: True when next_active came from the lookahead queue,
            in which case the caller must advance the queue.
    """
    state: HoldState
    next_active: PieceKind
    consumes_queue: bool


def create_hold_state() -> HoldState:
    return HoldState()


def can_hold(state: HoldState) -> bool:
    return not state.used_this_turn


def perform_hold(state: HoldState, active: PieceKind, next_queue_piece: PieceKind | None) -> HoldResult:
    """Store the active kind and pick the kind that replaces it.

    With an empty slot the active kind is stored and the next queue kind
    becomes active. Otherwise the stored and active kinds swap.

    Args:
        state: Current hold state.
        active: Kind of the active piece.
        next_queue_piece: Front of the lookahead queue, if any.

    Returns:
        HoldResult.

    Raises:
        HoldError: If hold was already used this turn, or the slot is empty
            and there is no queue piece to take over.
    """
    if state.used_this_turn:
        raise HoldError("Hold already used this turn")

    if state.slot is None:
        if next_queue_piece is None:
            raise HoldError("No queue piece available for hold swap")
        return HoldResult(
            state=HoldState(slot=active, used_this_turn=True),
            next_active=next_queue_piece,
            consumes_queue=True,
        )

    return HoldResult(
        state=HoldState(slot=active, used_this_turn=True),
        next_active=state.slot,
        consumes_queue=False,
    )


def reset_hold(state: HoldState) -> HoldState:
    """Make hold usable again, keeping the stored kind. Called once per lock."""
    return replace(state, used_this_turn=False)
