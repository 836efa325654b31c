"""
Seeded seven-bag randomizer.

Every bag is a permutation of the seven piece kinds derived only from the
session seed and the bag's index, so a sequence can be rebuilt from any point
without replaying in-memory shuffles:

  bag k = shuffle(PIECE_KINDS, prng(hash(seed, k)))
  k     = len(history) // 7   (computed when the current bag runs dry)

All states are immutable; draw_next_piece() returns a new RandomState.
"""

from __future__ import annotations

import enum
import secrets
from dataclasses import dataclass


class PieceKind(enum.IntEnum):
    """The seven tetromino kinds. The value doubles as the board cell id."""
    I = 1
    O = 2
    T = 3
    S = 4
    Z = 5
    J = 6
    L = 7


# Canonical order, shuffled in place to produce each bag
PIECE_KINDS: tuple[PieceKind, ...] = tuple(PieceKind)

BAG_SIZE = len(PIECE_KINDS)

_UINT32 = 0xFFFFFFFF
_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


@dataclass(frozen=True)
class RandomState:
    """Immutable randomizer state.

    Attributes:
        seed: Opaque seed string.
        bag: Kinds remaining in the current bag, in draw order.
        history: Every kind drawn so far.
    """
    seed: str
    bag: tuple[PieceKind, ...]
    history: tuple[PieceKind, ...] = ()


@dataclass(frozen=True)
class DrawResult:
    piece: PieceKind
    state: RandomState


def generate_seed() -> str:
    """Return a fresh 16-character hex seed."""
    return secrets.token_hex(8)


def _hash_seed(seed: str, bag_index: int) -> int:
    """32-bit FNV-1a over the seed, with the bag index folded into the basis."""
    value = (_FNV_OFFSET ^ bag_index) & _UINT32
    for ch in seed:
        value ^= ord(ch)
        value = (value * _FNV_PRIME) & _UINT32
    return value


def _prng(seed_value: int):
    """Return a float generator in [0, 1) driven by a 32-bit mixing state."""
    state = seed_value & _UINT32

    def next_float() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _UINT32
        t = ((state ^ (state >> 15)) * (1 | state)) & _UINT32
        t ^= (t + (((t ^ (t >> 7)) * (61 | t)) & _UINT32)) & _UINT32
        return ((t ^ (t >> 14)) & _UINT32) / (_UINT32 + 1)

    return next_float


def generate_bag(seed: str, bag_index: int) -> tuple[PieceKind, ...]:
    """Build bag number `bag_index` for `seed` (Fisher-Yates shuffle)."""
    next_float = _prng(_hash_seed(seed, bag_index))
    bag = list(PIECE_KINDS)
    for i in range(len(bag) - 1, 0, -1):
        j = int(next_float() * (i + 1))
        bag[i], bag[j] = bag[j], bag[i]
    return tuple(bag)


def create_seven_bag_rng(seed: str | None = None) -> RandomState:
    """Create a randomizer positioned before the first draw.

    Args:
        seed: Seed string. A random one is generated when omitted.

    Returns:
        A RandomState holding the first bag and an empty history.
    """
    if seed is None:
        seed = generate_seed()
    return RandomState(seed=seed, bag=generate_bag(seed, 0), history=())


def draw_next_piece(state: RandomState) -> DrawResult:
    """Draw one kind, refilling the bag from the draw count when it is empty.

    Args:
        state: Current randomizer state (left untouched).

    Returns:
        DrawResult with the drawn kind and the successor state.
    """
    bag = state.bag
    if not bag:
        bag = generate_bag(state.seed, len(state.history) // BAG_SIZE)

    piece, remaining = bag[0], bag[1:]
    return DrawResult(
        piece=piece,
        state=RandomState(
            seed=state.seed,
            bag=remaining,
            history=state.history + (piece,),
        ),
    )
