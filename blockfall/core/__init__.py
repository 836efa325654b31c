"""Rules engine: randomizer, geometry, board, gravity, queue, hold, scoring and the game loop."""

from blockfall.core.rng import PieceKind, create_seven_bag_rng, draw_next_piece
from blockfall.core.pieces import KICK_TABLE_I, KICK_TABLE_JLSTZ, get_piece_shape
from blockfall.core.rotation import PieceState, Position, RotationDirection, attempt_rotation
from blockfall.core.board import create_empty_board, is_occupied, kind_at, lock_piece
from blockfall.core.collision import CollisionReport, can_place, check_collision
from blockfall.core.state_machine import Phase
from blockfall.core.game_loop import ControlInput, GameLoop, InputType, MoveDirection, SessionState

__all__ = [
    "PieceKind",
    "create_seven_bag_rng",
    "draw_next_piece",
    "KICK_TABLE_I",
    "KICK_TABLE_JLSTZ",
    "get_piece_shape",
    "PieceState",
    "Position",
    "RotationDirection",
    "attempt_rotation",
    "create_empty_board",
    "is_occupied",
    "kind_at",
    "lock_piece",
    "CollisionReport",
    "can_place",
    "check_collision",
    "Phase",
    "ControlInput",
    "GameLoop",
    "InputType",
    "MoveDirection",
    "SessionState",
]
