"""
Session orchestrator: ticks, inputs, locking, hold and phase transitions.

GameLoop ties the randomizer, rotation system, collision checker, board,
gravity machine, lookahead queue, hold slot, ghost projector, scoring ladder
and phase machine into one authoritative session.

Its internal state is a single immutable value replaced wholesale by every
operation. Subscribers and get_state() receive SessionState snapshots whose
board is a private copy; every other field is immutable, so nothing handed out
can reach back into the engine.

All calls are synchronous and must be serialized by the caller. Listeners must
not call mutating methods while being notified; doing so raises RuntimeError.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, replace
from typing import Any, Callable

import numpy as np

from blockfall.core.board import DEFAULT_BOARD_COLS, DEFAULT_BOARD_ROWS, create_empty_board, lock_piece
from blockfall.core.collision import check_collision
from blockfall.core.ghost import compute_ghost_position
from blockfall.core.gravity import (
    GravityConfig,
    GravityContext,
    GravityState,
    create_gravity_state,
    step_gravity,
)
from blockfall.core.hold import HoldState, create_hold_state, perform_hold, reset_hold
from blockfall.core.next_queue import NextQueueState, advance_queue, create_next_queue
from blockfall.core.pieces import get_piece_shape
from blockfall.core.rng import PieceKind, RandomState, create_seven_bag_rng
from blockfall.core.rotation import (
    PieceState,
    Position,
    RotationContext,
    RotationDirection,
    attempt_rotation,
)
from blockfall.core.scoring import (
    GameStats,
    apply_hard_drop,
    apply_line_clear,
    apply_soft_drop,
    create_initial_stats,
)
from blockfall.core.state_machine import Phase, PhaseEvent, PhaseMachine, PhaseSnapshot

LOCK_DELAY_MS = 500
LOCK_DELAY_FRAMES = 15
MIN_GRAVITY_MS = 50
BASE_GRAVITY_MS = 1000
GRAVITY_DECAY = 0.85
FRAMES_PER_TICK = 1
SPAWN_ROTATION = 0


# ── Inputs ───────────────────────────────────────────────────────────────────

class InputType(str, enum.Enum):
    """Abstract control events produced by the input layer."""
    MOVE = "move"
    SOFT_DROP = "softDrop"
    HARD_DROP = "hardDrop"
    ROTATE = "rotate"
    HOLD = "hold"
    PAUSE = "pause"
    RESUME = "resume"


class MoveDirection(str, enum.Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class ControlInput:
    """One control event.

    `direction` is required for MOVE (left/right) and ROTATE (cw/ccw) and must
    be None otherwise. `repeat` is an input-layer throttling hint and does not
    change engine behaviour.
    """
    type: InputType
    direction: MoveDirection | RotationDirection | None = None
    repeat: bool = False

    def __post_init__(self) -> None:
        kind = InputType(self.type)
        object.__setattr__(self, "type", kind)
        if kind is InputType.MOVE:
            object.__setattr__(self, "direction", MoveDirection(self.direction))
        elif kind is InputType.ROTATE:
            object.__setattr__(self, "direction", RotationDirection(self.direction))
        elif self.direction is not None:
            raise ValueError(f"Input {kind.value!r} takes no direction, got {self.direction!r}")

    @classmethod
    def move(cls, direction: MoveDirection | str, repeat: bool = False) -> ControlInput:
        return cls(InputType.MOVE, direction, repeat)

    @classmethod
    def rotate(cls, direction: RotationDirection | str) -> ControlInput:
        return cls(InputType.ROTATE, direction)

    @classmethod
    def soft_drop(cls, repeat: bool = False) -> ControlInput:
        return cls(InputType.SOFT_DROP, repeat=repeat)

    @classmethod
    def hard_drop(cls) -> ControlInput:
        return cls(InputType.HARD_DROP)

    @classmethod
    def hold(cls) -> ControlInput:
        return cls(InputType.HOLD)

    @classmethod
    def pause(cls) -> ControlInput:
        return cls(InputType.PAUSE)

    @classmethod
    def resume(cls) -> ControlInput:
        return cls(InputType.RESUME)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ControlInput:
        """Build an input from a mapping such as {"type": "move", "direction": "left"}.

        Raises:
            ValueError: On unknown keys, types or directions.
        """
        if not isinstance(data, dict) or "type" not in data:
            raise ValueError(f"Input must be a mapping with a 'type' key, got {data!r}")
        unknown = set(data) - {"type", "direction", "repeat"}
        if unknown:
            raise ValueError(f"Unknown input keys: {sorted(unknown)}")
        repeat = data.get("repeat", False)
        if not isinstance(repeat, bool):
            raise ValueError(f"Input 'repeat' must be true or false, got {repeat!r}")
        return cls(data["type"], data.get("direction"), repeat)


# ── Session snapshot ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SpeedProfile:
    gravity_ms: int
    lock_delay_ms: int


@dataclass(frozen=True)
class LockSnapshot:
    is_locking: bool = False
    elapsed_ms: float = 0.0
    frames: int = 0


@dataclass(frozen=True, eq=False)
class SessionState:
    """Externally observable session state.

    Attributes:
        board: Board grid (height x width, int8; 0 = empty, else PieceKind).
        active: Active piece, or None before start / after lock or game over.
        hold: Held kind, or None.
        hold_used_this_turn: Whether hold was already used by this piece.
        next_queue: Upcoming kinds, front first.
        rng: Randomizer state after every draw made so far.
        stats: Score, level, lines and drop distances.
        speed: Current gravity interval and lock delay.
        lock: Lock-delay counters of the active piece.
        phase: Session phase.
        ghost: Landing position of the active piece, or None.
        seed: Seed of the session's randomizer.
    """
    board: np.ndarray
    active: PieceState | None
    hold: PieceKind | None
    hold_used_this_turn: bool
    next_queue: tuple[PieceKind, ...]
    rng: RandomState
    stats: GameStats
    speed: SpeedProfile
    lock: LockSnapshot
    phase: Phase
    ghost: Position | None
    seed: str

    def copy(self) -> SessionState:
        """Return a snapshot that shares no mutable data with this one."""
        return replace(self, board=self.board.copy())


@dataclass(frozen=True, eq=False)
class _Internal:
    session: SessionState
    gravity: GravityState
    gravity_config: GravityConfig
    next_queue: NextQueueState
    hold: HoldState
    running: bool
    pending_lock_reset: bool


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def speed_for_level(level: int) -> SpeedProfile:
    """Return the gravity interval and lock delay used at `level`."""
    gravity_ms = max(MIN_GRAVITY_MS, _round_half_up(BASE_GRAVITY_MS * GRAVITY_DECAY ** level))
    return SpeedProfile(gravity_ms=gravity_ms, lock_delay_ms=LOCK_DELAY_MS)


def _gravity_config(speed: SpeedProfile) -> GravityConfig:
    return GravityConfig(
        gravity_ms=speed.gravity_ms,
        lock_delay_ms=speed.lock_delay_ms,
        lock_delay_frames=LOCK_DELAY_FRAMES,
    )


def _lock_snapshot(state: GravityState) -> LockSnapshot:
    return LockSnapshot(
        is_locking=state.is_locking,
        elapsed_ms=state.lock_elapsed_ms,
        frames=state.lock_frames,
    )


def _freeze(board: np.ndarray) -> np.ndarray:
    board.flags.writeable = False
    return board


def _below(position: Position, rows: int = 1) -> Position:
    return Position(position.row + rows, position.col)


class GameLoop:
    """Authoritative game session.

    Args:
        seed: Randomizer seed. When omitted, every ready state gets a fresh
            random seed.
        width: Board width in columns.
        height: Board height in rows.
        initial_level: Speed level the session starts at.
    """

    def __init__(
        self,
        seed: str | None = None,
        width: int = DEFAULT_BOARD_COLS,
        height: int = DEFAULT_BOARD_ROWS,
        initial_level: int = 0,
    ) -> None:
        if initial_level < 0:
            raise ValueError(f"initial_level must be >= 0, got {initial_level}")
        create_empty_board(height, width)  # validates dimensions

        self.width = width
        self.height = height
        self.initial_level = initial_level
        self._seed = seed

        self._listeners: list[Callable[[SessionState], None]] = []
        self._notifying = False

        self._machine = PhaseMachine()
        self._unsubscribe_machine = self._machine.subscribe(self._on_phase_change)
        self._internal = self._create_ready_state()

    # ── Public API ───────────────────────────────────────────────────────────

    def start(self) -> None:
        """Begin a fresh session with the ready state's seed."""
        self._ensure_not_notifying()
        self._reset_machine()

        seed = self._internal.session.seed
        board = _freeze(create_empty_board(self.height, self.width))
        queue = create_next_queue(create_seven_bag_rng(seed))
        self._internal = replace(
            self._internal,
            next_queue=queue,
            hold=create_hold_state(),
            pending_lock_reset=False,
            session=replace(
                self._internal.session,
                board=board,
                hold=None,
                next_queue=queue.queue,
                rng=queue.rng,
                stats=create_initial_stats(),
            ),
        )
        self._update_speed(self.initial_level)

        active = self._spawn(queue.active, board)
        self._internal = replace(self._internal, running=True)
        self._replace_session(active=active, ghost=compute_ghost_position(board, active))

        self._machine.dispatch(PhaseEvent.START)
        if active is None:
            self._enter_game_over()
        self._emit()

    def stop(self) -> None:
        """Discard the session and return to the ready phase."""
        self._ensure_not_notifying()
        self._reset_machine()
        self._internal = self._create_ready_state()
        self._emit()

    def tick(self, delta_ms: float) -> None:
        """Advance gravity and lock delay by `delta_ms`. Ignored unless playing."""
        self._ensure_not_notifying()
        self._process_tick(delta_ms)

    def apply_input(self, control: ControlInput) -> None:
        """Apply one control event. Piece inputs are ignored unless playing."""
        self._ensure_not_notifying()
        kind = control.type
        if kind is InputType.MOVE:
            self._move_horizontal(control.direction)
        elif kind is InputType.ROTATE:
            self._rotate(control.direction)
        elif kind is InputType.SOFT_DROP:
            self._soft_drop()
        elif kind is InputType.HARD_DROP:
            self._hard_drop()
        elif kind is InputType.HOLD:
            self._hold()
        elif kind is InputType.PAUSE:
            self._machine.dispatch(PhaseEvent.PAUSE)
            self._emit()
        elif kind is InputType.RESUME:
            self._machine.dispatch(PhaseEvent.RESUME)
            self._emit()

    def subscribe(self, listener: Callable[[SessionState], None]) -> Callable[[], None]:
        """Register a listener called with a snapshot after every change.

        Returns:
            An unsubscribe function; calling it more than once is harmless.
        """
        self._listeners.append(listener)
        active = True

        def unsubscribe() -> None:
            nonlocal active
            if not active:
                return
            active = False
            self._listeners.remove(listener)

        return unsubscribe

    def get_state(self) -> SessionState:
        """Return an independent snapshot of the session."""
        return self._internal.session.copy()

    def debug_force_game_over(self) -> None:
        """Fill every empty cell and jump straight to game over (test harness)."""
        self._ensure_not_notifying()
        board = self._internal.session.board
        filled = np.where(board == 0, np.int8(PieceKind.I), board).astype(np.int8)
        self._internal = replace(self._internal, running=False)
        self._replace_session(board=_freeze(filled), active=None, ghost=None)
        self._machine.dispatch(PhaseEvent.GAME_OVER)
        self._emit()

    # ── State plumbing ───────────────────────────────────────────────────────

    def _create_ready_state(self) -> _Internal:
        rng = create_seven_bag_rng(self._seed)
        queue = create_next_queue(rng)
        speed = speed_for_level(self.initial_level)
        gravity = create_gravity_state()
        session = SessionState(
            board=_freeze(create_empty_board(self.height, self.width)),
            active=None,
            hold=None,
            hold_used_this_turn=False,
            next_queue=queue.queue,
            rng=queue.rng,
            stats=create_initial_stats(),
            speed=speed,
            lock=_lock_snapshot(gravity),
            phase=Phase.READY,
            ghost=None,
            seed=rng.seed,
        )
        return _Internal(
            session=session,
            gravity=gravity,
            gravity_config=_gravity_config(speed),
            next_queue=queue,
            hold=create_hold_state(),
            running=False,
            pending_lock_reset=False,
        )

    def _reset_machine(self) -> None:
        self._unsubscribe_machine()
        self._machine = PhaseMachine()
        self._unsubscribe_machine = self._machine.subscribe(self._on_phase_change)

    def _on_phase_change(self, snapshot: PhaseSnapshot) -> None:
        self._replace_session(
            phase=snapshot.phase,
            hold_used_this_turn=not snapshot.hold_available,
        )

    def _replace_session(self, **changes: Any) -> None:
        self._internal = replace(
            self._internal,
            session=replace(self._internal.session, **changes),
        )

    def _emit(self) -> None:
        session = self._internal.session
        self._notifying = True
        try:
            # Each listener gets its own board copy
            for listener in list(self._listeners):
                listener(session.copy())
        finally:
            self._notifying = False

    def _ensure_not_notifying(self) -> None:
        if self._notifying:
            raise RuntimeError("GameLoop cannot be driven from inside a subscriber callback")

    def _update_speed(self, level: int) -> None:
        speed = speed_for_level(level)
        gravity = create_gravity_state()
        self._internal = replace(
            self._internal,
            gravity=gravity,
            gravity_config=_gravity_config(speed),
            session=replace(self._internal.session, speed=speed, lock=_lock_snapshot(gravity)),
        )

    def _playing(self) -> bool:
        internal = self._internal
        return (
            internal.running
            and internal.session.phase is Phase.PLAYING
            and internal.session.active is not None
        )

    def _collides(self, piece: PieceState, position: Position | None = None) -> bool:
        shape = get_piece_shape(piece.kind, piece.rotation)
        target = piece.position if position is None else position
        return check_collision(self._internal.session.board, shape, target).collides

    def _spawn(self, kind: PieceKind, board: np.ndarray) -> PieceState | None:
        """Place `kind` centered on row 0, or return None if that spot is blocked."""
        shape = get_piece_shape(kind, SPAWN_ROTATION)
        board_width = board.shape[1]
        position = Position(0, (board_width - shape.shape[1]) // 2)
        if check_collision(board, shape, position).collides:
            return None
        return PieceState(kind=kind, rotation=SPAWN_ROTATION, position=position)

    def _enter_game_over(self) -> None:
        self._internal = replace(self._internal, running=False)
        self._replace_session(active=None, ghost=None)
        self._machine.dispatch(PhaseEvent.GAME_OVER)

    def _set_active(self, piece: PieceState, **changes: Any) -> None:
        """Replace the active piece, refresh the ghost and flag a lock reset."""
        self._internal = replace(self._internal, pending_lock_reset=True)
        board = self._internal.session.board
        self._replace_session(active=piece, ghost=compute_ghost_position(board, piece), **changes)

    # ── Gravity and locking ──────────────────────────────────────────────────

    def _process_tick(self, delta_ms: float) -> None:
        if not self._playing():
            return

        internal = self._internal
        active = internal.session.active
        board = internal.session.board
        shape = get_piece_shape(active.kind, active.rotation)
        grounded = check_collision(board, shape, _below(active.position)).collides

        result = step_gravity(
            internal.gravity,
            internal.gravity_config,
            GravityContext(
                delta_ms=delta_ms,
                frames=FRAMES_PER_TICK,
                grounded=grounded,
                reset_lock=grounded and internal.pending_lock_reset,
            ),
        )
        self._internal = replace(internal, gravity=result.state, pending_lock_reset=False)

        if grounded:
            if result.should_lock:
                self._lock_active_piece()
                return
            self._replace_session(lock=_lock_snapshot(result.state))
            self._emit()
            return

        piece = active
        for _ in range(result.drop_rows):
            target = _below(piece.position)
            if check_collision(board, shape, target).collides:
                # Landed mid-descent: start lock bookkeeping instead of tunnelling
                landed = step_gravity(
                    self._internal.gravity,
                    self._internal.gravity_config,
                    GravityContext(delta_ms=0, frames=0, grounded=True),
                )
                self._internal = replace(self._internal, gravity=landed.state)
                break
            piece = replace(piece, position=target)

        self._replace_session(
            active=piece,
            ghost=compute_ghost_position(board, piece),
            lock=_lock_snapshot(self._internal.gravity),
        )
        self._emit()

    def _lock_active_piece(self) -> None:
        """Stamp the active piece, score clears, advance the queue and spawn."""
        internal = self._internal
        session = internal.session
        active = session.active
        if active is None:
            return

        shape = get_piece_shape(active.kind, active.rotation)
        result = lock_piece(session.board, shape, active.position, active.kind)
        board = _freeze(result.board)
        stats = apply_line_clear(session.stats, len(result.cleared_lines))
        queue = advance_queue(internal.next_queue)

        self._internal = replace(
            internal,
            next_queue=queue,
            pending_lock_reset=False,
            session=replace(
                session,
                board=board,
                stats=stats,
                active=None,
                ghost=None,
                next_queue=queue.queue,
                rng=queue.rng,
            ),
        )
        self._update_speed(max(self.initial_level, stats.level))

        piece = self._spawn(queue.active, board)
        if piece is None:
            self._enter_game_over()
            self._emit()
            return

        self._internal = replace(self._internal, hold=reset_hold(self._internal.hold))
        self._replace_session(active=piece, ghost=compute_ghost_position(board, piece))
        self._machine.dispatch(PhaseEvent.LOCK)
        self._emit()

    # ── Inputs ───────────────────────────────────────────────────────────────

    def _move_horizontal(self, direction: MoveDirection) -> None:
        if not self._playing():
            return
        active = self._internal.session.active
        delta = -1 if direction is MoveDirection.LEFT else 1
        target = Position(active.position.row, active.position.col + delta)
        if self._collides(active, target):
            return
        self._set_active(replace(active, position=target))
        self._emit()

    def _rotate(self, direction: RotationDirection) -> None:
        if not self._playing():
            return
        board = self._internal.session.board
        height, width = board.shape

        def is_occupied(row: int, col: int) -> bool:
            if row < 0 or row >= height or col < 0 or col >= width:
                return True
            return bool(board[row, col] != 0)

        context = RotationContext(width=width, height=height, is_occupied=is_occupied)
        result = attempt_rotation(self._internal.session.active, direction, context)
        if not result.success:
            return
        self._set_active(result.piece)
        self._emit()

    def _soft_drop(self) -> None:
        if not self._playing():
            return
        active = self._internal.session.active
        target = _below(active.position)
        if self._collides(active, target):
            # Pressing down against the floor only refreshes lock delay
            self._internal = replace(self._internal, pending_lock_reset=True)
            return
        stats = apply_soft_drop(self._internal.session.stats, 1)
        self._set_active(replace(active, position=target), stats=stats)
        self._emit()

    def _hard_drop(self) -> None:
        if not self._playing():
            return
        active = self._internal.session.active
        distance = 0
        while not self._collides(active, _below(active.position, distance + 1)):
            distance += 1

        if distance > 0:
            self._replace_session(
                active=replace(active, position=_below(active.position, distance)),
                stats=apply_hard_drop(self._internal.session.stats, distance),
            )
        self._lock_active_piece()

    def _hold(self) -> None:
        if not self._playing() or not self._machine.can_hold():
            return

        internal = self._internal
        active = internal.session.active
        queue = internal.next_queue
        if internal.hold.slot is None and not queue.queue:
            return

        next_queue_piece = queue.queue[0] if internal.hold.slot is None else None
        result = perform_hold(internal.hold, active.kind, next_queue_piece)

        if result.consumes_queue:
            queue = advance_queue(queue)
            next_kind = queue.active
        else:
            next_kind = result.next_active

        board = internal.session.board
        spawn = self._spawn(next_kind, board)
        self._internal = replace(
            internal,
            hold=result.state,
            next_queue=queue,
            gravity=create_gravity_state(),
            pending_lock_reset=False,
        )
        self._replace_session(
            hold=result.state.slot,
            next_queue=queue.queue,
            rng=queue.rng,
            lock=LockSnapshot(),
        )

        if spawn is None:
            self._enter_game_over()
            self._emit()
            return

        self._replace_session(active=spawn, ghost=compute_ghost_position(board, spawn))
        self._machine.dispatch(PhaseEvent.USE_HOLD)
        self._emit()
