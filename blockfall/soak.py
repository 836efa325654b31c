"""
Headless soak runner.

Drives a GameLoop for a long stretch of simulated time with a simple placement
bot, restarting whenever the game ends or the stack grows too tall. Used to
shake out lock-delay, queue and compaction bugs that only show up after
thousands of pieces.

Features:
  - Fixed frame delta, fully simulated time (no sleeping)
  - Restart on game over or on a stack above `restart_height`
  - Progress lines on stdout every `log_interval` ms of simulated time
  - CSV progress log + JSON report per run
"""

from __future__ import annotations

import csv
import datetime
import json
import pathlib
import queue as queue_mod
import threading
import time
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from blockfall.core.board import DEFAULT_BOARD_COLS, DEFAULT_BOARD_ROWS
from blockfall.core.game_loop import ControlInput, GameLoop, MoveDirection, SessionState
from blockfall.core.pieces import get_piece_shape
from blockfall.core.rotation import RotationDirection
from blockfall.core.state_machine import Phase

DEFAULT_DURATION_MS = 20 * 60 * 1000
DEFAULT_FRAME_MS = 1000 / 60
DEFAULT_RESTART_HEIGHT = 18
DEFAULT_MAX_RESTARTS = 300
DEFAULT_LOG_INTERVAL_MS = 60_000

# Hard drop once this many moves or rotations in a row were blocked
MAX_MOVE_STALLS = 4


# ── CSV Logger ───────────────────────────────────────────────────────────────

CSV_FIELDNAMES = [
    "simulated_ms",
    "score",
    "lines",
    "level",
    "pieces_placed",
    "restarts",
]


class CSVLogger:
    """Thread-safe CSV logger that writes rows in a background thread."""

    def __init__(self, path: str | pathlib.Path, fieldnames: list[str]) -> None:
        self._path = pathlib.Path(path)
        self._fieldnames = fieldnames
        self._queue: queue_mod.Queue = queue_mod.Queue()
        self._thread = threading.Thread(target=self._writer, daemon=True)
        self._thread.start()

    def _writer(self) -> None:
        header_written = self._path.exists() and self._path.stat().st_size > 0
        while True:
            row = self._queue.get()
            if row is None:
                break
            try:
                with open(self._path, "a", newline="", encoding="utf-8") as f:
                    w = csv.DictWriter(f, fieldnames=self._fieldnames)
                    if not header_written:
                        w.writeheader()
                        header_written = True
                    w.writerow(row)
                    f.flush()
            except OSError as e:
                print(f"CSVLogger error: {e}", flush=True)

    def write(self, row: dict) -> None:
        self._queue.put_nowait(row)

    def shutdown(self) -> None:
        self._queue.put(None)
        self._thread.join(timeout=5)


# ── Board analysis and placement bot ─────────────────────────────────────────

def compute_column_heights(board: np.ndarray) -> np.ndarray:
    """Get the height of every column (vectorized).

    A column's height is measured from the bottom row up to the topmost
    filled cell. An empty column has height 0.
    """
    filled = board != 0
    has_block = filled.any(axis=0)
    first_block = np.argmax(filled, axis=0)
    return np.where(has_block, board.shape[0] - first_block, 0)


@dataclass(frozen=True)
class PieceGoal:
    rotation: int
    column: int
    width: int


def determine_goal(state: SessionState, pieces_placed: int, heights: np.ndarray) -> PieceGoal | None:
    """Pick a rotation and column for the active piece.

    Prefers the narrowest rotation, then the lowest landing segment, biased
    toward the centre and rotated through columns by piece count so the
    stack stays roughly flat.
    """
    piece = state.active
    if piece is None:
        return None

    board_height, board_width = state.board.shape

    best_rotation = piece.rotation
    best_width = None
    for offset in range(4):
        rotation = (piece.rotation + offset) % 4
        width = get_piece_shape(piece.kind, rotation).shape[1]
        if best_width is None or width < best_width:
            best_width = width
            best_rotation = rotation

    shape_height, target_width = get_piece_shape(piece.kind, best_rotation).shape

    best_column = piece.position.col
    best_score = float("inf")
    for col in range(board_width - target_width + 1):
        segment_height = int(heights[col:col + target_width].max())
        if segment_height + shape_height > board_height:
            continue
        centre_bias = abs(col + target_width / 2 - board_width / 2)
        score = segment_height * 10 + centre_bias + (pieces_placed % 5)
        if score < best_score:
            best_score = score
            best_column = col

    column = min(max(best_column, 0), max(0, board_width - target_width))
    return PieceGoal(rotation=best_rotation, column=column, width=max(1, target_width))


# ── Soak run ─────────────────────────────────────────────────────────────────

@dataclass
class SoakMetrics:
    frames: int = 0
    simulated_ms: float = 0.0
    pieces_placed: int = 0
    restarts: int = 0
    moves: int = 0
    rotations: int = 0
    hard_drops: int = 0
    plan_builds: int = 0
    plan_failures: int = 0
    max_height: int = 0
    max_lock_ms: float = 0.0
    max_lock_frames: int = 0
    progress: list[dict[str, Any]] = field(default_factory=list)


def parse_duration(value: str | float | int) -> float:
    """Parse '500ms', '30s', '20m' or a bare number of ms.

    Raises:
        ValueError: If the value is not a number with an optional ms/s/m unit.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid duration: {value!r}")
    text = value.strip().lower()
    scale = 1.0
    if text.endswith("ms"):
        text = text[:-2]
    elif text.endswith("s"):
        text, scale = text[:-1], 1000.0
    elif text.endswith("m"):
        text, scale = text[:-1], 60_000.0
    try:
        return float(text) * scale
    except ValueError:
        raise ValueError(f"Invalid duration: {value!r} (expected e.g. 500ms, 30s, 20m)") from None


def run_soak(config: dict[str, Any], session_id: str | None = None) -> dict[str, Any]:
    """Run a soak session and write its JSON report and CSV progress log.

    Args:
        config: Config dict (see config/engine.yaml). Every key is optional.
        session_id: Name used for the report files (default: timestamp).

    Returns:
        The report dict that was written to disk.

    Raises:
        ValueError: If a duration setting is malformed or frame_ms is not positive.
    """
    duration_ms = parse_duration(config.get("soak_duration", DEFAULT_DURATION_MS))
    frame_ms = parse_duration(config.get("frame_ms", DEFAULT_FRAME_MS))
    log_interval_ms = parse_duration(config.get("log_interval", DEFAULT_LOG_INTERVAL_MS))
    restart_height = int(config.get("restart_height", DEFAULT_RESTART_HEIGHT))
    max_restarts = max(0, int(config.get("max_restarts", DEFAULT_MAX_RESTARTS)))
    seed = config.get("seed")
    if seed is not None:
        seed = str(seed)
    if frame_ms <= 0:
        raise ValueError(f"frame_ms must be positive, got {frame_ms}")

    session_id = session_id or datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    report_dir = pathlib.Path(config.get("report_dir", "reports"))
    report_dir.mkdir(parents=True, exist_ok=True)

    csv_path = report_dir / f"soak_{session_id}.csv"
    csv_logger = CSVLogger(csv_path, CSV_FIELDNAMES)
    print(f"[soak] CSV log: {csv_path}", flush=True)

    loop = GameLoop(
        seed=seed,
        width=int(config.get("board_width", DEFAULT_BOARD_COLS)),
        height=int(config.get("board_height", DEFAULT_BOARD_ROWS)),
        initial_level=int(config.get("initial_level", 0)),
    )
    metrics = SoakMetrics()
    notes: list[str] = []
    latest = loop.get_state()

    def on_snapshot(snapshot: SessionState) -> None:
        nonlocal latest
        latest = snapshot
        metrics.max_height = max(metrics.max_height, int(compute_column_heights(snapshot.board).max()))
        metrics.max_lock_ms = max(metrics.max_lock_ms, snapshot.lock.elapsed_ms)
        metrics.max_lock_frames = max(metrics.max_lock_frames, snapshot.lock.frames)

    def record_progress() -> None:
        stats = latest.stats
        print(
            f"[soak] simulated {metrics.simulated_ms / 60_000:.2f} min | "
            f"score {stats.score} | lines {stats.lines} | level {stats.level} | "
            f"restarts {metrics.restarts}",
            flush=True,
        )
        row = {
            "simulated_ms": round(metrics.simulated_ms),
            "score": stats.score,
            "lines": stats.lines,
            "level": stats.level,
            "pieces_placed": metrics.pieces_placed,
            "restarts": metrics.restarts,
        }
        metrics.progress.append(row)
        csv_logger.write(row)

    unsubscribe = loop.subscribe(on_snapshot)
    loop.start()

    wall_clock_start = time.perf_counter()
    failure_reason: str | None = None
    goal: PieceGoal | None = None
    goal_key: tuple | None = None
    just_dropped = False
    move_stalls = 0
    next_log_at = log_interval_ms

    def restart(reason: str) -> bool:
        nonlocal goal, just_dropped, move_stalls, failure_reason
        metrics.restarts += 1
        if metrics.restarts > max_restarts:
            failure_reason = f"Exceeded maximum restarts ({max_restarts})"
            return False
        notes.append(reason)
        loop.stop()
        loop.start()
        goal = None
        just_dropped = False
        move_stalls = 0
        return True

    def drop() -> None:
        nonlocal goal, just_dropped, move_stalls
        loop.apply_input(ControlInput.hard_drop())
        metrics.hard_drops += 1
        metrics.pieces_placed += 1
        just_dropped = True
        goal = None
        move_stalls = 0

    try:
        while metrics.simulated_ms < duration_ms:
            if latest.phase is Phase.READY:
                loop.start()
                goal = None
                just_dropped = False
                move_stalls = 0

            if latest.phase is Phase.PAUSED:
                loop.apply_input(ControlInput.resume())

            if latest.phase is Phase.GAME_OVER:
                if not restart(f"Restart triggered after {metrics.simulated_ms:.0f}ms simulated time"):
                    break
                continue

            heights = compute_column_heights(latest.board)
            peak = int(heights.max()) if heights.size else 0
            if peak >= restart_height:
                reason = f"Restart due to stack height {peak} at {metrics.simulated_ms / 1000:.1f}s"
                if not restart(reason):
                    break
                continue

            if not just_dropped and latest.phase is Phase.PLAYING and latest.active is not None:
                # A new draw or a hold means a different active piece
                piece_key = (len(latest.rng.history), latest.hold, latest.active.kind)
                if goal is None or piece_key != goal_key:
                    goal_key = piece_key
                    move_stalls = 0
                    goal = determine_goal(latest, metrics.pieces_placed, heights)
                    if goal is None:
                        metrics.plan_failures += 1
                    else:
                        metrics.plan_builds += 1

                if goal is not None:
                    piece = latest.active
                    target_col = min(max(goal.column, 0), max(0, latest.board.shape[1] - goal.width))

                    if piece.rotation != goal.rotation:
                        loop.apply_input(ControlInput.rotate(RotationDirection.CW))
                        metrics.rotations += 1
                        rotated = latest.active.rotation if latest.active is not None else piece.rotation
                        move_stalls = move_stalls + 1 if rotated == piece.rotation else 0
                    elif piece.position.col != target_col:
                        before = piece.position.col
                        direction = MoveDirection.RIGHT if before < target_col else MoveDirection.LEFT
                        loop.apply_input(ControlInput.move(direction))
                        metrics.moves += 1
                        after = latest.active.position.col if latest.active is not None else before
                        move_stalls = move_stalls + 1 if after == before else 0
                    else:
                        drop()

                    if move_stalls >= MAX_MOVE_STALLS:
                        notes.append(
                            f"Forced drop due to stalled placement at {metrics.simulated_ms / 1000:.2f}s"
                        )
                        drop()

            loop.tick(frame_ms)
            metrics.frames += 1
            metrics.simulated_ms += frame_ms
            just_dropped = False

            if metrics.simulated_ms >= next_log_at:
                record_progress()
                next_log_at += log_interval_ms

    except KeyboardInterrupt:
        print("\n[soak] Interrupted. Writing report...", flush=True)
        failure_reason = "Interrupted"

    real_duration_ms = (time.perf_counter() - wall_clock_start) * 1000

    if failure_reason is None and metrics.simulated_ms < duration_ms:
        failure_reason = "Simulation ended before reaching target duration"
    if failure_reason is None:
        record_progress()

    unsubscribe()
    csv_logger.shutdown()

    report = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "config": {
            "duration_ms": duration_ms,
            "frame_ms": frame_ms,
            "seed": seed,
            "initial_level": loop.initial_level,
            "restart_height": restart_height,
            "max_restarts": max_restarts,
            "log_interval_ms": log_interval_ms,
            "report_dir": str(report_dir),
        },
        "summary": {
            "simulated_minutes": metrics.simulated_ms / 60_000,
            "simulated_ms": metrics.simulated_ms,
            "real_duration_ms": real_duration_ms,
            "frames_simulated": metrics.frames,
            "pieces_placed": metrics.pieces_placed,
            "restarts": metrics.restarts,
            "moves": metrics.moves,
            "rotations": metrics.rotations,
            "hard_drops": metrics.hard_drops,
            "plan_builds": metrics.plan_builds,
            "plan_failures": metrics.plan_failures,
            "ended_early": failure_reason is not None,
            "failure_reason": failure_reason,
        },
        "game": {
            "final_phase": latest.phase.value,
            "seed": latest.seed,
            "score": latest.stats.score,
            "lines": latest.stats.lines,
            "level": latest.stats.level,
            "max_height": metrics.max_height,
            "max_lock_ms": metrics.max_lock_ms,
            "max_lock_frames": metrics.max_lock_frames,
        },
        "timeline": metrics.progress,
        "notes": notes,
    }

    report_path = report_dir / f"soak_{session_id}.json"
    with open(report_path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2)

    if failure_reason is not None:
        print(f"\n[soak] FAILED: {failure_reason}", flush=True)
    else:
        print("\n[soak] SUCCESS", flush=True)
        print(
            f"Simulated {metrics.simulated_ms / 60_000:.2f} minutes in "
            f"{real_duration_ms / 1000:.1f}s (wall clock)",
            flush=True,
        )
        print(f"Pieces placed: {metrics.pieces_placed} | Restarts: {metrics.restarts}", flush=True)
    print(f"Report written to {report_path}", flush=True)
    return report
