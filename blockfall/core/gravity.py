"""
Gravity and lock-delay state machine.

Two states, switched every step by the caller's `grounded` flag:
  - falling: elapsed time accumulates into whole-row drops; the sub-row
    remainder is carried over.
  - grounded (locking): elapsed ms and frames accumulate until either exceeds
    its threshold, at which point the piece should lock. A reset signal zeroes
    both counters without leaving the locking state.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GravityConfig:
    gravity_ms: float
    lock_delay_ms: float
    lock_delay_frames: int


@dataclass(frozen=True)
class GravityState:
    fall_elapsed_ms: float = 0.0
    lock_elapsed_ms: float = 0.0
    lock_frames: int = 0
    is_locking: bool = False


@dataclass(frozen=True)
class GravityContext:
    """Inputs for one step.

    Attributes:
        delta_ms: Time elapsed since the previous step.
        frames: Frames elapsed since the previous step (1 per tick).
        grounded: Whether the piece would collide one row lower.
        reset_lock: Whether a move/rotate/soft drop happened while grounded.
    """
    delta_ms: float
    frames: int
    grounded: bool
    reset_lock: bool = False


@dataclass(frozen=True)
class GravityStepResult:
    state: GravityState
    drop_rows: int
    should_lock: bool
    lock_reset: bool


def create_gravity_state() -> GravityState:
    return GravityState()


def step_gravity(state: GravityState, config: GravityConfig, context: GravityContext) -> GravityStepResult:
    """Advance the machine by one step.

    Args:
        state: Current state (not modified).
        config: Gravity interval and lock thresholds.
        context: Elapsed time/frames and grounding for this step.

    Returns:
        GravityStepResult. `should_lock` is True only while grounded and once
        the lock time is strictly greater than the delay or the frame count
        reaches the frame threshold.
    """
    fall_elapsed = state.fall_elapsed_ms
    lock_elapsed = state.lock_elapsed_ms
    lock_frames = state.lock_frames
    is_locking = state.is_locking
    lock_reset = False
    drop_rows = 0

    if context.grounded:
        is_locking = True
        if context.reset_lock:
            lock_elapsed = 0.0
            lock_frames = 0
            lock_reset = True
        else:
            lock_elapsed += context.delta_ms
            lock_frames += context.frames
        fall_elapsed = 0.0
    else:
        if is_locking:
            # Airborne again: the grace period starts over next time
            lock_elapsed = 0.0
            lock_frames = 0
            is_locking = False

        total_fall = fall_elapsed + context.delta_ms
        if config.gravity_ms > 0:
            drop_rows = int(total_fall // config.gravity_ms)
            fall_elapsed = total_fall - drop_rows * config.gravity_ms
        else:
            fall_elapsed = 0.0

    time_reached = lock_elapsed > config.lock_delay_ms
    frames_reached = lock_frames >= config.lock_delay_frames

    return GravityStepResult(
        state=GravityState(
            fall_elapsed_ms=fall_elapsed,
            lock_elapsed_ms=lock_elapsed,
            lock_frames=lock_frames,
            is_locking=is_locking,
        ),
        drop_rows=drop_rows,
        should_lock=context.grounded and (time_reached or frames_reached),
        lock_reset=lock_reset,
    )
