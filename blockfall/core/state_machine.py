"""
Session phase machine.

  ready --start--> playing <--pause/resume--> paused
  any phase except gameOver --game_over--> gameOver

Alongside the phase it tracks whether hold is available in the current turn
(use_hold clears it, lock restores it; both only while playing).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Callable


class Phase(str, enum.Enum):
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    GAME_OVER = "gameOver"


class PhaseEvent(str, enum.Enum):
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    GAME_OVER = "gameOver"
    USE_HOLD = "useHold"
    LOCK = "lock"


@dataclass(frozen=True)
class PhaseSnapshot:
    phase: Phase = Phase.READY
    hold_available: bool = True


class PhaseMachine:
    """Owns the phase and notifies listeners when the snapshot changes."""

    def __init__(self) -> None:
        self._snapshot = PhaseSnapshot()
        self._listeners: list[Callable[[PhaseSnapshot], None]] = []

    @property
    def snapshot(self) -> PhaseSnapshot:
        return self._snapshot

    @property
    def phase(self) -> Phase:
        return self._snapshot.phase

    def can_hold(self) -> bool:
        return self._snapshot.hold_available

    def dispatch(self, event: PhaseEvent | str) -> None:
        """Apply an event. Events that do not apply to the current phase,
        and unknown events, leave the snapshot untouched."""
        try:
            event = PhaseEvent(event)
        except ValueError:
            return

        current = self._snapshot
        nxt = current

        if event is PhaseEvent.START:
            if current.phase is Phase.READY:
                nxt = PhaseSnapshot(phase=Phase.PLAYING, hold_available=True)
        elif event is PhaseEvent.PAUSE:
            if current.phase is Phase.PLAYING:
                nxt = replace(current, phase=Phase.PAUSED)
        elif event is PhaseEvent.RESUME:
            if current.phase is Phase.PAUSED:
                nxt = replace(current, phase=Phase.PLAYING)
        elif event is PhaseEvent.GAME_OVER:
            if current.phase is not Phase.GAME_OVER:
                nxt = PhaseSnapshot(phase=Phase.GAME_OVER, hold_available=False)
        elif event is PhaseEvent.USE_HOLD:
            if current.phase is Phase.PLAYING and current.hold_available:
                nxt = replace(current, hold_available=False)
        elif event is PhaseEvent.LOCK:
            if current.phase is Phase.PLAYING and not current.hold_available:
                nxt = replace(current, hold_available=True)

        if nxt != current:
            self._snapshot = nxt
            for listener in list(self._listeners):
                listener(nxt)

    def subscribe(self, listener: Callable[[PhaseSnapshot], None]) -> Callable[[], None]:
        """Register a listener; returns an idempotent unsubscribe function."""
        self._listeners.append(listener)
        active = True

        def unsubscribe() -> None:
            nonlocal active
            if not active:
                return
            active = False
            self._listeners.remove(listener)

        return unsubscribe
