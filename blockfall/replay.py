"""
Deterministic replay and recording of input scripts.

A script is a seed plus an ordered list of steps; replaying it against a fresh
GameLoop reproduces the session exactly, which is what bug reports attach.

Script layout (YAML or an equivalent dict):

    seed: "0123456789abcdef"
    width: 20            # optional
    height: 40           # optional
    initial_level: 0     # optional
    steps:
      - start
      - tick: 16                       # one tick of 16 ms
      - tick: [16, 10]                 # ten ticks of 16 ms
      - input: {type: move, direction: left}
      - input: {type: hardDrop}
      - stop
      - forceGameOver
"""

from __future__ import annotations

import pathlib
from dataclasses import dataclass
from typing import Any

import yaml

from blockfall.core.board import DEFAULT_BOARD_COLS, DEFAULT_BOARD_ROWS
from blockfall.core.game_loop import ControlInput, GameLoop, SessionState

STEP_START = "start"
STEP_STOP = "stop"
STEP_FORCE_GAME_OVER = "forceGameOver"
STEP_TICK = "tick"
STEP_INPUT = "input"

_BARE_STEPS = (STEP_START, STEP_STOP, STEP_FORCE_GAME_OVER)


@dataclass(frozen=True)
class ReplayStep:
    """One parsed script step.

    Attributes:
        kind: One of start, stop, forceGameOver, tick, input.
        delta_ms: Tick length (tick steps only).
        count: Number of ticks (tick steps only).
        control: The control event (input steps only).
    """
    kind: str
    delta_ms: float = 0.0
    count: int = 1
    control: ControlInput | None = None


@dataclass(frozen=True)
class ReplayResult:
    state: SessionState
    snapshots_emitted: int
    steps_run: int


def _parse_tick(value: Any) -> tuple[float, int]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        delta, count = value, 1
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        delta, count = value
    else:
        raise ValueError(f"tick must be <ms> or [<ms>, <count>], got {value!r}")
    if (
        not isinstance(delta, (int, float))
        or isinstance(delta, bool)
        or delta < 0
        or not isinstance(count, int)
        or count < 1
    ):
        raise ValueError(f"tick needs ms >= 0 and an integer count >= 1, got {value!r}")
    return float(delta), count


def parse_step(raw: Any) -> ReplayStep:
    """Parse one raw step.

    Raises:
        ValueError: If the step is not a known bare step, tick or input.
    """
    if isinstance(raw, str):
        if raw not in _BARE_STEPS:
            raise ValueError(f"Unknown step {raw!r}")
        return ReplayStep(kind=raw)

    if not isinstance(raw, dict) or len(raw) != 1:
        raise ValueError(f"Step must be a name or a single-key mapping, got {raw!r}")

    (key, value), = raw.items()
    if key == STEP_TICK:
        delta_ms, count = _parse_tick(value)
        return ReplayStep(kind=STEP_TICK, delta_ms=delta_ms, count=count)
    if key == STEP_INPUT:
        return ReplayStep(kind=STEP_INPUT, control=ControlInput.from_dict(value))
    raise ValueError(f"Unknown step key {key!r}")


def parse_steps(raw_steps: list[Any]) -> list[ReplayStep]:
    """Parse a list of raw steps, naming the failing index on error."""
    steps = []
    for index, raw in enumerate(raw_steps):
        try:
            steps.append(parse_step(raw))
        except ValueError as e:
            raise ValueError(f"Step {index}: {e}") from e
    return steps


def load_script(path: str | pathlib.Path) -> dict[str, Any]:
    """Load a replay script from a YAML file.

    Raises:
        FileNotFoundError: If the script file does not exist.
        ValueError: If the file does not hold a mapping.
    """
    path = pathlib.Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Replay script not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        script = yaml.safe_load(f)
    if not isinstance(script, dict):
        raise ValueError(f"Replay script must be a mapping: {path}")
    return script


def run_replay(script: dict[str, Any]) -> ReplayResult:
    """Replay a script against a fresh GameLoop.

    Args:
        script: Mapping with `seed`, `steps` and optional board settings.

    Returns:
        ReplayResult with the final snapshot.

    Raises:
        ValueError: If the seed is missing or a step is malformed.
    """
    seed = script.get("seed")
    if seed is None:
        raise ValueError("Replay script needs a seed")
    steps = parse_steps(script.get("steps") or [])

    loop = GameLoop(
        seed=str(seed),
        width=int(script.get("width", DEFAULT_BOARD_COLS)),
        height=int(script.get("height", DEFAULT_BOARD_ROWS)),
        initial_level=int(script.get("initial_level", 0)),
    )
    emitted = 0

    def on_snapshot(_: SessionState) -> None:
        nonlocal emitted
        emitted += 1

    unsubscribe = loop.subscribe(on_snapshot)
    for step in steps:
        if step.kind == STEP_START:
            loop.start()
        elif step.kind == STEP_STOP:
            loop.stop()
        elif step.kind == STEP_FORCE_GAME_OVER:
            loop.debug_force_game_over()
        elif step.kind == STEP_TICK:
            for _ in range(step.count):
                loop.tick(step.delta_ms)
        elif step.kind == STEP_INPUT:
            loop.apply_input(step.control)
    unsubscribe()

    return ReplayResult(state=loop.get_state(), snapshots_emitted=emitted, steps_run=len(steps))


class ReplayRecorder:
    """Drive a GameLoop while recording every call as a replay script.

    The wrapped loop must be created with an explicit seed so the recording
    can be replayed.
    """

    def __init__(self, loop: GameLoop) -> None:
        self.loop = loop
        self._steps: list[Any] = []

    def start(self) -> None:
        self._steps.append(STEP_START)
        self.loop.start()

    def stop(self) -> None:
        self._steps.append(STEP_STOP)
        self.loop.stop()

    def tick(self, delta_ms: float) -> None:
        last = self._steps[-1] if self._steps else None
        if isinstance(last, dict) and STEP_TICK in last:
            recorded = last[STEP_TICK]
            recorded_ms, recorded_count = recorded if isinstance(recorded, list) else (recorded, 1)
            if recorded_ms == delta_ms:
                last[STEP_TICK] = [recorded_ms, recorded_count + 1]
                self.loop.tick(delta_ms)
                return
        self._steps.append({STEP_TICK: delta_ms})
        self.loop.tick(delta_ms)

    def apply_input(self, control: ControlInput) -> None:
        entry: dict[str, Any] = {"type": control.type.value}
        if control.direction is not None:
            entry["direction"] = control.direction.value
        if control.repeat:
            entry["repeat"] = True
        self._steps.append({STEP_INPUT: entry})
        self.loop.apply_input(control)

    def to_script(self) -> dict[str, Any]:
        return {
            "seed": self.loop.get_state().seed,
            "width": self.loop.width,
            "height": self.loop.height,
            "initial_level": self.loop.initial_level,
            "steps": [dict(s) if isinstance(s, dict) else s for s in self._steps],
        }

    def save(self, path: str | pathlib.Path) -> None:
        path = pathlib.Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_script(), f, sort_keys=False)


def replay_file(script_path: str | pathlib.Path, config: dict[str, Any] | None = None) -> ReplayResult:
    """Replay a script file and print a summary.

    Config keys `seed`, `board_width`, `board_height` and `initial_level` fill
    in values the script leaves out.
    """
    config = config or {}
    script = load_script(script_path)
    script.setdefault("seed", config.get("seed"))
    script.setdefault("width", config.get("board_width", DEFAULT_BOARD_COLS))
    script.setdefault("height", config.get("board_height", DEFAULT_BOARD_ROWS))
    script.setdefault("initial_level", config.get("initial_level", 0))

    print(f"[replay] {script_path} (seed {script['seed']})", flush=True)
    result = run_replay(script)
    state = result.state
    print(
        f"[replay] steps {result.steps_run} | snapshots {result.snapshots_emitted} | "
        f"phase {state.phase.value} | score {state.stats.score} | "
        f"lines {state.stats.lines} | level {state.stats.level}",
        flush=True,
    )
    return result
