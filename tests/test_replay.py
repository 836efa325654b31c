"""Tests for script replay and recording."""

from __future__ import annotations

import numpy as np
import pytest

from blockfall.core.game_loop import ControlInput, GameLoop, MoveDirection
from blockfall.core.rotation import RotationDirection
from blockfall.core.state_machine import Phase
from blockfall.replay import (
    ReplayRecorder,
    load_script,
    parse_step,
    parse_steps,
    replay_file,
    run_replay,
)

SCRIPT = {
    "seed": "replay-seed",
    "steps": [
        "start",
        {"tick": [16, 30]},
        {"input": {"type": "move", "direction": "left"}},
        {"input": {"type": "rotate", "direction": "cw"}},
        {"input": {"type": "hardDrop"}},
        {"tick": 16},
        {"input": {"type": "hold"}},
        {"input": {"type": "softDrop", "repeat": True}},
        {"input": {"type": "hardDrop"}},
    ],
}


def test_replaying_twice_gives_identical_state():
    a = run_replay(SCRIPT).state
    b = run_replay(SCRIPT).state
    assert np.array_equal(a.board, b.board)
    assert a.active == b.active
    assert a.stats == b.stats
    assert a.next_queue == b.next_queue
    assert a.hold == b.hold


def test_replay_result_counts():
    result = run_replay(SCRIPT)
    assert result.steps_run == len(SCRIPT["steps"])
    assert result.snapshots_emitted == 1 + 30 + 5 + 1 + 1
    assert result.state.phase is Phase.PLAYING
    assert np.count_nonzero(result.state.board) == 8


def test_recorder_round_trip(tmp_path):
    loop = GameLoop(seed="recorded")
    recorder = ReplayRecorder(loop)
    recorder.start()
    for _ in range(5):
        recorder.tick(16)
    recorder.apply_input(ControlInput.move(MoveDirection.RIGHT))
    recorder.apply_input(ControlInput.rotate(RotationDirection.CCW))
    recorder.apply_input(ControlInput.hard_drop())
    recorder.tick(20)

    script = recorder.to_script()
    assert script["steps"][1] == {"tick": [16, 5]}
    assert script["steps"][-1] == {"tick": 20}

    replayed = run_replay(script).state
    live = loop.get_state()
    assert np.array_equal(replayed.board, live.board)
    assert replayed.active == live.active
    assert replayed.stats == live.stats

    path = tmp_path / "session.yaml"
    recorder.save(path)
    assert load_script(path) == script


def test_force_game_over_and_stop_steps():
    script = {"seed": "s", "steps": ["start", "forceGameOver"]}
    assert run_replay(script).state.phase is Phase.GAME_OVER

    script["steps"].append("stop")
    assert run_replay(script).state.phase is Phase.READY


@pytest.mark.parametrize(
    "raw",
    [
        "jump",
        {"tick": -1},
        {"tick": [16, 0]},
        {"tick": "fast"},
        {"input": {"type": "fly"}},
        {"tick": 16, "input": {"type": "hold"}},
        42,
    ],
)
def test_malformed_steps_raise(raw):
    with pytest.raises(ValueError):
        parse_step(raw)


def test_parse_steps_names_the_failing_index():
    with pytest.raises(ValueError, match="Step 2"):
        parse_steps(["start", {"tick": 16}, {"tick": [16, -3]}])


def test_missing_seed_raises():
    with pytest.raises(ValueError):
        run_replay({"steps": ["start"]})


def test_missing_script_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_script(tmp_path / "nope.yaml")


def test_replay_file_uses_config_defaults(tmp_path, capsys):
    path = tmp_path / "script.yaml"
    path.write_text("steps:\n  - start\n  - tick: [16, 3]\n", encoding="utf-8")

    result = replay_file(path, {"seed": "from-config", "board_width": 10, "board_height": 20})

    assert result.state.seed == "from-config"
    assert result.state.board.shape == (20, 10)
    assert "[replay]" in capsys.readouterr().out
