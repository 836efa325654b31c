"""Tests for the command-line entry point."""

from __future__ import annotations

import pytest

import main


def _write_config(tmp_path, body="seed: cli-seed\n"):
    path = tmp_path / "engine.yaml"
    path.write_text(body, encoding="utf-8")
    return path


def test_parse_args_defaults():
    args = main.parse_args([])
    assert args.mode == "soak"
    assert args.config == "config/engine.yaml"
    assert args.script is None


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        main.load_config(tmp_path / "missing.yaml")


def test_load_config_empty_file_is_empty_dict(tmp_path):
    assert main.load_config(_write_config(tmp_path, "")) == {}


def test_replay_without_script_exits_1(tmp_path):
    config = _write_config(tmp_path)
    with pytest.raises(SystemExit) as exc:
        main.main(["--mode", "replay", "--config", str(config)])
    assert exc.value.code == 1


def test_replay_mode_runs_script(tmp_path, capsys):
    config = _write_config(tmp_path)
    script = tmp_path / "script.yaml"
    script.write_text("steps: [start, {tick: 16}]\n", encoding="utf-8")

    main.main(["--mode", "replay", "--config", str(config), "--script", str(script)])

    assert "seed cli-seed" in capsys.readouterr().out


def test_replay_mode_reports_bad_script(tmp_path, capsys):
    config = _write_config(tmp_path)
    script = tmp_path / "script.yaml"
    script.write_text("steps: [start, warp]\n", encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        main.main(["--mode", "replay", "--config", str(config), "--script", str(script)])
    assert exc.value.code == 1
    assert "Step 1" in capsys.readouterr().err


def test_soak_mode_overrides_config(tmp_path):
    config = _write_config(tmp_path)
    main.main([
        "--config", str(config),
        "--duration", "1s",
        "--seed", "override",
        "--report-dir", str(tmp_path / "reports"),
    ])
    reports = list((tmp_path / "reports").glob("soak_*.json"))
    assert len(reports) == 1


def test_soak_mode_rejects_malformed_duration(tmp_path, capsys):
    config = _write_config(tmp_path)
    with pytest.raises(SystemExit) as exc:
        main.main(["--config", str(config), "--duration", "20x", "--report-dir", str(tmp_path / "r")])
    assert exc.value.code == 1
    assert "20x" in capsys.readouterr().err
