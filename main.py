"""
Entry point for the Blockfall engine harness.

Supports two modes:
  - soak:   Drive the engine headless for a long stretch of simulated time.
  - replay: Replay a recorded input script deterministically.

Usage:
    python main.py --mode soak
    python main.py --mode soak --duration 5m --seed 0123456789abcdef
    python main.py --mode replay --script replays/bug_1234.yaml
"""

from __future__ import annotations

import argparse
import pathlib
import sys

import yaml


def load_config(config_path: str | pathlib.Path) -> dict:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML config file.

    Returns:
        Dict of configuration key-value pairs.

    Raises:
        FileNotFoundError: If the config file does not exist.
    """
    config_path = pathlib.Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Namespace with mode, config, seed, script, duration and report_dir.
    """
    parser = argparse.ArgumentParser(
        description="Blockfall: soak-test the rules engine or replay an input script.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=["soak", "replay"],
        default="soak",
        help="Run mode: 'soak' (headless endurance run), 'replay' (replay a script).",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/engine.yaml",
        help="Path to the YAML configuration file.",
    )
    parser.add_argument(
        "--seed",
        type=str,
        default=None,
        help="Randomizer seed (overrides the config).",
    )
    parser.add_argument(
        "--script",
        type=str,
        default=None,
        help="Path to a replay script (required for 'replay' mode).",
    )
    parser.add_argument(
        "--duration",
        type=str,
        default=None,
        help="Simulated soak duration, e.g. 500ms, 30s, 20m (overrides the config).",
    )
    parser.add_argument(
        "--report-dir",
        type=str,
        default=None,
        help="Directory for soak reports (overrides the config).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point: parse args, load config, and dispatch to the selected mode."""
    args = parse_args(argv)
    config = load_config(args.config)

    if args.seed is not None:
        config["seed"] = args.seed
    if args.duration is not None:
        config["soak_duration"] = args.duration
    if args.report_dir is not None:
        config["report_dir"] = args.report_dir

    if args.mode == "soak":
        from blockfall.soak import run_soak
        try:
            report = run_soak(config)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        if report["summary"]["failure_reason"] is not None:
            sys.exit(1)

    elif args.mode == "replay":
        if args.script is None:
            print("Error: --script is required for 'replay' mode.", file=sys.stderr)
            sys.exit(1)
        from blockfall.replay import replay_file
        try:
            replay_file(args.script, config)
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

    else:
        print(f"Unknown mode: {args.mode}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
