"""Generate a signal trajectory and optionally fit it with an external engine."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from kfstream.runner import run_experiment
from kfstream.utils.config import load_config


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        type=str,
        default="configs/experiments/static.yaml",
        help="Path to experiment config",
    )
    parser.add_argument("--steps", type=int, default=None, help="Override the number of observations")
    parser.add_argument("--seed", type=int, default=None, help="Override the environment seed")
    parser.add_argument("--precision", type=float, default=None, help="Override the observation precision")
    parser.add_argument(
        "--engine",
        type=str,
        default=None,
        help="Inference engine as 'module:attribute'; omit to only generate data",
    )
    parser.add_argument("--paced", action="store_true", help="Replay observations on a real-time timer")
    parser.add_argument("--no-plots", action="store_true", help="Skip writing figures")
    parser.add_argument("--output-dir", type=str, default=None, help="Override the run output directory")
    return parser.parse_args()


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.steps is not None:
        overrides.setdefault("feed", {})["steps"] = args.steps
    if args.paced:
        overrides.setdefault("feed", {})["paced"] = True
    if args.seed is not None:
        overrides["seed"] = args.seed
        overrides.setdefault("env", {})["seed"] = args.seed
    if args.precision is not None:
        overrides.setdefault("env", {})["observation_precision"] = args.precision
    if args.engine is not None:
        overrides["engine"] = {"path": args.engine}
    if args.no_plots:
        overrides["plotting"] = {"enabled": False}
    if args.output_dir is not None:
        overrides["logging"] = {"output_dir": args.output_dir}
    return overrides


def main() -> None:
    args = parse_args()
    cfg = load_config(args.config, overrides=build_overrides(args))
    metrics = run_experiment(cfg)
    print(json.dumps(metrics, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
