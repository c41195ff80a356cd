"""Print a paced live feed of noisy sinusoid observations to stdout."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from kfstream.envs import LiveFeed, SignalEnvironment
from kfstream.envs.feed import DEFAULT_INTERVAL


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--steps", type=int, default=100, help="Number of observations to emit")
    parser.add_argument("--interval", type=float, default=DEFAULT_INTERVAL, help="Seconds between observations")
    parser.add_argument("--precision", type=float, default=0.1, help="Observation precision")
    parser.add_argument("--seed", type=int, default=123, help="Environment seed")
    parser.add_argument("--initial-state", type=float, default=0.0, help="Initial state")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    env = SignalEnvironment(args.initial_state, args.precision, seed=args.seed)
    feed = LiveFeed(env, interval=args.interval, max_steps=args.steps)

    def _print(record) -> None:  # type: ignore[no-untyped-def]
        latent = env.history[-1]
        print(f"step={env.steps:05d} latent={latent:+.4f} y={record['y']:+.4f}", flush=True)

    feed.subscribe(_print)
    feed.start()
    try:
        feed.join()
    except KeyboardInterrupt:
        print("Interrupted, stopping feed.")
    finally:
        feed.stop()


if __name__ == "__main__":
    main()
