"""Seeded signal environment and glue for streaming Kalman-filter demos."""
from kfstream.envs import InvalidParameter, LiveFeed, SignalEnvironment, build_env

__version__ = "0.1.0"

__all__ = ["InvalidParameter", "LiveFeed", "SignalEnvironment", "build_env", "__version__"]
