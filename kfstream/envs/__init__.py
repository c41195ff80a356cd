"""Environment registry."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Type

from kfstream.envs.base import DEFAULT_SEED, Env
from kfstream.envs.feed import LiveFeed, Subscription
from kfstream.envs.signal import InvalidParameter, SignalEnvironment, SignalSnapshot

ENV_REGISTRY: Dict[str, Type[Env]] = {
    "sinusoid": SignalEnvironment,
}


def build_env(config: Mapping[str, Any]) -> Env:
    name = config.get("name")
    if name not in ENV_REGISTRY:
        raise KeyError(f"Unknown environment {name}")
    env_cls = ENV_REGISTRY[name]
    kwargs = {k: v for k, v in config.items() if k != "name"}
    return env_cls(**kwargs)


__all__ = [
    "DEFAULT_SEED",
    "ENV_REGISTRY",
    "Env",
    "InvalidParameter",
    "LiveFeed",
    "SignalEnvironment",
    "SignalSnapshot",
    "Subscription",
    "build_env",
]
