"""Static datasets generated from an environment."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from kfstream.envs.signal import SignalEnvironment
from kfstream.utils.serialization import load_dict, save_dict

from .records import DEFAULT_OBSERVED_NAME, make_records

TRAJECTORY_COLUMNS = ("latent", "observation")


@dataclass
class StaticDataset:
    """Latent values and their noisy observations, parallel-indexed."""

    latent: np.ndarray
    observations: np.ndarray
    name: str = DEFAULT_OBSERVED_NAME
    meta: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.latent = np.asarray(self.latent, dtype=float)
        self.observations = np.asarray(self.observations, dtype=float)
        if self.latent.ndim != 1 or self.observations.ndim != 1:
            raise ValueError("latent and observations must be 1D")
        if self.latent.shape != self.observations.shape:
            raise ValueError(
                f"latent and observations differ in length: {self.latent.size} != {self.observations.size}"
            )

    def __len__(self) -> int:
        return int(self.observations.size)

    @property
    def records(self) -> List[Dict[str, float]]:
        return make_records(self.observations, self.name)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"latent": self.latent, "observation": self.observations})


def generate_static_dataset(
    env: SignalEnvironment,
    n: int,
    name: str = DEFAULT_OBSERVED_NAME,
) -> StaticDataset:
    """Advance ``env`` ``n`` times and package the new values."""

    start = env.steps
    env.advance_many(n)
    snap = env.snapshot()
    return StaticDataset(
        latent=np.asarray(snap.history[start:], dtype=float),
        observations=np.asarray(snap.observations[start:], dtype=float),
        name=name,
        meta={
            "initial_state": env.initial_state,
            "observation_precision": env.observation_precision,
            "seed": env.current_seed,
            "first_step": start + 1,
        },
    )


def dataset_from_env(env: SignalEnvironment, name: str = DEFAULT_OBSERVED_NAME) -> StaticDataset:
    """Everything ``env`` has produced so far."""

    snap = env.snapshot()
    return StaticDataset(
        latent=np.asarray(snap.history, dtype=float),
        observations=np.asarray(snap.observations, dtype=float),
        name=name,
        meta={
            "initial_state": env.initial_state,
            "observation_precision": env.observation_precision,
            "seed": env.current_seed,
            "first_step": 1,
        },
    )


def save_trajectory(data: StaticDataset | SignalEnvironment, path: str | Path) -> Path:
    """Persist a trajectory as CSV or JSON depending on the file suffix."""

    dataset = dataset_from_env(data) if isinstance(data, SignalEnvironment) else data
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if file_path.suffix == ".csv":
        dataset.to_frame().to_csv(file_path, index=False)
    elif file_path.suffix == ".json":
        save_dict(
            {
                "name": dataset.name,
                "latent": dataset.latent,
                "observations": dataset.observations,
                "meta": dataset.meta,
            },
            file_path,
        )
    else:
        raise ValueError(f"Unsupported trajectory format '{file_path.suffix}'")
    return file_path


def load_trajectory(path: str | Path, name: str = DEFAULT_OBSERVED_NAME) -> StaticDataset:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Trajectory not found: {file_path}")
    if file_path.suffix == ".csv":
        frame = pd.read_csv(file_path, float_precision="round_trip")
        missing = [col for col in TRAJECTORY_COLUMNS if col not in frame.columns]
        if missing:
            raise ValueError(f"Trajectory CSV is missing columns {missing}")
        return StaticDataset(
            latent=frame["latent"].to_numpy(dtype=float),
            observations=frame["observation"].to_numpy(dtype=float),
            name=name,
        )
    if file_path.suffix == ".json":
        payload = load_dict(file_path)
        return StaticDataset(
            latent=payload["latent"],
            observations=payload["observations"],
            name=payload.get("name", name),
            meta=payload.get("meta", {}),
        )
    raise ValueError(f"Unsupported trajectory format '{file_path.suffix}'")


__all__ = [
    "StaticDataset",
    "dataset_from_env",
    "generate_static_dataset",
    "load_trajectory",
    "save_trajectory",
]
