"""Noisy sinusoid environment."""
# Emits one noisy observation of the latent signal 10 * sin(0.1 * t) per
# advance, keeping the noise-free values alongside for later plotting.
from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

from .base import DEFAULT_SEED, Env, InvalidParameter

AMPLITUDE = 10.0
FREQUENCY = 0.1
STEP_SIZE = 1.0


@dataclass(frozen=True)
class SignalSnapshot:
    current_state: float
    history: Tuple[float, ...]
    observations: Tuple[float, ...]

    @property
    def steps(self) -> int:
        return len(self.history)


def latent_signal(state: float) -> float:
    """Noise-free signal value at ``state``."""

    return AMPLITUDE * math.sin(FREQUENCY * state)


class SignalEnvironment(Env):
    """Seeded generator of noisy observations of a sinusoidal latent state.

    Parameters
    ----------
    initial_state:
        Starting value of the step counter. The first advance evaluates the
        signal at ``initial_state + 1``.
    observation_precision:
        Inverse variance of the Gaussian observation noise. Must be positive.
    seed:
        Seed of the instance generator. ``None`` falls back to
        :data:`DEFAULT_SEED`.
    """

    def __init__(
        self,
        initial_state: float = 0.0,
        observation_precision: float = 0.1,
        seed: int | None = DEFAULT_SEED,
    ) -> None:
        try:
            initial_state = float(initial_state)
            observation_precision = float(observation_precision)
        except (TypeError, ValueError) as exc:
            raise InvalidParameter(f"initial_state and observation_precision must be numbers: {exc}") from exc
        if not np.isfinite(initial_state):
            raise InvalidParameter(f"initial_state must be finite, got {initial_state}")
        if not np.isfinite(observation_precision) or observation_precision <= 0.0:
            raise InvalidParameter(
                f"observation_precision must be a positive finite number, got {observation_precision}"
            )
        self._lock = threading.Lock()
        self._initial_state = initial_state
        self._precision = observation_precision
        self._state = initial_state
        self._history: list[float] = []
        self._observations: list[float] = []
        super().__init__(seed=seed)

    def advance(self) -> float:
        with self._lock:
            self._state += STEP_SIZE
            latent = latent_signal(self._state)
            sample = float(self.rng.normal(latent, self.noise_std))
            self._history.append(latent)
            self._observations.append(sample)
            return sample

    def advance_many(self, n: int) -> Tuple[float, ...]:
        """Advance ``n`` times and return the drawn samples in order."""

        if int(n) < 0:
            raise InvalidParameter(f"n must be non-negative, got {n}")
        return tuple(self.advance() for _ in range(int(n)))

    @property
    def initial_state(self) -> float:
        return self._initial_state

    @property
    def observation_precision(self) -> float:
        return self._precision

    @property
    def noise_std(self) -> float:
        return 1.0 / math.sqrt(self._precision)

    @property
    def current_state(self) -> float:
        return self._state

    @property
    def steps(self) -> int:
        return len(self._history)

    @property
    def history(self) -> Tuple[float, ...]:
        with self._lock:
            return tuple(self._history)

    @property
    def observations(self) -> Tuple[float, ...]:
        with self._lock:
            return tuple(self._observations)

    def snapshot(self) -> SignalSnapshot:
        """Consistent view of state and both sequences."""

        with self._lock:
            return SignalSnapshot(
                current_state=self._state,
                history=tuple(self._history),
                observations=tuple(self._observations),
            )

    def to_frame(self) -> pd.DataFrame:
        snap = self.snapshot()
        steps = np.arange(1, snap.steps + 1)
        return pd.DataFrame(
            {
                "step": steps,
                "state": self._initial_state + steps * STEP_SIZE,
                "latent": np.asarray(snap.history, dtype=float),
                "observation": np.asarray(snap.observations, dtype=float),
            }
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(initial_state={self._initial_state}, "
            f"observation_precision={self._precision}, seed={self.current_seed})"
        )


__all__ = [
    "AMPLITUDE",
    "FREQUENCY",
    "InvalidParameter",
    "SignalEnvironment",
    "SignalSnapshot",
    "latent_signal",
]
