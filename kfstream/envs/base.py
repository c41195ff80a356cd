"""Base environment interface."""
from __future__ import annotations

import numpy as np

DEFAULT_SEED = 123


class InvalidParameter(ValueError):
    """Raised when an environment is configured with unusable parameters."""


def _check_seed(seed: int) -> int:
    try:
        value = int(seed)
    except (TypeError, ValueError) as exc:
        raise InvalidParameter(f"seed must be a non-negative integer, got {seed!r}") from exc
    if value != seed or value < 0:
        raise InvalidParameter(f"seed must be a non-negative integer, got {seed!r}")
    return value


class Env:
    """Minimal deterministic environment API.

    Every instance owns its generator so that two environments built with the
    same seed produce the same draws regardless of how their calls interleave.
    The generator is fixed at construction; a different seed means a new
    environment.
    """

    def __init__(self, seed: int | None = DEFAULT_SEED) -> None:
        self._seed = _check_seed(DEFAULT_SEED if seed is None else seed)
        self.rng = np.random.default_rng(self._seed)

    def advance(self) -> float:  # pragma: no cover - interface only
        """Advance environment by one step. Implemented by subclasses."""
        raise NotImplementedError

    def seed(self, seed: int) -> None:
        """Environments are never re-seeded in place."""

        raise RuntimeError(
            f"{type(self).__name__} was seeded with {self._seed} at construction; "
            "build a new environment to use another seed"
        )

    @property
    def current_seed(self) -> int:
        return self._seed


__all__ = ["DEFAULT_SEED", "Env", "InvalidParameter"]
