"""Reproducibility helpers for scripts."""
from __future__ import annotations

import random
from typing import Any, Mapping, Optional

import numpy as np


def set_seed(seed: int) -> None:
    """Seed the Python and NumPy global RNGs.

    Environments own their generators and are unaffected; this only pins
    incidental randomness in scripts and plotting.
    """

    random.seed(seed)
    np.random.seed(seed)


def seed_from_config(config: Mapping[str, Any], key: str = "seed") -> Optional[int]:
    """Seed from configuration dictionaries if possible."""

    value = config.get(key)
    if isinstance(value, int) and not isinstance(value, bool):
        set_seed(value)
        return value
    return None


__all__ = ["seed_from_config", "set_seed"]
