"""Simple caching helper."""
from __future__ import annotations

from pathlib import Path
from typing import Callable

from .datasets import StaticDataset, load_trajectory, save_trajectory


def maybe_cache(path: str | Path, generator_fn: Callable[[], StaticDataset]) -> StaticDataset:
    """Cache the output of ``generator_fn`` to ``path``."""

    file_path = Path(path)
    if file_path.exists():
        return load_trajectory(file_path)
    result = generator_fn()
    save_trajectory(result, file_path)
    return result


__all__ = ["maybe_cache"]
