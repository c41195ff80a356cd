"""Serialization helpers for run artifacts."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import numpy as np
import yaml


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _to_builtin(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _to_builtin(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_builtin(v) for v in value]
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, Path):
        return str(value)
    return value


def save_dict(data: Mapping[str, Any], path: str | Path) -> None:
    """Write ``data`` as indented JSON, converting numpy values on the way."""

    file_path = Path(path)
    _ensure_parent(file_path)
    file_path.write_text(json.dumps(_to_builtin(data), indent=2, sort_keys=True), encoding="utf-8")


def load_dict(path: str | Path) -> Any:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    return json.loads(file_path.read_text(encoding="utf-8"))


def write_yaml(data: Any, path: str | Path) -> None:
    file_path = Path(path)
    _ensure_parent(file_path)
    with file_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(_to_builtin(data), handle, sort_keys=False)


__all__ = ["load_dict", "save_dict", "write_yaml"]
