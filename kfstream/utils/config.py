"""Configuration loading utilities."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Mapping

import yaml


class ConfigNode(dict):
    """A dict wrapper that exposes dot-notation access."""

    def __getattr__(self, key: str) -> Any:
        try:
            value = self[key]
        except KeyError as exc:
            raise AttributeError(key) from exc
        return _wrap_value(value)

    def __setattr__(self, key: str, value: Any) -> None:
        if key.startswith("_"):
            return super().__setattr__(key, value)
        self[key] = value

    def __getitem__(self, key: str) -> Any:  # type: ignore[override]
        value = super().__getitem__(key)
        return _wrap_value(value)

    def get(self, key: str, default: Any = None) -> Any:  # type: ignore[override]
        return self[key] if key in self else default

    def to_dict(self) -> Dict[str, Any]:
        return _unwrap_value(self)


def _wrap_value(value: Any) -> Any:
    if isinstance(value, dict) and not isinstance(value, ConfigNode):
        return ConfigNode(value)
    if isinstance(value, list):
        return [
            _wrap_value(item) if isinstance(item, (dict, list)) else item
            for item in value
        ]
    return value


def _unwrap_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _unwrap_value(dict.__getitem__(value, k)) for k in value}
    if isinstance(value, list):
        return [_unwrap_value(v) for v in value]
    return value


def to_plain_dict(config: Any) -> Any:
    """Convert a possibly wrapped config into built-in containers."""

    return _unwrap_value(config)


def _read_yaml(path: Path) -> Dict[str, Any]:
    parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise TypeError(f"Config file {path} must contain a mapping at the top level")
    return parsed


def _merge_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = _merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def _resolve_repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _candidate_group_paths(repo_root: Path, group: str, name: str) -> Iterable[Path]:
    clean_name = name if Path(name).suffix else f"{name}.yaml"
    yield repo_root / "configs" / group / clean_name
    yield repo_root / "configs" / f"{group}s" / clean_name


def _load_defaults(repo_root: Path, defaults: Iterable[Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    for entry in defaults:
        if isinstance(entry, str):
            if entry == "_self_":
                continue
            relative = Path(entry) if Path(entry).suffix else Path(f"{entry}.yaml")
            candidate = repo_root / "configs" / relative
            if not candidate.exists():
                raise FileNotFoundError(f"Unable to resolve default entry '{entry}'")
            block = _read_yaml(candidate)
        elif isinstance(entry, dict) and len(entry) == 1:
            (group, name), = entry.items()
            if not isinstance(name, str):
                raise TypeError("Default entries must map to string values")
            for candidate in _candidate_group_paths(repo_root, group, name):
                if candidate.exists():
                    block = {group: _read_yaml(candidate)}
                    break
            else:
                raise FileNotFoundError(f"Unable to resolve default '{group}: {name}'")
        else:
            raise TypeError("Defaults must be strings or single-entry dicts")
        merged = _merge_dicts(merged, block)
    return merged


def load_config(
    path: str | Path,
    overrides: Mapping[str, Any] | None = None,
) -> ConfigNode:
    """Load an experiment configuration.

    ``configs/base.yaml`` is merged first, then the blocks listed under the
    experiment's ``defaults`` key, then the experiment file itself and
    finally ``overrides``.

    Parameters
    ----------
    path:
        Experiment file, absolute or relative to the repository root.
    overrides:
        Nested mapping applied last, typically built from CLI flags.
    """

    repo_root = _resolve_repo_root()
    experiment_path = (repo_root / path).resolve()
    if not experiment_path.exists():
        raise FileNotFoundError(f"Experiment config {experiment_path} not found")

    base_path = repo_root / "configs" / "base.yaml"
    if not base_path.exists():
        raise FileNotFoundError("Base configuration is missing")

    base_config = _read_yaml(base_path)
    experiment_config = _read_yaml(experiment_path)
    defaults = experiment_config.pop("defaults", [])

    merged = _merge_dicts(base_config, _load_defaults(repo_root, defaults))
    merged = _merge_dicts(merged, experiment_config)
    if overrides:
        merged = _merge_dicts(merged, _unwrap_value(dict(overrides)))

    merged.setdefault("experiment", {})
    merged["experiment"].setdefault("name", experiment_path.stem)
    return ConfigNode(merged)


__all__ = ["ConfigNode", "load_config", "to_plain_dict"]
