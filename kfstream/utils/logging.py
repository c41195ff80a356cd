"""Run logging utilities."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, TextIO

from .config import to_plain_dict
from .serialization import _to_builtin, write_yaml


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunLogger:
    """Per-run directory with a text log, a metrics stream and the config."""

    def __init__(
        self,
        experiment_name: str,
        cfg: Mapping[str, Any] | Any = None,
        base_dir: str | Path = "runs",
        echo: bool = False,
    ) -> None:
        sanitized = experiment_name.replace(" ", "_") or "experiment"
        timestamp = _utcnow().strftime("%Y%m%d_%H%M%S_%f")
        self.run_dir = Path(base_dir) / f"{timestamp}_{sanitized}"
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.echo = echo
        self._log_handle: TextIO = (self.run_dir / "logs.txt").open("a", encoding="utf-8")
        self._metrics_handle: TextIO = (self.run_dir / "metrics.jsonl").open("a", encoding="utf-8")
        if cfg is not None:
            write_yaml(to_plain_dict(cfg), self.run_dir / "config_resolved.yaml")

    def _write_message(self, level: str, message: str) -> None:
        formatted = f"[{_utcnow().isoformat()}] {level:<7} {message}\n"
        self._log_handle.write(formatted)
        self._log_handle.flush()
        if self.echo:
            print(formatted, end="")

    def info(self, message: str) -> None:
        self._write_message("INFO", message)

    def warning(self, message: str) -> None:
        self._write_message("WARNING", message)

    def error(self, message: str) -> None:
        self._write_message("ERROR", message)

    def log(self, metrics: Mapping[str, Any]) -> None:
        entry = _to_builtin(dict(metrics))
        entry.setdefault("timestamp", _utcnow().isoformat())
        self._metrics_handle.write(json.dumps(entry, sort_keys=True) + "\n")
        self._metrics_handle.flush()

    def close(self) -> None:
        if not self._log_handle.closed:
            self._log_handle.close()
        if not self._metrics_handle.closed:
            self._metrics_handle.close()

    def __enter__(self) -> "RunLogger":
        return self

    def __exit__(self, *exc_info) -> None:  # type: ignore[no-untyped-def]
        self.close()


def make_logger(
    experiment_name: str,
    cfg: Mapping[str, Any] | Any = None,
    base_dir: str | Path = "runs",
    echo: bool = False,
) -> RunLogger:
    return RunLogger(experiment_name, cfg, base_dir=base_dir, echo=echo)


__all__ = ["RunLogger", "make_logger"]
