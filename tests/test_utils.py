from __future__ import annotations

import json
import random

import numpy as np
import yaml

from kfstream.utils.logging import RunLogger, make_logger
from kfstream.utils.seed import seed_from_config, set_seed
from kfstream.utils.serialization import load_dict, save_dict, write_yaml


def test_set_seed_repeatability() -> None:
    set_seed(5)
    values_one = [random.random() for _ in range(3)] + list(np.random.rand(3))
    set_seed(5)
    values_two = [random.random() for _ in range(3)] + list(np.random.rand(3))
    assert values_one == values_two


def test_seed_from_config() -> None:
    assert seed_from_config({"seed": 4}) == 4
    assert seed_from_config({"seed": "4"}) is None
    assert seed_from_config({}) is None


def test_logger_writes_files(tmp_path) -> None:  # type: ignore[no-untyped-def]
    logger = make_logger("logger test", {"seed": 1, "env": {"name": "sinusoid"}}, base_dir=tmp_path)
    assert isinstance(logger, RunLogger)
    logger.info("hello world")
    logger.log({"step": 1, "value": np.float64(0.5)})
    logger.close()
    logger.close()
    assert logger.run_dir.name.endswith("logger_test")
    contents = (logger.run_dir / "logs.txt").read_text(encoding="utf-8")
    assert "INFO" in contents and "hello world" in contents
    lines = (logger.run_dir / "metrics.jsonl").read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[0])
    assert entry["value"] == 0.5
    assert "timestamp" in entry
    resolved = yaml.safe_load((logger.run_dir / "config_resolved.yaml").read_text(encoding="utf-8"))
    assert resolved["env"]["name"] == "sinusoid"


def test_save_dict_handles_numpy(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = tmp_path / "nested" / "out.json"
    save_dict({"values": np.arange(3), "scalar": np.float32(1.5), "items": (1, 2)}, path)
    assert load_dict(path) == {"values": [0, 1, 2], "scalar": 1.5, "items": [1, 2]}


def test_write_yaml(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = tmp_path / "cfg.yaml"
    write_yaml({"feed": {"steps": 3, "values": np.array([1.0, 2.0])}}, path)
    assert yaml.safe_load(path.read_text(encoding="utf-8")) == {"feed": {"steps": 3, "values": [1.0, 2.0]}}
