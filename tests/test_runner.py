from __future__ import annotations

import pandas as pd
import pytest

from kfstream.data import load_trajectory
from kfstream.envs import SignalEnvironment
from kfstream.runner import model_from_config, run_experiment, signal_metrics
from kfstream.utils.config import load_config
from tests.fakes import EchoEngine


def _config(tmp_path, path: str = "configs/experiments/tiny_test.yaml", **sections):  # type: ignore[no-untyped-def]
    overrides = {"logging": {"output_dir": str(tmp_path), "echo": False}}
    overrides.update(sections)
    return load_config(path, overrides=overrides)


def _run_dir(tmp_path):  # type: ignore[no-untyped-def]
    (run_dir,) = [p for p in tmp_path.iterdir() if p.is_dir()]
    return run_dir


def test_run_without_engine_writes_trajectory(tmp_path) -> None:  # type: ignore[no-untyped-def]
    metrics = run_experiment(_config(tmp_path))
    assert metrics["steps"] == 10
    run_dir = _run_dir(tmp_path)
    dataset = load_trajectory(run_dir / "trajectory.csv")
    expected = SignalEnvironment(0.0, 0.5, seed=123).advance_many(10)
    assert dataset.observations.tolist() == list(expected)
    assert (run_dir / "metrics.json").exists()
    assert (run_dir / "config_resolved.yaml").exists()
    assert not (run_dir / "posteriors.csv").exists()


def test_paced_run_matches_static_values(tmp_path) -> None:  # type: ignore[no-untyped-def]
    static = run_experiment(_config(tmp_path / "static"))
    paced = run_experiment(_config(tmp_path / "paced", feed={"paced": True, "interval": 0.0}))
    assert paced["steps"] == static["steps"] == 10
    assert paced["noise_mean"] == pytest.approx(static["noise_mean"])


def test_static_run_with_engine(tmp_path) -> None:  # type: ignore[no-untyped-def]
    engine = EchoEngine()
    cfg = _config(tmp_path, plotting={"enabled": True, "dpi": 50})
    metrics = run_experiment(cfg, engine=engine)
    assert engine.calls[0]["n"] == 10
    assert metrics["x/rmse"] > 0.0
    run_dir = _run_dir(tmp_path)
    frame = pd.read_csv(run_dir / "posteriors.csv")
    assert list(frame.columns) == ["x_mean", "x_var"]
    assert len(frame) == 10
    assert (run_dir / "signal.png").exists()
    assert (run_dir / "posterior.png").exists()


def test_streaming_run_with_engine(tmp_path) -> None:  # type: ignore[no-untyped-def]
    engine = EchoEngine()
    cfg = _config(
        tmp_path,
        path="configs/experiments/live.yaml",
        feed={"steps": 8, "interval": 0.0},
        plotting={"enabled": False},
    )
    metrics = run_experiment(cfg, engine=engine)
    assert metrics["steps"] == 8
    assert metrics["free_energy"] == 8.0
    assert len(engine.streams[0].pushed) == 8
    assert engine.streams[0].stopped == 1


def test_engine_loaded_from_config(tmp_path) -> None:  # type: ignore[no-untyped-def]
    cfg = _config(tmp_path, engine={"path": "tests.fakes:EchoEngine"})
    metrics = run_experiment(cfg)
    assert "x/rmse" in metrics


def test_model_from_config() -> None:
    cfg = load_config("configs/experiments/static.yaml")
    model, constraints = model_from_config(cfg.model)
    assert model.observed == ("y",)
    assert model.hyperparameters["tau_rate"] == 1.0
    assert constraints.factors[1] == ("tau",)


def test_signal_metrics_empty() -> None:
    from kfstream.data import dataset_from_env

    assert signal_metrics(dataset_from_env(SignalEnvironment())) == {"steps": 0}
