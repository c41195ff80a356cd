"""Config-driven demonstration runs.

Encapsulates one run: build the environment, produce observations either as
a static batch or as a paced live feed, optionally hand them to an external
engine, then write the trajectory, posterior trace, figures and metrics into
the run directory.
"""
from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from kfstream.data.datasets import StaticDataset, dataset_from_env, generate_static_dataset, save_trajectory
from kfstream.engine import (
    AutoUpdate,
    InferenceEngine,
    PosteriorTrace,
    StreamUpdate,
    kalman_autoupdates,
    load_engine,
    run_static,
    run_streaming,
)
from kfstream.envs import SignalEnvironment, build_env
from kfstream.envs.feed import LiveFeed, Record
from kfstream.models.library import build_model
from kfstream.models.spec import ConstraintsSpec, ModelSpec
from kfstream.utils.config import ConfigNode, to_plain_dict
from kfstream.utils.logging import RunLogger, make_logger
from kfstream.utils.seed import seed_from_config
from kfstream.utils.serialization import save_dict

AUTOUPDATES = {"kalman_random_walk": kalman_autoupdates}
RESERVED_MODEL_KEYS = {"name", "returns", "free_energy", "hyperparameters"}


def model_from_config(model_cfg: Mapping[str, Any]) -> Tuple[ModelSpec, ConstraintsSpec]:
    cfg = to_plain_dict(model_cfg)
    kwargs = {k: v for k, v in cfg.items() if k not in RESERVED_MODEL_KEYS}
    kwargs.update(cfg.get("hyperparameters") or {})
    return build_model(cfg["name"], **kwargs)


def engine_from_config(engine_cfg: Mapping[str, Any] | None) -> Optional[InferenceEngine]:
    cfg = to_plain_dict(engine_cfg or {})
    path = cfg.get("path")
    if not path:
        return None
    return load_engine(path, **(cfg.get("kwargs") or {}))


def signal_metrics(dataset: StaticDataset) -> Dict[str, float]:
    """Summary statistics of the observation noise actually drawn."""

    if len(dataset) == 0:
        return {"steps": 0}
    residuals = dataset.observations - dataset.latent
    return {
        "steps": len(dataset),
        "latent_min": float(dataset.latent.min()),
        "latent_max": float(dataset.latent.max()),
        "noise_mean": float(residuals.mean()),
        "noise_std": float(residuals.std(ddof=0)),
    }


def posterior_metrics(trace: PosteriorTrace, dataset: StaticDataset, variable: str) -> Dict[str, float]:
    """Root mean squared error of the posterior mean against the latent signal."""

    means = trace.means(variable)
    if means.size == 0:
        return {}
    latent = dataset.latent[: means.size]
    rmse = float(np.sqrt(np.mean((means - latent) ** 2)))
    return {f"{variable}/rmse": rmse, **trace.summary()}


def _save_figures(
    run_dir: Path,
    dataset: StaticDataset,
    trace: Optional[PosteriorTrace],
    dpi: int,
) -> None:
    import matplotlib.pyplot as plt

    from kfstream.plotting import plot_free_energy, plot_posterior, plot_signal, save_figure

    fig, ax = plt.subplots(figsize=(8, 4))
    plot_signal(dataset.latent, dataset.observations, ax=ax)
    save_figure(fig, run_dir / "signal.png", dpi=dpi)
    if trace is None or not trace.variables:
        return
    fig, ax = plt.subplots(figsize=(8, 4))
    plot_posterior(trace, trace.variables[0], dataset.latent, dataset.observations, ax=ax)
    save_figure(fig, run_dir / "posterior.png", dpi=dpi)
    if trace.free_energy.size:
        fig, ax = plt.subplots(figsize=(6, 3))
        plot_free_energy(trace, ax=ax)
        save_figure(fig, run_dir / "free_energy.png", dpi=dpi)


def _paced_replay(feed: LiveFeed, steps: int, logger: RunLogger, log_every: int) -> None:
    def _log_record(record: Record) -> None:
        step = feed.pushed + 1
        if log_every and step % log_every == 0:
            logger.info(f"step={step} {feed.name}={record[feed.name]:.4f}")

    feed.max_steps = feed.pushed + steps
    with feed.subscribe(_log_record):
        feed.start()
        try:
            feed.join()
        finally:
            feed.stop()


def run_experiment(
    cfg: ConfigNode,
    engine: Optional[InferenceEngine] = None,
    logger: Optional[RunLogger] = None,
) -> Dict[str, Any]:
    """Execute one run described by ``cfg`` and return its metrics."""

    owns_logger = logger is None
    if logger is None:
        logger = make_logger(
            cfg.experiment.name,
            cfg,
            base_dir=cfg.logging.output_dir,
            echo=bool(cfg.logging.get("echo", False)),
        )
    try:
        seed_from_config(cfg)
        env = build_env(cfg.env)
        if not isinstance(env, SignalEnvironment):
            raise TypeError(f"Environment '{cfg.env.name}' does not produce a signal trajectory")
        if engine is None:
            engine = engine_from_config(cfg.get("engine"))

        model_cfg = cfg.get("model") or {}
        observed = model_cfg.get("observed", "y")
        returns = list(model_cfg.get("returns", ["x"]))
        free_energy = bool(model_cfg.get("free_energy", False))
        steps = int(cfg.feed.steps)
        paced = bool(cfg.feed.get("paced", False))
        log_every = int(cfg.logging.get("log_every", 0) or 0)
        logger.info(f"env={env!r} steps={steps} paced={paced} engine={type(engine).__name__ if engine else None}")

        start_time = time.time()
        trace: Optional[PosteriorTrace] = None
        if engine is None:
            if paced:
                feed = LiveFeed(env, interval=float(cfg.feed.interval), name=observed)
                _paced_replay(feed, steps, logger, log_every)
                dataset = dataset_from_env(env, name=observed)
            else:
                dataset = generate_static_dataset(env, steps, name=observed)
        else:
            model, constraints = model_from_config(model_cfg)
            if paced:
                feed = LiveFeed(env, interval=float(cfg.feed.interval), name=observed)

                def _log_update(update: StreamUpdate) -> None:
                    step = feed.pushed + 1
                    if log_every and step % log_every == 0:
                        moments = " ".join(
                            f"{name}={q.mean():.4f}+/-{np.sqrt(max(q.var(), 0.0)):.4f}"
                            for name, q in update.posteriors.items()
                        )
                        logger.info(f"step={step} {moments}")

                trace = run_streaming(
                    engine,
                    model,
                    constraints,
                    feed,
                    AUTOUPDATES.get(model.name, AutoUpdate)(),
                    steps,
                    returns=returns,
                    free_energy=free_energy,
                    paced=True,
                    on_update=_log_update,
                )
                dataset = dataset_from_env(env, name=observed)
            else:
                dataset = generate_static_dataset(env, steps, name=observed)
                trace = run_static(engine, model, constraints, dataset, returns=returns, free_energy=free_energy)
        duration = time.time() - start_time

        run_dir = logger.run_dir
        save_trajectory(dataset, run_dir / "trajectory.csv")
        metrics: Dict[str, Any] = {"duration": duration, **signal_metrics(dataset)}
        if trace is not None:
            trace.to_frame().to_csv(run_dir / "posteriors.csv", index=False)
            if returns:
                metrics.update(posterior_metrics(trace, dataset, returns[0]))
        if cfg.plotting.get("enabled", False):
            _save_figures(run_dir, dataset, trace, dpi=int(cfg.plotting.get("dpi", 150)))
        logger.log(metrics)
        save_dict({"metrics": metrics}, run_dir / "metrics.json")
        logger.info(f"Run finished in {duration:.2f}s: {len(dataset)} observations")
        return metrics
    except Exception as exc:
        logger.error(f"Run failed: {exc}")
        raise
    finally:
        if owns_logger:
            logger.close()


__all__ = [
    "engine_from_config",
    "model_from_config",
    "posterior_metrics",
    "run_experiment",
    "signal_metrics",
]
