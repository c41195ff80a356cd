"""Boundary to the external message-passing inference engine.

The engine itself lives outside this package. This module fixes the calls
made into it (:class:`InferenceEngine`), the objects received back
(:class:`Posterior`, :class:`InferenceResult`, :class:`StreamUpdate`) and
drives one static or streaming demonstration end to end, collecting what
the engine reports in a :class:`PosteriorTrace`.
"""
from __future__ import annotations

import importlib
import logging
import threading
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

import numpy as np
import pandas as pd

from kfstream.data.datasets import StaticDataset
from kfstream.envs.feed import LiveFeed, Record, Subscription
from kfstream.models.spec import ConstraintsSpec, InvalidModel, ModelSpec

logger = logging.getLogger(__name__)


class EngineLoadError(ImportError):
    """Raised when an engine import path cannot be resolved."""


@runtime_checkable
class Posterior(Protocol):
    def mean(self) -> float: ...

    def var(self) -> float: ...


@runtime_checkable
class GammaPosterior(Posterior, Protocol):
    def shape(self) -> float: ...

    def rate(self) -> float: ...


@dataclass(frozen=True)
class InferenceResult:
    """Batch answer: one posterior per observation for each requested name."""

    posteriors: Mapping[str, Sequence[Posterior]]
    free_energy: Optional[Sequence[float]] = None


@dataclass(frozen=True)
class StreamUpdate:
    """Posteriors after one streamed observation."""

    posteriors: Mapping[str, Posterior]
    free_energy: Optional[float] = None


class PosteriorStream(Protocol):
    def push(self, record: Record) -> None: ...

    def subscribe(self, callback: Callable[[StreamUpdate], None]) -> Subscription: ...

    def stop(self) -> None: ...


class InferenceEngine(Protocol):
    def infer(
        self,
        model: ModelSpec,
        constraints: ConstraintsSpec,
        data: Sequence[Record],
        returns: Sequence[str],
        free_energy: bool = False,
    ) -> InferenceResult: ...

    def stream(
        self,
        model: ModelSpec,
        constraints: ConstraintsSpec,
        autoupdates: "AutoUpdate",
        returns: Sequence[str],
        free_energy: bool = False,
    ) -> PosteriorStream: ...


UpdateRule = Callable[[Mapping[str, Posterior]], float]


class AutoUpdate:
    """Rewrites prior hyperparameters from the previous step's posteriors."""

    def __init__(self, rules: Mapping[str, UpdateRule] | None = None) -> None:
        self.rules: Dict[str, UpdateRule] = dict(rules or {})

    def __or__(self, other: "AutoUpdate") -> "AutoUpdate":
        overlap = sorted(set(self.rules) & set(other.rules))
        if overlap:
            raise ValueError(f"Autoupdate rules overlap on {overlap}")
        return AutoUpdate({**self.rules, **other.rules})

    @property
    def targets(self) -> List[str]:
        return list(self.rules)

    def validate(self, model: ModelSpec) -> None:
        unknown = sorted(set(self.rules) - set(model.hyperparameters))
        if unknown:
            raise InvalidModel(f"Autoupdate targets {unknown} are not hyperparameters of '{model.name}'")

    def apply(self, posteriors: Mapping[str, Posterior]) -> Dict[str, float]:
        updated: Dict[str, float] = {}
        for name, rule in self.rules.items():
            value = float(rule(posteriors))
            if not np.isfinite(value):
                raise ValueError(f"Autoupdate for '{name}' produced {value}")
            updated[name] = value
        return updated


def gaussian_autoupdate(variable: str, mean_param: str, var_param: str) -> AutoUpdate:
    return AutoUpdate(
        {
            mean_param: lambda q: q[variable].mean(),
            var_param: lambda q: q[variable].var(),
        }
    )


def gamma_autoupdate(variable: str, shape_param: str, rate_param: str) -> AutoUpdate:
    return AutoUpdate(
        {
            shape_param: lambda q: q[variable].shape(),  # type: ignore[attr-defined]
            rate_param: lambda q: q[variable].rate(),  # type: ignore[attr-defined]
        }
    )


def kalman_autoupdates() -> AutoUpdate:
    """Carry q(x) and q(tau) forward as the next step's priors."""

    return gaussian_autoupdate("x", "x_prev_mean", "x_prev_var") | gamma_autoupdate(
        "tau", "tau_shape", "tau_rate"
    )


class PosteriorTrace:
    """Per-step posterior moments and free energy, in arrival order."""

    def __init__(self, variables: Iterable[str]) -> None:
        self.variables = list(variables)
        self._means: Dict[str, List[float]] = {name: [] for name in self.variables}
        self._vars: Dict[str, List[float]] = {name: [] for name in self.variables}
        self._free_energy: List[float] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._means[self.variables[0]]) if self.variables else 0

    def record(self, update: StreamUpdate) -> None:
        missing = [name for name in self.variables if name not in update.posteriors]
        if missing:
            raise KeyError(f"Update is missing posteriors for {missing}")
        with self._lock:
            for name in self.variables:
                posterior = update.posteriors[name]
                self._means[name].append(float(posterior.mean()))
                self._vars[name].append(float(posterior.var()))
            if update.free_energy is not None:
                self._free_energy.append(float(update.free_energy))

    def extend_free_energy(self, values: Iterable[float]) -> None:
        with self._lock:
            self._free_energy.extend(float(v) for v in values)

    def means(self, variable: str) -> np.ndarray:
        with self._lock:
            return np.asarray(self._means[variable], dtype=float)

    def variances(self, variable: str) -> np.ndarray:
        with self._lock:
            return np.asarray(self._vars[variable], dtype=float)

    @property
    def free_energy(self) -> np.ndarray:
        with self._lock:
            return np.asarray(self._free_energy, dtype=float)

    def summary(self) -> Dict[str, Any]:
        """Last recorded moments, handy for logging."""

        out: Dict[str, Any] = {"steps": len(self)}
        with self._lock:
            for name in self.variables:
                if self._means[name]:
                    out[f"{name}/mean"] = self._means[name][-1]
                    out[f"{name}/var"] = self._vars[name][-1]
            if self._free_energy:
                out["free_energy"] = self._free_energy[-1]
        return out

    def to_frame(self) -> pd.DataFrame:
        with self._lock:
            columns: Dict[str, List[float]] = {}
            for name in self.variables:
                columns[f"{name}_mean"] = list(self._means[name])
                columns[f"{name}_var"] = list(self._vars[name])
        return pd.DataFrame(columns)


def _check_query(model: ModelSpec, constraints: ConstraintsSpec, observed: str, returns: Sequence[str]) -> None:
    constraints.validate(model)
    if observed not in model.observed:
        raise InvalidModel(f"Model '{model.name}' does not observe '{observed}'")
    unknown = [name for name in returns if name not in model.latent]
    if unknown:
        raise InvalidModel(f"Cannot return {unknown}: not latent variables of '{model.name}'")


def run_static(
    engine: InferenceEngine,
    model: ModelSpec,
    constraints: ConstraintsSpec,
    dataset: StaticDataset,
    returns: Sequence[str] = ("x",),
    free_energy: bool = False,
) -> PosteriorTrace:
    """Send a whole dataset in one batch query."""

    _check_query(model, constraints, dataset.name, returns)
    logger.debug("Batch query of %d records on model %s", len(dataset), model.name)
    result = engine.infer(
        model,
        constraints,
        dataset.records,
        returns=list(returns),
        free_energy=free_energy,
    )
    trace = PosteriorTrace(returns)
    lengths = {name: len(result.posteriors[name]) for name in returns}
    if len(set(lengths.values())) > 1:
        raise ValueError(f"Engine returned posteriors of unequal length: {lengths}")
    for step in range(next(iter(lengths.values()), 0)):
        trace.record(StreamUpdate({name: result.posteriors[name][step] for name in returns}))
    if free_energy and result.free_energy is not None:
        trace.extend_free_energy(result.free_energy)
    return trace


def run_streaming(
    engine: InferenceEngine,
    model: ModelSpec,
    constraints: ConstraintsSpec,
    feed: LiveFeed,
    autoupdates: AutoUpdate,
    steps: int,
    returns: Sequence[str] = ("x",),
    free_energy: bool = False,
    paced: bool = False,
    on_update: Callable[[StreamUpdate], None] | None = None,
) -> PosteriorTrace:
    """Push ``steps`` feed records through a live engine stream.

    With ``paced=True`` the feed runs on its worker thread at its own
    interval; otherwise the records are replayed back to back. Subscriptions
    and the stream are torn down on every exit path.
    """

    if steps < 0:
        raise ValueError("steps must be non-negative")
    _check_query(model, constraints, feed.name, returns)
    autoupdates.validate(model)

    trace = PosteriorTrace(returns)
    stream = engine.stream(
        model,
        constraints,
        autoupdates=autoupdates,
        returns=list(returns),
        free_energy=free_energy,
    )
    subscriptions = [stream.subscribe(trace.record)]
    if on_update is not None:
        subscriptions.append(stream.subscribe(on_update))
    subscriptions.append(feed.subscribe(stream.push))
    max_steps = feed.max_steps
    try:
        if paced:
            target = feed.pushed + steps

            def _stop_at_target(_record: Record) -> None:
                if feed.pushed + 1 >= target:
                    feed.stop()

            if steps > 0:
                # a smaller feed cap would end the worker before the target
                feed.max_steps = target
                subscriptions.append(feed.subscribe(_stop_at_target))
                feed.start()
                feed.join()
        else:
            feed.run(steps)
    finally:
        feed.stop()
        feed.max_steps = max_steps
        for subscription in reversed(subscriptions):
            subscription.unsubscribe()
        stream.stop()
    logger.debug("Streamed %d records on model %s", len(trace), model.name)
    return trace


def load_engine(path: str, **kwargs: Any) -> InferenceEngine:
    """Resolve ``"package.module:attribute"`` to an engine instance.

    A class or factory is called with ``kwargs``; any other object is
    returned as is.
    """

    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise EngineLoadError(f"Engine path must look like 'module:attribute', got '{path}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise EngineLoadError(f"Cannot import engine module '{module_name}'") from exc
    try:
        target = getattr(module, attr)
    except AttributeError as exc:
        raise EngineLoadError(f"Module '{module_name}' has no attribute '{attr}'") from exc
    is_factory = isinstance(target, type) or (callable(target) and not hasattr(target, "infer"))
    engine = target(**kwargs) if is_factory else target
    if not hasattr(engine, "infer") or not hasattr(engine, "stream"):
        raise EngineLoadError(f"'{path}' does not provide infer() and stream()")
    return engine


__all__ = [
    "AutoUpdate",
    "EngineLoadError",
    "GammaPosterior",
    "InferenceEngine",
    "InferenceResult",
    "Posterior",
    "PosteriorStream",
    "PosteriorTrace",
    "StreamUpdate",
    "gamma_autoupdate",
    "gaussian_autoupdate",
    "kalman_autoupdates",
    "load_engine",
    "run_static",
    "run_streaming",
]
