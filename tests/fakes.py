"""In-memory stand-ins for an external inference engine."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence

from kfstream.engine import AutoUpdate, InferenceResult, StreamUpdate
from kfstream.envs.feed import Subscription


@dataclass
class GaussianQ:
    m: float
    v: float

    def mean(self) -> float:
        return self.m

    def var(self) -> float:
        return self.v


@dataclass
class GammaQ:
    a: float
    b: float

    def mean(self) -> float:
        return self.a / self.b

    def var(self) -> float:
        return self.a / self.b**2

    def shape(self) -> float:
        return self.a

    def rate(self) -> float:
        return self.b


class EchoStream:
    """Reports the last observation as the state posterior."""

    def __init__(self, autoupdates: AutoUpdate, returns: Sequence[str], free_energy: bool) -> None:
        self.autoupdates = autoupdates
        self.returns = list(returns)
        self.free_energy = free_energy
        self.priors: List[Dict[str, float]] = []
        self.pushed: List[Dict[str, float]] = []
        self.stopped = 0
        self._callbacks: List[Callable[[StreamUpdate], None]] = []
        self._last = {"x": GaussianQ(0.0, 1000.0), "tau": GammaQ(1.0, 1.0)}

    def push(self, record: Dict[str, float]) -> None:
        self.priors.append(self.autoupdates.apply(self._last))
        self.pushed.append(dict(record))
        value = next(iter(record.values()))
        tau = self._last["tau"]
        self._last = {"x": GaussianQ(value, 1.0), "tau": GammaQ(tau.a + 0.5, tau.b + 0.5)}
        update = StreamUpdate(
            {name: self._last[name] for name in self.returns},
            free_energy=float(len(self.pushed)) if self.free_energy else None,
        )
        for callback in list(self._callbacks):
            callback(update)

    def subscribe(self, callback: Callable[[StreamUpdate], None]) -> Subscription:
        self._callbacks.append(callback)
        return Subscription(lambda: self._callbacks.remove(callback))

    def stop(self) -> None:
        self.stopped += 1


class EchoEngine:
    def __init__(self) -> None:
        self.calls: List[Dict[str, object]] = []
        self.streams: List[EchoStream] = []

    def infer(self, model, constraints, data, returns, free_energy=False):  # type: ignore[no-untyped-def]
        self.calls.append({"model": model.name, "n": len(data), "returns": list(returns)})
        posteriors = {
            name: [GaussianQ(next(iter(record.values())), 1.0) for record in data]
            for name in returns
        }
        return InferenceResult(posteriors, free_energy=[3.0, 2.0, 1.5] if free_energy else None)

    def stream(self, model, constraints, autoupdates, returns, free_energy=False):  # type: ignore[no-untyped-def]
        stream = EchoStream(autoupdates, returns, free_energy)
        self.streams.append(stream)
        return stream
