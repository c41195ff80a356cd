from __future__ import annotations

import pytest

from kfstream.data import generate_static_dataset
from kfstream.engine import (
    AutoUpdate,
    EngineLoadError,
    GammaPosterior,
    Posterior,
    PosteriorTrace,
    StreamUpdate,
    gaussian_autoupdate,
    kalman_autoupdates,
    load_engine,
    run_static,
    run_streaming,
)
from kfstream.envs import LiveFeed, SignalEnvironment
from kfstream.models import InvalidModel, kalman_constraints, kalman_random_walk_model
from tests.fakes import EchoEngine, GammaQ, GaussianQ


def test_fake_posteriors_satisfy_protocols() -> None:
    assert isinstance(GaussianQ(0.0, 1.0), Posterior)
    assert isinstance(GammaQ(1.0, 2.0), GammaPosterior)


def test_kalman_autoupdates_carry_posteriors_forward() -> None:
    updates = kalman_autoupdates()
    assert sorted(updates.targets) == ["tau_rate", "tau_shape", "x_prev_mean", "x_prev_var"]
    values = updates.apply({"x": GaussianQ(1.5, 0.25), "tau": GammaQ(3.0, 4.0)})
    assert values == {"x_prev_mean": 1.5, "x_prev_var": 0.25, "tau_shape": 3.0, "tau_rate": 4.0}
    updates.validate(kalman_random_walk_model())


def test_autoupdate_rejects_overlap_and_unknown_targets() -> None:
    rule = gaussian_autoupdate("x", "x_prev_mean", "x_prev_var")
    with pytest.raises(ValueError):
        rule | rule
    with pytest.raises(InvalidModel):
        AutoUpdate({"not_a_prior": lambda q: 0.0}).validate(kalman_random_walk_model())


def test_autoupdate_rejects_non_finite() -> None:
    rule = AutoUpdate({"x_prev_var": lambda q: float("inf")})
    with pytest.raises(ValueError):
        rule.apply({})


def test_trace_records_moments() -> None:
    trace = PosteriorTrace(["x"])
    trace.record(StreamUpdate({"x": GaussianQ(1.0, 0.5)}, free_energy=2.0))
    trace.record(StreamUpdate({"x": GaussianQ(2.0, 0.25)}))
    assert len(trace) == 2
    assert trace.means("x").tolist() == [1.0, 2.0]
    assert trace.variances("x").tolist() == [0.5, 0.25]
    assert trace.free_energy.tolist() == [2.0]
    assert trace.summary() == {"steps": 2, "x/mean": 2.0, "x/var": 0.25, "free_energy": 2.0}
    assert list(trace.to_frame().columns) == ["x_mean", "x_var"]
    with pytest.raises(KeyError):
        trace.record(StreamUpdate({"tau": GammaQ(1.0, 1.0)}))


def test_run_static(echo_engine: EchoEngine) -> None:
    dataset = generate_static_dataset(SignalEnvironment(seed=5), 20)
    trace = run_static(
        echo_engine,
        kalman_random_walk_model(),
        kalman_constraints(),
        dataset,
        returns=["x"],
        free_energy=True,
    )
    assert echo_engine.calls == [{"model": "kalman_random_walk", "n": 20, "returns": ["x"]}]
    assert trace.means("x").tolist() == dataset.observations.tolist()
    assert trace.free_energy.tolist() == [3.0, 2.0, 1.5]


def test_run_static_validates_query(echo_engine: EchoEngine) -> None:
    dataset = generate_static_dataset(SignalEnvironment(), 3, name="obs")
    with pytest.raises(InvalidModel):
        run_static(echo_engine, kalman_random_walk_model(), kalman_constraints(), dataset)
    dataset = generate_static_dataset(SignalEnvironment(), 3)
    with pytest.raises(InvalidModel):
        run_static(echo_engine, kalman_random_walk_model(), kalman_constraints(), dataset, returns=["y"])
    assert echo_engine.calls == []


@pytest.mark.parametrize("paced", [False, True])
def test_run_streaming(echo_engine: EchoEngine, paced: bool) -> None:
    env = SignalEnvironment(seed=17)
    feed = LiveFeed(env, interval=0.0)
    seen = []
    trace = run_streaming(
        echo_engine,
        kalman_random_walk_model(),
        kalman_constraints(),
        feed,
        kalman_autoupdates(),
        steps=12,
        returns=["x", "tau"],
        free_energy=True,
        paced=paced,
        on_update=seen.append,
    )
    stream = echo_engine.streams[0]
    assert len(trace) == 12
    assert len(seen) == 12
    assert trace.means("x").tolist() == list(env.observations)
    assert trace.free_energy.tolist() == [float(i) for i in range(1, 13)]
    assert stream.stopped == 1
    assert stream.priors[1]["x_prev_mean"] == env.observations[0]
    assert stream.priors[1]["tau_shape"] == 1.5
    # everything was torn down: further feed records reach nobody
    feed.run(1)
    assert len(stream.pushed) == 12


def test_paced_streaming_ignores_smaller_feed_cap(echo_engine: EchoEngine) -> None:
    env = SignalEnvironment(seed=4)
    feed = LiveFeed(env, interval=0.0, max_steps=3)
    trace = run_streaming(
        echo_engine,
        kalman_random_walk_model(),
        kalman_constraints(),
        feed,
        kalman_autoupdates(),
        steps=8,
        paced=True,
    )
    assert len(trace) == 8
    assert env.steps == 8
    assert feed.max_steps == 3


def test_run_streaming_tears_down_on_failure(echo_engine: EchoEngine) -> None:
    feed = LiveFeed(SignalEnvironment(), interval=0.0)

    def _fail(update: StreamUpdate) -> None:
        raise RuntimeError("plot crashed")

    with pytest.raises(RuntimeError, match="plot crashed"):
        run_streaming(
            echo_engine,
            kalman_random_walk_model(),
            kalman_constraints(),
            feed,
            kalman_autoupdates(),
            steps=5,
            on_update=_fail,
        )
    assert echo_engine.streams[0].stopped == 1


def test_load_engine_from_path() -> None:
    engine = load_engine("tests.fakes:EchoEngine")
    assert isinstance(engine, EchoEngine)


@pytest.mark.parametrize(
    "path",
    ["no_colon", "tests.fakes:Missing", "kfstream_missing_module:Engine", "kfstream.envs.feed:DEFAULT_INTERVAL"],
)
def test_load_engine_errors(path: str) -> None:
    with pytest.raises(EngineLoadError):
        load_engine(path)
