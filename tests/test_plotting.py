from __future__ import annotations

import matplotlib.pyplot as plt
import pytest

from kfstream.data import dataset_from_env
from kfstream.engine import PosteriorTrace, StreamUpdate
from kfstream.envs import SignalEnvironment
from kfstream.plotting import plot_free_energy, plot_posterior, plot_signal, save_figure
from tests.fakes import GaussianQ


def _trace(n: int) -> PosteriorTrace:
    trace = PosteriorTrace(["x"])
    for i in range(n):
        trace.record(StreamUpdate({"x": GaussianQ(float(i), 1.0)}, free_energy=10.0 - i))
    return trace


def test_plot_signal_draws_both_series() -> None:
    env = SignalEnvironment()
    env.advance_many(30)
    dataset = dataset_from_env(env)
    ax = plot_signal(dataset.latent, dataset.observations)
    assert len(ax.lines) == 1
    assert len(ax.collections) == 1
    plt.close(ax.figure)


def test_plot_signal_length_mismatch() -> None:
    with pytest.raises(ValueError):
        plot_signal([1.0, 2.0], [1.0])


def test_plot_posterior_and_free_energy(tmp_path) -> None:  # type: ignore[no-untyped-def]
    env = SignalEnvironment()
    env.advance_many(10)
    trace = _trace(10)
    fig, (top, bottom) = plt.subplots(2, 1)
    plot_posterior(trace, "x", env.history, env.observations, ax=top)
    plot_free_energy(trace, ax=bottom)
    assert top.get_title() == "Posterior of x"
    assert len(bottom.lines) == 1
    path = save_figure(fig, tmp_path / "figs" / "posterior.png")
    assert path.exists()
