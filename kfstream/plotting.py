"""Figures for signals, posteriors and free energy."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes
from matplotlib.figure import Figure

from kfstream.engine import PosteriorTrace


def _axes(ax: Optional[Axes], figsize: tuple[float, float] = (8, 4)) -> Axes:
    if ax is not None:
        return ax
    _, new_ax = plt.subplots(figsize=figsize)
    return new_ax


def plot_signal(
    latent: Sequence[float],
    observations: Sequence[float],
    ax: Optional[Axes] = None,
    title: str = "Latent signal and observations",
) -> Axes:
    """Latent signal as a line, observations as a scatter."""

    latent_arr = np.asarray(latent, dtype=float)
    obs_arr = np.asarray(observations, dtype=float)
    if latent_arr.shape != obs_arr.shape:
        raise ValueError("latent and observations must have the same length")
    ax = _axes(ax)
    steps = np.arange(1, latent_arr.size + 1)
    ax.plot(steps, latent_arr, color="black", linewidth=1.5, label="latent")
    ax.scatter(steps, obs_arr, s=6, color="tab:orange", alpha=0.7, label="observations")
    ax.set_xlabel("step")
    ax.set_title(title)
    ax.legend(loc="upper right")
    return ax


def plot_posterior(
    trace: PosteriorTrace,
    variable: str = "x",
    latent: Optional[Sequence[float]] = None,
    observations: Optional[Sequence[float]] = None,
    ax: Optional[Axes] = None,
) -> Axes:
    """Posterior mean with a one standard deviation band."""

    means = trace.means(variable)
    stds = np.sqrt(np.clip(trace.variances(variable), 0.0, None))
    ax = _axes(ax)
    steps = np.arange(1, means.size + 1)
    if latent is not None:
        ax.plot(steps, np.asarray(latent, dtype=float)[: means.size], color="black", linewidth=1.0, label="latent")
    if observations is not None:
        obs = np.asarray(observations, dtype=float)[: means.size]
        ax.scatter(steps, obs, s=6, color="tab:orange", alpha=0.6, label="observations")
    ax.plot(steps, means, color="tab:blue", label=f"q({variable}) mean")
    ax.fill_between(steps, means - stds, means + stds, color="tab:blue", alpha=0.25, label="+/- 1 std")
    ax.set_xlabel("step")
    ax.set_title(f"Posterior of {variable}")
    ax.legend(loc="upper right")
    return ax


def plot_free_energy(trace: PosteriorTrace, ax: Optional[Axes] = None) -> Axes:
    values = trace.free_energy
    ax = _axes(ax, figsize=(6, 3))
    ax.plot(np.arange(1, values.size + 1), values, color="tab:green")
    ax.set_xlabel("step")
    ax.set_ylabel("free energy")
    ax.set_title("Free energy")
    return ax


def save_figure(fig: Figure, path: str | Path, dpi: int = 150) -> Path:
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(file_path, dpi=dpi)
    plt.close(fig)
    return file_path


__all__ = ["plot_free_energy", "plot_posterior", "plot_signal", "save_figure"]
