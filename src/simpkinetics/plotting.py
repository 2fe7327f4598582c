"""Plots of kinetic path profiles."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure


def plot_profile(
    x_values: Sequence[float],
    series: Mapping[str, Sequence[float]],
    xlabel: str = "Time (s)",
    units: Mapping[str, str | None] | None = None,
    log_y: bool = False,
) -> Figure:
    units = units or {}
    figure = Figure(figsize=(6, 4), tight_layout=True)
    FigureCanvasAgg(figure)
    axes = figure.add_subplot(1, 1, 1)
    for name, values in series.items():
        unit = units.get(name)
        axes.plot(x_values, values, label=f"{name} ({unit})" if unit else name)
    if log_y:
        axes.set_yscale("log")
    axes.set_xlabel(xlabel)
    axes.legend()
    return figure


def save_profile_plot(figure: Figure, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    figure.savefig(path)
    return path
