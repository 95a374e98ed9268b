"""Plotting utilities for barcodes and distance series."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from persim import plot_diagrams

from ..topology.homology import Barcode
from ..transforms.distance import DistanceMatrix

# Distances built from correlations live in [0, 2]; fixed bounds keep the
# charts of different windows comparable.
AXIS_BOUNDS = (0.0, 2.0)
_DIMENSION_COLORS = ("#2E86AB", "#C0392B", "#27AE60", "#8E44AD")


def _ensure_dir(path: Path | str) -> Path:
    path_obj = Path(path)
    path_obj.parent.mkdir(parents=True, exist_ok=True)
    return path_obj


def plot_barcode(barcode: Barcode, path: Path | str, *, title: str | None = None) -> None:
    lo, hi = AXIS_BOUNDS
    intervals = list(barcode.intervals())

    fig, ax = plt.subplots(figsize=(6, 6))
    if intervals:
        heights = np.linspace(lo, hi, len(intervals) + 2)[1:-1]
        seen: set[int] = set()
        for y, (dim, birth, death) in zip(heights, intervals):
            end = death if np.isfinite(death) else hi
            color = _DIMENSION_COLORS[dim % len(_DIMENSION_COLORS)]
            label = f"H{dim}" if dim not in seen else None
            seen.add(dim)
            ax.hlines(y, birth, min(end, hi), color=color, lw=2, label=label)
        ax.legend(loc="lower right")
    ax.set_xlim(lo, hi)
    ax.set_ylim(lo, hi)
    ax.set_yticks([])
    ax.set_xlabel("Distance threshold")
    ax.set_title(title or f"Barcode from {_date_label(barcode)}")
    fig.tight_layout()
    fig.savefig(_ensure_dir(path), bbox_inches="tight")
    plt.close(fig)


def plot_persistence_diagram(
    barcode: Barcode, path: Path | str, *, title: str | None = None
) -> None:
    lo, hi = AXIS_BOUNDS
    fig, ax = plt.subplots(figsize=(6, 6))
    plot_diagrams(
        [np.array(d) for d in barcode.diagrams],
        ax=ax,
        show=False,
        xy_range=[lo, hi, lo, hi],
    )
    ax.set_title(title or f"Persistence diagram from {_date_label(barcode)}")
    fig.tight_layout()
    fig.savefig(_ensure_dir(path), bbox_inches="tight")
    plt.close(fig)


def plot_distance_series(
    series: pd.DataFrame,
    path: Path | str,
    *,
    title: str,
) -> None:
    columns = [c for c in series.columns if isinstance(c, str) and c.startswith("H")]
    if series.empty or not columns:
        return

    fig, ax = plt.subplots(figsize=(10, 4))
    for column in columns:
        dim = int(column[1:])
        ax.plot(
            series.index,
            series[column],
            marker="o",
            ms=3,
            lw=1.5,
            color=_DIMENSION_COLORS[dim % len(_DIMENSION_COLORS)],
            label=column,
        )
    ax.set_title(title)
    ax.set_xlabel("Window start")
    ax.set_ylabel("Diagram distance")
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()
    fig.savefig(_ensure_dir(path), bbox_inches="tight")
    plt.close(fig)


def plot_distance_heatmap(
    distance: DistanceMatrix,
    path: Path | str,
    *,
    title: str,
) -> None:
    if distance.size < 2:
        return

    lo, hi = AXIS_BOUNDS
    fig, ax = plt.subplots(figsize=(8, 6))
    cax = ax.imshow(distance.values, cmap="viridis", vmin=lo, vmax=hi)
    ax.set_xticks(range(distance.size))
    ax.set_xticklabels(distance.tickers, rotation=45, ha="right")
    ax.set_yticks(range(distance.size))
    ax.set_yticklabels(distance.tickers)
    ax.set_title(title)
    fig.colorbar(cax, ax=ax, fraction=0.046, pad=0.04)
    fig.tight_layout()
    fig.savefig(_ensure_dir(path), bbox_inches="tight")
    plt.close(fig)


def _date_label(barcode: Barcode) -> str:
    if barcode.start_date is None:
        return f"window {barcode.window_index}"
    return str(pd.Timestamp(barcode.start_date).date())
