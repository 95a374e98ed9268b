"""Summary statistics for barcodes and distance series."""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from ..topology.homology import Barcode


def barcode_statistics(barcodes: Sequence[Barcode]) -> pd.DataFrame:
    """Return per-window, per-dimension feature counts and persistence totals.

    Only finite intervals contribute to the persistence columns.
    """

    records = []
    for barcode in barcodes:
        for dim in range(barcode.max_dimension + 1):
            finite = barcode.finite(dim)
            lifetimes = finite[:, 1] - finite[:, 0]
            records.append(
                {
                    "window": barcode.window_index,
                    "start_date": barcode.start_date,
                    "dimension": dim,
                    "feature_count": int(len(barcode.dimension(dim))),
                    "total_persistence": float(lifetimes.sum()) if lifetimes.size else 0.0,
                    "max_persistence": float(lifetimes.max()) if lifetimes.size else 0.0,
                }
            )
    columns = [
        "window",
        "start_date",
        "dimension",
        "feature_count",
        "total_persistence",
        "max_persistence",
    ]
    return pd.DataFrame(records, columns=columns)


def peak_dates(series: pd.DataFrame, *, prefix: str) -> dict[str, str]:
    """Return the start date of the largest distance per ``H{k}`` column."""

    peaks: dict[str, str] = {}
    for column in _dimension_columns(series):
        values = series[column].dropna()
        if values.empty:
            continue
        peaks[f"{prefix} {column} peak"] = str(pd.Timestamp(values.idxmax()).date())
    return peaks


def distance_summary(
    from_first: pd.DataFrame,
    from_previous: pd.DataFrame,
    *,
    n_windows: int,
) -> dict[str, float]:
    """Return a flat mapping of headline statistics for reports."""

    summary: dict[str, float] = {"Windows": float(n_windows)}
    for label, frame in (("From first", from_first), ("From previous", from_previous)):
        for column in _dimension_columns(frame):
            values = frame[column].dropna()
            summary[f"{label} {column} mean"] = float(values.mean()) if not values.empty else 0.0
            summary[f"{label} {column} max"] = float(values.max()) if not values.empty else 0.0
    return summary


def _dimension_columns(frame: pd.DataFrame) -> list[str]:
    return [c for c in frame.columns if isinstance(c, str) and c.startswith("H")]
