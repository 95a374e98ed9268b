"""Distance-over-time series between window barcodes."""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from .diagram_distance import DiagramDistance
from .homology import Barcode

_REFERENCES = {"first", "previous"}


def distance_series(
    barcodes: Sequence[Barcode],
    dimensions: Sequence[int],
    *,
    reference: str = "first",
    engine: DiagramDistance | None = None,
) -> pd.DataFrame:
    """Return diagram distances per window and dimension.

    ``reference="first"`` compares every window with window 0, so the first
    row is the self-comparison and equals zero.  ``reference="previous"``
    compares window ``i`` with window ``i - 1``; window 0 has no predecessor
    and is omitted.

    The frame is indexed by window start date with one ``H{k}`` column per
    requested dimension.
    """

    if reference not in _REFERENCES:
        raise ValueError(f"reference must be one of {sorted(_REFERENCES)}, got '{reference}'")

    indices = [b.window_index for b in barcodes]
    if any(idx is None for idx in indices) or indices != sorted(indices):
        raise ValueError("Barcodes must carry window indices in chronological order")

    engine = engine or DiagramDistance()
    columns = [f"H{k}" for k in dimensions]
    records: list[dict[str, float]] = []
    dates: list[pd.Timestamp] = []
    window_ids: list[int] = []

    for pos, barcode in enumerate(barcodes):
        if reference == "first":
            other = barcodes[0]
        elif pos == 0:
            continue
        else:
            other = barcodes[pos - 1]
        records.append({f"H{k}": engine.distance(other, barcode, k) for k in dimensions})
        dates.append(barcode.start_date)
        window_ids.append(barcode.window_index)

    frame = pd.DataFrame(records, columns=columns, index=pd.DatetimeIndex(dates, name="start_date"))
    frame.insert(0, "window", window_ids)
    return frame.astype({"window": int})
