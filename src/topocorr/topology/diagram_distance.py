"""Distances between persistence diagrams, delegated to :mod:`persim`."""

from __future__ import annotations

import numpy as np
from persim import bottleneck, wasserstein

from .homology import Barcode

_METRICS = {"wasserstein", "bottleneck"}


def _diagonal_costs(diagram: np.ndarray) -> np.ndarray:
    # L-infinity distance of each point to the diagonal.
    return (diagram[:, 1] - diagram[:, 0]) / 2.0


class DiagramDistance:
    """Symmetric distance between two barcodes in one homology dimension.

    Only finite intervals take part in the matching; the essential H0 class
    is present in every window and carries no information about change.
    """

    def __init__(self, metric: str = "wasserstein") -> None:
        metric = metric.lower()
        if metric not in _METRICS:
            raise ValueError(
                f"Unknown diagram metric '{metric}'. Expected one of: {', '.join(sorted(_METRICS))}"
            )
        self.metric = metric

    def distance(self, lhs: Barcode, rhs: Barcode, dimension: int) -> float:
        a = np.array(lhs.finite(dimension), dtype=float)
        b = np.array(rhs.finite(dimension), dtype=float)

        if a.size == 0 and b.size == 0:
            return 0.0
        if a.shape == b.shape and np.array_equal(a, b):
            return 0.0
        if a.size == 0 or b.size == 0:
            costs = _diagonal_costs(b if a.size == 0 else a)
            if self.metric == "wasserstein":
                return float(costs.sum())
            return float(costs.max())

        # persim's matching depends on argument order in the last bit.
        if (a.shape, a.tobytes()) > (b.shape, b.tobytes()):
            a, b = b, a
        if self.metric == "wasserstein":
            value = wasserstein(a, b)
        else:
            value = bottleneck(a, b)
        return max(float(value), 0.0)

    __call__ = distance
