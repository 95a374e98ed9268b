"""Correlation-based distance matrices.

Each window's Pearson correlation matrix ``C`` is mapped to the metric

    D_ij = sqrt(2 * (1 - C_ij))

which is zero for perfectly correlated tickers and two for perfectly
anti-correlated ones.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..config import DEFAULT_TOLERANCE
from ..errors import InsufficientWindowError, NumericalDomainError
from .windows import Window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistanceMatrix:
    """Read-only distance matrix over the ticker set of one window."""

    values: np.ndarray
    tickers: tuple[str, ...]
    window_index: int | None = None
    start_date: pd.Timestamp | None = None

    def __post_init__(self) -> None:
        n = len(self.tickers)
        if self.values.shape != (n, n):
            raise ValueError(
                f"Distance matrix shape {self.values.shape} does not match {n} tickers"
            )

    @property
    def size(self) -> int:
        return len(self.tickers)

    def as_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.values, index=list(self.tickers), columns=list(self.tickers))


def correlation_to_distance(
    corr: np.ndarray,
    *,
    tolerance: float = DEFAULT_TOLERANCE,
) -> np.ndarray:
    """Map a correlation matrix to ``sqrt(2 * (1 - C))``.

    Parameters
    ----------
    corr : np.ndarray
        Square correlation matrix.
    tolerance : float
        Correlations may overshoot ``[-1, 1]`` by at most this much through
        floating-point rounding; such entries are clipped before the square
        root.  Anything further out raises :class:`NumericalDomainError`.

    Returns
    -------
    np.ndarray
        Distance matrix with values in ``[0, 2]`` and a zero diagonal.
    """

    corr = np.asarray(corr, dtype=float)
    if corr.ndim != 2 or corr.shape[0] != corr.shape[1]:
        raise ValueError(f"Correlation matrix must be square, got shape {corr.shape}")
    if not np.isfinite(corr).all():
        raise NumericalDomainError("Correlation matrix contains undefined entries")

    out_of_range = (corr > 1.0 + tolerance) | (corr < -1.0 - tolerance)
    if out_of_range.any():
        worst = float(np.max(np.abs(corr[out_of_range])))
        raise NumericalDomainError(
            f"Correlation {worst!r} lies outside [-1, 1] beyond tolerance {tolerance}"
        )

    clipped = np.clip(corr, -1.0, 1.0)
    dist = np.sqrt(2.0 * (1.0 - clipped))
    np.fill_diagonal(dist, 0.0)
    return dist


def window_correlation(window: Window | pd.DataFrame) -> pd.DataFrame:
    """Pearson correlation over the columns of a window."""

    data = window.data if isinstance(window, Window) else window
    index = window.index if isinstance(window, Window) else None
    if len(data) < 2:
        raise InsufficientWindowError(
            f"Window {index} has {len(data)} row(s); correlation needs at least 2",
            window_index=index,
            rows=len(data),
        )

    zero_variance = [str(c) for c in data.columns if np.ptp(data[c].to_numpy()) == 0.0]
    if zero_variance:
        raise NumericalDomainError(
            f"Correlation undefined in window {index}: zero variance for "
            + ", ".join(zero_variance)
        )
    corr = data.corr(method="pearson")
    # Exact symmetry regardless of the backend's summation order.
    values = corr.to_numpy()
    return pd.DataFrame((values + values.T) / 2.0, index=corr.index, columns=corr.columns)


def build_distance_matrix(
    window: Window,
    *,
    tolerance: float = DEFAULT_TOLERANCE,
) -> DistanceMatrix:
    """Return the correlation distance matrix of one window."""

    corr = window_correlation(window)
    values = correlation_to_distance(corr.to_numpy(), tolerance=tolerance)
    values.setflags(write=False)
    logger.debug("Window %s: distance matrix %s x %s", window.index, *values.shape)
    return DistanceMatrix(
        values=values,
        tickers=tuple(str(c) for c in corr.columns),
        window_index=window.index,
        start_date=window.start_date,
    )
