"""Non-overlapping window segmentation of the return matrix."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..config import DEFAULT_WINDOW_LENGTH
from .returns import ReturnMatrix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Window:
    """Contiguous block of return rows, labelled by its first and last date."""

    index: int
    start_date: pd.Timestamp
    end_date: pd.Timestamp
    data: pd.DataFrame

    def __len__(self) -> int:
        return len(self.data)


def segment_windows(
    returns: ReturnMatrix | pd.DataFrame,
    window_length: int = DEFAULT_WINDOW_LENGTH,
) -> list[Window]:
    """Partition rows into consecutive groups of ``window_length``.

    Row ``i`` belongs to window ``i // window_length``.  The trailing window
    is kept even when it holds fewer rows, so ``N`` rows give
    ``ceil(N / window_length)`` windows in chronological order.
    """

    if isinstance(window_length, bool) or not isinstance(window_length, (int, np.integer)):
        raise ValueError("window_length must be a positive integer")
    if window_length <= 0:
        raise ValueError("window_length must be a positive integer")

    frame = returns.returns if isinstance(returns, ReturnMatrix) else returns
    frame = frame.sort_index()
    n_rows = len(frame)

    windows: list[Window] = []
    for idx, start in enumerate(range(0, n_rows, window_length)):
        chunk = frame.iloc[start : start + window_length]
        windows.append(
            Window(
                index=idx,
                start_date=pd.Timestamp(chunk.index[0]),
                end_date=pd.Timestamp(chunk.index[-1]),
                data=chunk,
            )
        )

    if windows and len(windows[-1]) < window_length:
        logger.info(
            "Trailing window %s holds %s of %s rows", windows[-1].index, len(windows[-1]), window_length
        )
    logger.debug("Segmented %s rows into %s windows of %s", n_rows, len(windows), window_length)
    return windows
