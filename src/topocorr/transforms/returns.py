"""Log-return computation under an explicit missing-data policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..config import MissingDataPolicy
from ..errors import MissingDataError, NonPositivePriceError

logger = logging.getLogger(__name__)

_MAX_REPORTED_POSITIONS = 10


@dataclass(frozen=True)
class ReturnMatrix:
    """Cleansed log returns together with the mask of substituted entries.

    Attributes
    ----------
    returns:
        index = trading dates (first price date excluded), columns = tickers.
        Contains no NaN or infinite values.
    flagged:
        Boolean frame aligned with ``returns``; ``True`` where the raw log
        return was undefined and has been substituted.
    policy:
        Policy that produced this matrix.
    """

    returns: pd.DataFrame
    flagged: pd.DataFrame
    policy: MissingDataPolicy

    @property
    def n_flagged(self) -> int:
        return int(self.flagged.to_numpy().sum())

    def __len__(self) -> int:
        return len(self.returns)


def compute_log_returns(
    prices: pd.DataFrame,
    policy: MissingDataPolicy | str = MissingDataPolicy.FAIL,
) -> ReturnMatrix:
    """Compute per-ticker log returns::

        r_{i,t} = log(P_{i,t}) - log(P_{i,t-1}),  t = 1..N-1

    A return is undefined when either price is missing or non-positive.
    ``policy`` decides what happens to undefined returns:

    * ``fail``: raise :class:`NonPositivePriceError` if a non-positive price
      is present, otherwise :class:`MissingDataError`.
    * ``zero_fill``: substitute ``0.0`` and flag the position.
    * ``drop_row``: drop every date holding an undefined return.
    """

    policy = MissingDataPolicy.parse(policy)
    if prices.empty:
        raise ValueError("Price panel is empty")
    if len(prices) < 2:
        raise ValueError("At least two price observations are required to compute returns")

    prices = prices.sort_index().astype(float)
    non_positive = prices <= 0
    log_prices = np.log(prices.where(~non_positive))
    raw = log_prices.diff().iloc[1:]
    undefined = ~np.isfinite(raw)

    if not undefined.to_numpy().any():
        return ReturnMatrix(
            returns=raw,
            flagged=pd.DataFrame(False, index=raw.index, columns=raw.columns),
            policy=policy,
        )

    if policy is MissingDataPolicy.FAIL:
        if non_positive.to_numpy().any():
            positions = _positions(non_positive)
            raise NonPositivePriceError(
                "Non-positive prices make log returns undefined at "
                + _describe(positions),
                positions=positions,
            )
        positions = _positions(undefined)
        raise MissingDataError(
            "Undefined log returns at " + _describe(positions),
            positions=positions,
        )

    count = int(undefined.to_numpy().sum())
    if policy is MissingDataPolicy.ZERO_FILL:
        logger.warning("Zero-filling %s undefined log returns", count)
        return ReturnMatrix(returns=raw.mask(undefined, 0.0), flagged=undefined, policy=policy)

    keep = ~undefined.any(axis=1)
    logger.warning(
        "Dropping %s of %s dates holding %s undefined log returns",
        int((~keep).sum()),
        len(raw),
        count,
    )
    return ReturnMatrix(returns=raw.loc[keep], flagged=undefined.loc[keep], policy=policy)


def _positions(mask: pd.DataFrame) -> list[tuple[str, str]]:
    stacked = mask.to_numpy()
    rows, cols = np.nonzero(stacked)
    return [
        (str(pd.Timestamp(mask.index[r]).date()), str(mask.columns[c]))
        for r, c in zip(rows, cols)
    ]


def _describe(positions: list[tuple[str, str]]) -> str:
    shown = ", ".join(f"{ticker}@{date}" for date, ticker in positions[:_MAX_REPORTED_POSITIONS])
    extra = len(positions) - _MAX_REPORTED_POSITIONS
    if extra > 0:
        shown += f" (+{extra} more)"
    return shown
