"""Validation helpers for price tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import pandas as pd

from ..errors import DataAvailabilityError


@dataclass(frozen=True)
class SuspensionSpan:
    """Run of consecutive missing observations for one ticker."""

    start: pd.Timestamp
    end: pd.Timestamp
    length: int


def validate_price_data(frame: pd.DataFrame) -> None:
    """Raise if the dataframe contains obvious structural issues."""

    if frame.empty:
        raise ValueError("Price dataframe is empty")

    if not isinstance(frame.index, pd.DatetimeIndex):
        raise TypeError("Price data must use a pandas.DatetimeIndex")

    if frame.index.has_duplicates:
        dupes = frame.index[frame.index.duplicated()].strftime("%Y-%m-%d").tolist()
        raise ValueError(f"Price data contains duplicate dates: {dupes}")

    if not frame.index.is_monotonic_increasing:
        raise ValueError("Price data index must be sorted in increasing order")


def check_availability(frame: pd.DataFrame, tickers: Sequence[str]) -> None:
    """Raise :class:`DataAvailabilityError` for tickers without any price.

    A ticker counts as unavailable when its column is absent or holds only
    missing values over the requested range.
    """

    unavailable = [
        ticker
        for ticker in tickers
        if ticker not in frame.columns or not frame[ticker].notna().any()
    ]
    if unavailable:
        raise DataAvailabilityError(
            "No price data in the requested range for: " + ", ".join(unavailable),
            tickers=unavailable,
        )


def detect_trading_suspensions(
    frame: pd.DataFrame, *,
    min_gap: int = 3,
) -> dict[str, list[SuspensionSpan]]:
    """Return spans of consecutive missing observations per ticker.

    Parameters
    ----------
    frame:
        Wide dataframe containing one column per ticker.
    min_gap:
        Spans must be longer than this many observations to be reported.
        Set to ``0`` to return all gaps.
    """

    if frame.empty:
        return {}

    suspensions: dict[str, list[SuspensionSpan]] = {}
    for column in frame.columns:
        spans = list(_iter_missing_spans(frame[column].isna()))
        filtered = [span for span in spans if span.length > min_gap]
        if filtered:
            suspensions[column] = filtered
    return suspensions


def build_price_panel(prices_df: pd.DataFrame) -> pd.DataFrame:
    """Pivot a tidy ``(date, ticker, adj_close)`` table into wide form."""

    required = {"date", "ticker", "adj_close"}
    missing = required.difference(prices_df.columns)
    if missing:
        raise ValueError(f"Missing expected columns in price table: {sorted(missing)}")

    tidy = prices_df.assign(date=pd.to_datetime(prices_df["date"]))
    panel = tidy.pivot(index="date", columns="ticker", values="adj_close").sort_index()
    panel.columns.name = None
    panel.index.name = None
    return panel


def to_price_table(panel: pd.DataFrame) -> pd.DataFrame:
    """Return the tidy ``(date, ticker, adj_close)`` form of a wide panel.

    Rows are ordered by date then by the panel's column order.
    """

    if panel.empty:
        return pd.DataFrame(columns=["date", "ticker", "adj_close"])

    wide = panel.rename_axis(index="date", columns=None).reset_index()
    tidy = wide.melt(id_vars="date", var_name="ticker", value_name="adj_close")
    tidy = tidy.sort_values("date", kind="stable").dropna(subset=["adj_close"])
    return tidy.reset_index(drop=True)


def _iter_missing_spans(mask: pd.Series) -> Iterable[SuspensionSpan]:
    if not isinstance(mask, pd.Series):
        raise TypeError("Missing mask must be a pandas Series")

    run_length = 0
    run_start: pd.Timestamp | None = None
    last_ts: pd.Timestamp | None = None
    for ts, missing in mask.items():
        if bool(missing):
            run_length += 1
            if run_start is None:
                run_start = ts
            last_ts = ts
        elif run_length:
            yield SuspensionSpan(start=run_start, end=last_ts, length=run_length)
            run_length = 0
            run_start = None
            last_ts = None

    if run_length and run_start is not None and last_ts is not None:
        yield SuspensionSpan(start=run_start, end=last_ts, length=run_length)
