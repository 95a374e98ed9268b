"""Trading calendar utilities for aligning daily equity prices."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

import pandas as pd

logger = logging.getLogger(__name__)


def _normalize_holidays(holidays: Optional[Iterable[pd.Timestamp]]) -> list[pd.Timestamp]:
    if not holidays:
        return []
    normalized: list[pd.Timestamp] = []
    for holiday in holidays:
        ts = pd.Timestamp(holiday).normalize()
        if ts not in normalized:
            normalized.append(ts)
    return normalized


@dataclass(slots=True)
class TradingCalendar:
    """Weekday trading calendar with optional holiday exclusions."""

    name: str = "weekday"
    holidays: Sequence[pd.Timestamp] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.holidays = tuple(_normalize_holidays(self.holidays))

    def sessions(self, start: str | pd.Timestamp, end: str | pd.Timestamp) -> pd.DatetimeIndex:
        """Return trading sessions between ``start`` and ``end`` (inclusive)."""

        sessions = pd.bdate_range(start=start, end=end, freq="C")
        if not self.holidays:
            return sessions
        mask = ~sessions.isin(self.holidays)
        return sessions[mask]

    def restrict_to_common_sessions(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Keep only sessions on which every column has a price.

        Dates outside the calendar (weekends, listed holidays) are removed as
        well.  No value is filled in.
        """

        if not isinstance(frame.index, pd.DatetimeIndex):
            raise TypeError("Expected price data indexed by pandas.DatetimeIndex")
        if frame.empty:
            return frame

        on_calendar = frame.index.isin(self.sessions(frame.index.min(), frame.index.max()))
        complete = frame.notna().all(axis=1).to_numpy()
        kept = frame.loc[on_calendar & complete]
        dropped = len(frame) - len(kept)
        if dropped:
            logger.info(
                "Dropped %s of %s dates without a price for every ticker", dropped, len(frame)
            )
        return kept

    def validate(self, frame: pd.DataFrame) -> None:
        """Run basic sanity checks on a price dataframe."""

        index = frame.index
        if not isinstance(index, pd.DatetimeIndex):
            raise TypeError("Price data must be indexed by pandas.DatetimeIndex")
        if not index.is_monotonic_increasing:
            raise ValueError("Price data index must be sorted in increasing order")
        if index.has_duplicates:
            duplicates = index[index.duplicated()].strftime("%Y-%m-%d").tolist()
            raise ValueError(f"Price data contains duplicate dates: {duplicates}")
