"""Market data ingestion helpers.

Adjusted daily closes are pulled from Yahoo! Finance by default, or read
from local CSV/Parquet files when a ticker is configured with a file source.
A deterministic synthetic generator covers offline runs and tests.

The vendor request is the only transient failure surface of the pipeline, so
it is retried with exponential backoff.  Anything that still fails after the
last attempt fails the run: prices are never replaced by synthetic data
behind the caller's back.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from pathlib import Path
from typing import Mapping, Sequence

import pandas as pd

from ..errors import DataAvailabilityError, PriceFetchError
from .calendar import TradingCalendar
from .metadata import TickerMetadata, UniverseDefinition
from .synthetic import generate_synthetic_prices
from .validators import check_availability, detect_trading_suspensions, validate_price_data

logger = logging.getLogger(__name__)

_SOURCES = {"vendor", "synthetic"}


def load_prices(
    tickers: Sequence[Mapping[str, object] | str | TickerMetadata],
    start: str | pd.Timestamp,
    end: str | pd.Timestamp,
    *,
    source: str = "vendor",
    seed: int = 42,
    max_retries: int = 3,
    backoff_seconds: float = 1.0,
    calendar: TradingCalendar | None = None,
    stress_periods: Sequence[tuple[str, str]] | None = None,
) -> pd.DataFrame:
    """Return adjusted daily closes in wide format for the requested tickers.

    Parameters
    ----------
    tickers:
        Plain symbols, metadata mappings or :class:`TickerMetadata` objects.
    start, end:
        Inclusive bounds of the requested history.
    source:
        ``"vendor"`` (default) queries each ticker's configured data source.
        ``"synthetic"`` skips vendor queries entirely.
    seed:
        Random seed used when synthetic prices are generated.
    max_retries, backoff_seconds:
        Retry budget for the Yahoo! Finance request.  Attempt ``k`` waits
        ``backoff_seconds * 2**k`` seconds before retrying.
    calendar:
        Trading calendar used to restrict the panel to common sessions.
    stress_periods:
        Optional ``(start, end)`` ranges with elevated co-movement, only used
        by the synthetic generator.

    Returns
    -------
    DataFrame
        index = trading dates present for every ticker, columns = symbols in
        the requested order, values = adjusted close.
    """

    if source not in _SOURCES:
        raise ValueError("Unsupported price source: %s" % source)

    universe = UniverseDefinition.from_payload(tickers)
    calendar = calendar or TradingCalendar()
    start_ts = pd.Timestamp(start)
    end_ts = pd.Timestamp(end)
    if end_ts < start_ts:
        raise ValueError("End date precedes start date")

    if source == "synthetic":
        prices = generate_synthetic_prices(
            universe.symbols, start_ts, end_ts, seed=seed, stress_periods=stress_periods
        )
    else:
        prices = _load_from_vendor(
            universe, start_ts, end_ts, max_retries=max_retries, backoff_seconds=backoff_seconds
        )

    prices = prices.reindex(columns=universe.symbols).sort_index()
    check_availability(prices, universe.symbols)
    for symbol, spans in detect_trading_suspensions(prices).items():
        longest = max(span.length for span in spans)
        logger.warning("Ticker %s has %s gaps (longest %s days)", symbol, len(spans), longest)

    calendar.validate(prices)
    common = calendar.restrict_to_common_sessions(prices)
    if common.empty:
        raise DataAvailabilityError(
            "No trading day in range has prices for every ticker",
            tickers=universe.symbols,
        )
    validate_price_data(common)
    logger.info(
        "Loaded %s common trading days for %s tickers (%s to %s)",
        len(common),
        common.shape[1],
        common.index.min().date(),
        common.index.max().date(),
    )
    return common


def _load_from_vendor(
    universe: UniverseDefinition,
    start: pd.Timestamp,
    end: pd.Timestamp,
    *,
    max_retries: int,
    backoff_seconds: float,
) -> pd.DataFrame:
    """Dispatch to source specific fetchers and combine the results."""

    grouped: dict[str, list[TickerMetadata]] = defaultdict(list)
    for ticker in universe.tickers:
        grouped[ticker.data_source.lower()].append(ticker)

    frames: list[pd.DataFrame] = []
    for vendor, entries in grouped.items():
        if vendor == "yahoo":
            frames.append(
                _fetch_yahoo_with_retry(
                    entries, start, end, max_retries=max_retries, backoff_seconds=backoff_seconds
                )
            )
        else:
            frames.append(_load_local_prices(vendor, entries, start, end))

    data = pd.concat(frames, axis=1)
    data = data.loc[:, ~data.columns.duplicated()]
    return data.sort_index()


def _fetch_yahoo_with_retry(
    tickers: Sequence[TickerMetadata],
    start: pd.Timestamp,
    end: pd.Timestamp,
    *,
    max_retries: int,
    backoff_seconds: float,
) -> pd.DataFrame:
    last_error: Exception | None = None
    for attempt in range(max_retries):
        try:
            closes = _fetch_yahoo_prices(tickers, start, end)
        except KeyError:
            # A response without close prices will not change on retry.
            raise
        except Exception as exc:
            last_error = exc
        else:
            if not closes.dropna(how="all").empty:
                return closes
            last_error = None
        if attempt < max_retries - 1:
            wait = backoff_seconds * 2**attempt
            reason = last_error if last_error is not None else "empty response"
            logger.warning(
                "Yahoo! request failed (%s), retrying in %.1fs (attempt %s/%s)",
                reason,
                wait,
                attempt + 1,
                max_retries,
            )
            time.sleep(wait)

    symbols = ", ".join(t.symbol for t in tickers)
    if last_error is None:
        # The vendor answered but had nothing for the range.
        return pd.DataFrame(columns=[t.symbol for t in tickers], dtype=float)
    raise PriceFetchError(
        f"Yahoo! Finance request for {symbols} failed after {max_retries} attempts: {last_error}"
    ) from last_error


def _fetch_yahoo_prices(
    tickers: Sequence[TickerMetadata], start: pd.Timestamp, end: pd.Timestamp
) -> pd.DataFrame:
    """Fetch daily adjusted closes for the provided tickers using Yahoo! Finance."""

    import yfinance as yf

    ticker_map = {t.vendor_symbol: t.symbol for t in tickers}
    vendor_symbols = list(ticker_map.keys())

    logger.info("Fetching Yahoo! Finance data for %s", ", ".join(sorted(ticker_map.values())))

    # yfinance treats ``end`` as exclusive.
    data = yf.download(
        tickers=vendor_symbols if len(vendor_symbols) > 1 else vendor_symbols[0],
        start=str(start.date()),
        end=str((end + pd.Timedelta(days=1)).date()),
        auto_adjust=False,
        progress=False,
        threads=False,
    )

    if data is None or len(data) == 0:
        return pd.DataFrame(columns=list(ticker_map.values()), dtype=float)

    closes = _extract_close_prices(data)
    if closes.shape[1] == 1 and len(vendor_symbols) == 1:
        closes.columns = [vendor_symbols[0]]
    closes = closes.rename(columns=ticker_map)
    index = pd.DatetimeIndex(closes.index)
    if index.tz is not None:
        index = index.tz_localize(None)
    closes.index = index
    return closes.reindex(columns=[t.symbol for t in tickers])


def _extract_close_prices(data: pd.DataFrame) -> pd.DataFrame:
    """Handle the different return shapes emitted by :func:`yfinance.download`."""

    if isinstance(data.columns, pd.MultiIndex):
        for candidate in ("Adj Close", "Close"):
            if candidate in data.columns.levels[0]:
                closes = data[candidate]
                break
        else:
            raise KeyError("Unable to locate Close prices in Yahoo! data")
        if isinstance(closes, pd.Series):
            closes = closes.to_frame()
        return closes

    # Single ticker path - standard dataframe with OHLC columns
    if "Adj Close" in data.columns:
        closes = data[["Adj Close"]]
    elif "Close" in data.columns:
        closes = data[["Close"]]
    else:
        raise KeyError("Yahoo! response missing 'Close' column")

    return closes


def _load_local_prices(
    vendor: str, tickers: Sequence[TickerMetadata], start: pd.Timestamp, end: pd.Timestamp
) -> pd.DataFrame:
    frames: list[pd.Series] = []
    for ticker in tickers:
        if not ticker.data_symbol:
            raise ValueError(
                f"Ticker '{ticker.symbol}' requires 'data_symbol' when using {vendor} source"
            )
        path = Path(ticker.data_symbol).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Data file '{path}' for ticker '{ticker.symbol}' not found")
        series = _read_price_series(path, vendor)
        frames.append(series.rename(ticker.symbol).loc[start:end])
    return pd.concat(frames, axis=1).sort_index()


_COLUMN_CANDIDATES = ("adj_close", "adj close", "adjclose", "close", "price")


def _read_price_series(path: Path, vendor: str) -> pd.Series:
    if vendor == "csv":
        frame = pd.read_csv(path)
    elif vendor == "parquet":
        frame = pd.read_parquet(path)
    else:
        raise ValueError(f"Unsupported local vendor '{vendor}'")

    lowered = {str(col).lower(): col for col in frame.columns}
    if "date" in lowered:
        date_col = lowered.pop("date")
        frame[date_col] = pd.to_datetime(frame[date_col])
        frame = frame.set_index(date_col).sort_index()
        frame.index.name = None
    elif not isinstance(frame.index, pd.DatetimeIndex):
        raise ValueError(
            f"Data file '{path}' must contain a 'date' column or be indexed by DatetimeIndex"
        )

    for candidate in _COLUMN_CANDIDATES:
        if candidate in lowered:
            return frame[lowered[candidate]].astype(float)

    numeric = frame.select_dtypes(include="number")
    if numeric.shape[1] == 1:
        return numeric.iloc[:, 0].astype(float)

    raise ValueError(
        f"Could not determine price column for '{path}'. Expected one of {_COLUMN_CANDIDATES}"
    )
