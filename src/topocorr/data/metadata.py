"""Ticker metadata for the equity basket.

A ticker is usually configured as a plain symbol that is looked up on
Yahoo! Finance.  Mappings allow pointing a symbol at a different vendor
symbol or at a local CSV/Parquet file, which is how offline reproductions of
the crisis study are wired up.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

_SOURCES = {"yahoo", "csv", "parquet"}


@dataclass(frozen=True, slots=True)
class TickerMetadata:
    """Describe a single equity and where its prices come from.

    Parameters
    ----------
    symbol:
        Internal symbol used as the column name throughout the pipeline.
    data_source:
        ``"yahoo"`` (default), ``"csv"`` or ``"parquet"``.
    data_symbol:
        Vendor symbol override for Yahoo, or the file path for local sources.
    sector:
        Optional sector label carried into reports.
    description:
        Human readable text used for logs or reports.
    """

    symbol: str
    data_source: str = "yahoo"
    data_symbol: Optional[str] = None
    sector: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("Ticker symbol must be provided")
        if self.data_source.lower() not in _SOURCES:
            raise ValueError(f"Unsupported data source '{self.data_source}' for '{self.symbol}'")

    @property
    def vendor_symbol(self) -> str:
        """Return the symbol understood by the configured data vendor."""

        return self.data_symbol or self.symbol

    @classmethod
    def from_entry(cls, entry: "Mapping[str, object] | str | TickerMetadata") -> "TickerMetadata":
        """Construct metadata from a symbol string or a YAML/JSON record."""

        if isinstance(entry, TickerMetadata):
            return entry
        if isinstance(entry, str):
            return cls(symbol=entry)

        data = dict(entry)
        try:
            symbol = str(data.pop("symbol"))
        except KeyError as exc:
            raise KeyError("Ticker mapping missing 'symbol'") from exc
        data_source = str(data.pop("data_source", "yahoo")).lower()
        data_symbol = data.pop("data_symbol", None)
        sector = data.pop("sector", None)
        description = data.pop("description", None)
        if data:
            # Surface configuration typos early.
            unknown = ", ".join(sorted(data))
            raise KeyError(f"Unknown ticker metadata fields: {unknown}")
        return cls(
            symbol=symbol,
            data_source=data_source,
            data_symbol=str(data_symbol) if data_symbol is not None else None,
            sector=str(sector) if sector is not None else None,
            description=str(description) if description is not None else None,
        )


@dataclass(slots=True)
class UniverseDefinition:
    """Ordered, duplicate-free collection of :class:`TickerMetadata`."""

    tickers: Sequence[TickerMetadata] = field(default_factory=list)

    def __post_init__(self) -> None:
        symbols = self.symbols
        if not symbols:
            raise ValueError("Universe must contain at least one ticker")
        if len(symbols) != len(set(symbols)):
            raise ValueError("Universe contains duplicate ticker symbols")

    @property
    def symbols(self) -> list[str]:
        return [t.symbol for t in self.tickers]

    @classmethod
    def from_payload(
        cls, entries: Iterable["Mapping[str, object] | str | TickerMetadata"]
    ) -> "UniverseDefinition":
        return cls([TickerMetadata.from_entry(entry) for entry in entries])
