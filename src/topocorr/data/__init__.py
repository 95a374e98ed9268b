"""Data layer exports."""

from .calendar import TradingCalendar
from .ingest import load_prices
from .metadata import TickerMetadata, UniverseDefinition
from .synthetic import generate_synthetic_prices
from .validators import (
    SuspensionSpan,
    build_price_panel,
    check_availability,
    detect_trading_suspensions,
    to_price_table,
    validate_price_data,
)

__all__ = [
    "TickerMetadata",
    "UniverseDefinition",
    "TradingCalendar",
    "build_price_panel",
    "check_availability",
    "generate_synthetic_prices",
    "load_prices",
    "to_price_table",
    "validate_price_data",
    "detect_trading_suspensions",
    "SuspensionSpan",
]
