"""Exception hierarchy for the correlation-topology pipeline.

Every domain error derives from :class:`ValueError` so that callers (and the
command line interface) can treat bad inputs uniformly while still being able
to distinguish the failure class when they need to.
"""

from __future__ import annotations


class TopologyError(ValueError):
    """Base class for all pipeline errors."""


class DataAvailabilityError(TopologyError):
    """A requested ticker has no usable prices in the requested range."""

    def __init__(self, message: str, *, tickers: list[str] | None = None) -> None:
        super().__init__(message)
        self.tickers = list(tickers or [])


class PriceFetchError(TopologyError, RuntimeError):
    """The market-data vendor kept failing after all retry attempts."""


class MissingDataError(TopologyError):
    """Undefined log returns were found and the policy forbids substitution."""

    def __init__(self, message: str, *, positions: list[tuple[str, str]] | None = None) -> None:
        super().__init__(message)
        self.positions = list(positions or [])


class NumericalDomainError(TopologyError):
    """A value fell outside the mathematical domain of a transform."""


class NonPositivePriceError(NumericalDomainError):
    """A price at or below zero makes its log return undefined."""

    def __init__(self, message: str, *, positions: list[tuple[str, str]] | None = None) -> None:
        super().__init__(message)
        self.positions = list(positions or [])


class InsufficientWindowError(TopologyError):
    """A window is too short for its correlation matrix to be defined."""

    def __init__(self, message: str, *, window_index: int | None = None, rows: int = 0) -> None:
        super().__init__(message)
        self.window_index = window_index
        self.rows = rows


__all__ = [
    "DataAvailabilityError",
    "InsufficientWindowError",
    "MissingDataError",
    "NonPositivePriceError",
    "NumericalDomainError",
    "PriceFetchError",
    "TopologyError",
]
