"""Run configuration for the correlation-topology analysis.

The YAML file loaded by :func:`topocorr.api.load_config` is a free-form
mapping.  :class:`AnalysisConfig` turns it into an immutable value that is
passed explicitly into every component, so no module reads global settings.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Sequence

import pandas as pd

DEFAULT_WINDOW_LENGTH = 21
DEFAULT_MAX_DIMENSION = 2
DEFAULT_TOLERANCE = 1e-9


class MissingDataPolicy(str, Enum):
    """How undefined log returns are treated."""

    FAIL = "fail"
    ZERO_FILL = "zero_fill"
    DROP_ROW = "drop_row"

    @classmethod
    def parse(cls, value: "MissingDataPolicy | str") -> "MissingDataPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as exc:
            allowed = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown missing-data policy '{value}'. Expected one of: {allowed}") from exc


@dataclass(frozen=True, slots=True)
class AnalysisPeriod:
    """Named sub-range of the loaded history analysed on its own."""

    name: str
    start: pd.Timestamp
    end: pd.Timestamp

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Analysis period requires a name")
        if self.end < self.start:
            raise ValueError(f"Period '{self.name}' ends before it starts")

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "AnalysisPeriod":
        data = dict(payload)
        try:
            name = str(data.pop("name"))
            start = pd.Timestamp(str(data.pop("start")))
            end = pd.Timestamp(str(data.pop("end")))
        except KeyError as exc:
            raise KeyError(f"Analysis period missing field {exc}") from exc
        if data:
            unknown = ", ".join(sorted(data))
            raise KeyError(f"Unknown analysis period fields: {unknown}")
        return cls(name=name, start=start, end=end)


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    """Explicit configuration value for one analysis run.

    Parameters
    ----------
    start_date, end_date:
        Inclusive bounds of the price history to load.
    tickers:
        Ticker entries, either plain symbols or metadata mappings understood
        by :class:`topocorr.data.metadata.TickerMetadata`.
    window_length:
        Number of trading days per non-overlapping window.
    max_dimension:
        Highest homology dimension computed by the homology backend.
    distance_dimensions:
        Dimensions tracked in the distance-over-time series.
    missing_data:
        Policy applied to undefined log returns.
    tolerance:
        Allowed floating-point overshoot of correlations beyond [-1, 1].
    holidays:
        Exchange holidays removed from the weekday trading calendar.
    """

    start_date: pd.Timestamp
    end_date: pd.Timestamp
    tickers: tuple[Any, ...]
    window_length: int = DEFAULT_WINDOW_LENGTH
    max_dimension: int = DEFAULT_MAX_DIMENSION
    distance_dimensions: tuple[int, ...] = (1, 2)
    missing_data: MissingDataPolicy = MissingDataPolicy.FAIL
    tolerance: float = DEFAULT_TOLERANCE
    n_jobs: int = 1
    check_reproducibility: bool = False
    results_dir: str = "./results"
    source: str = "vendor"
    seed: int = 42
    max_retries: int = 3
    backoff_seconds: float = 1.0
    stress_periods: tuple[tuple[str, str], ...] = ()
    holidays: tuple[str, ...] = ()
    homology_backend: str = "ripser"
    diagram_metric: str = "wasserstein"
    periods: tuple[AnalysisPeriod, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise ValueError("Analysis end date precedes start date")
        if not self.tickers:
            raise ValueError("At least one ticker must be configured")
        if isinstance(self.window_length, bool) or int(self.window_length) != self.window_length:
            raise ValueError("window_length must be an integer")
        if self.window_length <= 0:
            raise ValueError("window_length must be a positive integer")
        if self.max_dimension < 0:
            raise ValueError("max_dimension must be non-negative")
        for dim in self.distance_dimensions:
            if dim < 0 or dim > self.max_dimension:
                raise ValueError(
                    f"Distance dimension {dim} outside computed range 0..{self.max_dimension}"
                )
        if self.tolerance < 0:
            raise ValueError("tolerance must be non-negative")
        if self.source not in {"vendor", "synthetic"}:
            raise ValueError(f"Unsupported price source: {self.source}")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")

    def resolved_periods(self) -> tuple[AnalysisPeriod, ...]:
        """Return configured periods or a single ``full`` period covering the run."""

        if self.periods:
            return self.periods
        return (AnalysisPeriod(name="full", start=self.start_date, end=self.end_date),)

    def with_overrides(self, **changes: Any) -> "AnalysisConfig":
        return replace(self, **changes)

    @classmethod
    def from_dict(
        cls,
        payload: Mapping[str, Any],
        *,
        tickers: Sequence[Any] | None = None,
    ) -> "AnalysisConfig":
        """Build a configuration from the nested YAML mapping.

        ``tickers`` overrides ``universe.tickers`` and is used when the
        universe lives in a separate assets file.
        """

        analysis = dict(_section(payload, "analysis"))
        data_cfg = dict(_section(payload, "data"))
        topology = dict(_section(payload, "topology"))

        start = analysis.pop("start_date", None)
        start = analysis.pop("start", start)
        end = analysis.pop("end_date", None)
        end = analysis.pop("end", end)
        if start is None or end is None:
            raise KeyError("Analysis configuration requires 'start' and 'end'")

        if tickers is None:
            universe = _section(payload, "universe")
            tickers = universe.get("tickers")
        if not isinstance(tickers, Sequence) or isinstance(tickers, str):
            raise TypeError("Universe must provide a 'tickers' list")

        periods_cfg = payload.get("periods") or []
        if not isinstance(periods_cfg, Sequence):
            raise TypeError("'periods' must be a list of mappings")

        config = cls(
            start_date=pd.Timestamp(str(start)),
            end_date=pd.Timestamp(str(end)),
            tickers=tuple(dict(t) if isinstance(t, Mapping) else str(t) for t in tickers),
            window_length=int(analysis.pop("window_length", DEFAULT_WINDOW_LENGTH)),
            max_dimension=int(analysis.pop("max_dimension", DEFAULT_MAX_DIMENSION)),
            distance_dimensions=tuple(int(d) for d in analysis.pop("distance_dimensions", (1, 2))),
            missing_data=MissingDataPolicy.parse(analysis.pop("missing_data", "fail")),
            tolerance=float(analysis.pop("tolerance", DEFAULT_TOLERANCE)),
            n_jobs=int(analysis.pop("n_jobs", 1)),
            check_reproducibility=bool(analysis.pop("check_reproducibility", False)),
            results_dir=str(analysis.pop("results_dir", "./results")),
            source=str(data_cfg.pop("source", "vendor")).lower(),
            seed=int(data_cfg.pop("seed", 42)),
            max_retries=int(data_cfg.pop("max_retries", 3)),
            backoff_seconds=float(data_cfg.pop("backoff_seconds", 1.0)),
            stress_periods=tuple(
                (str(s), str(e)) for s, e in data_cfg.pop("stress_periods", ()) or ()
            ),
            holidays=tuple(str(day) for day in data_cfg.pop("holidays", ()) or ()),
            homology_backend=str(topology.pop("homology_backend", "ripser")).lower(),
            diagram_metric=str(topology.pop("diagram_metric", "wasserstein")).lower(),
            periods=tuple(AnalysisPeriod.from_dict(p) for p in periods_cfg),
        )

        for section, leftover in (("analysis", analysis), ("data", data_cfg), ("topology", topology)):
            if leftover:
                unknown = ", ".join(sorted(str(key) for key in leftover))
                raise KeyError(f"Unknown {section} configuration fields: {unknown}")
        return config


def _section(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = payload.get(key, {}) or {}
    if not isinstance(value, Mapping):
        raise TypeError(f"'{key}' configuration must be a mapping")
    return value


__all__ = [
    "AnalysisConfig",
    "AnalysisPeriod",
    "DEFAULT_MAX_DIMENSION",
    "DEFAULT_TOLERANCE",
    "DEFAULT_WINDOW_LENGTH",
    "MissingDataPolicy",
]
