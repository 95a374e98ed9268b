"""High-level helpers for notebooks and scripts."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from collections.abc import Mapping, MutableMapping, Sequence

import pandas as pd
import yaml

from .config import AnalysisConfig, AnalysisPeriod
from .data.calendar import TradingCalendar
from .data.ingest import load_prices
from .engine.pipeline import AnalysisResults, TopologyPipeline
from .eval.metrics import distance_summary
from .topology.homology import HomologyEngine


@dataclass(frozen=True)
class AnalysisContext:
    """Runtime artefacts that are useful in notebooks."""

    config: AnalysisConfig
    raw_config: dict[str, Any]
    config_path: Path | None
    config_dir: Path | None
    prices: pd.DataFrame

    @property
    def results_dir(self) -> Path:
        return Path(self.config.results_dir)


@dataclass(frozen=True)
class PeriodResult:
    """Analysis results for one named period."""

    period: AnalysisPeriod
    results: AnalysisResults


def load_config(path: str | Path) -> dict[str, Any]:
    """Return a deep copy of the YAML configuration file."""

    cfg_path = Path(path)
    data = yaml.safe_load(cfg_path.read_text())
    if not isinstance(data, dict):
        raise TypeError("Configuration file must define a mapping at the top level")
    return copy.deepcopy(data)


def load_universe(config: Mapping[str, Any], *, base_path: Path | None = None) -> list[Any]:
    """Return the ticker entries configured inline or in ``universe.assets_file``."""

    universe_cfg = config.get("universe", {})
    if not isinstance(universe_cfg, Mapping):
        raise TypeError("'universe' configuration must be a mapping")

    tickers = universe_cfg.get("tickers")
    if tickers is not None:
        if not isinstance(tickers, list):
            raise TypeError("'universe.tickers' must be a list")
        return [dict(t) if isinstance(t, Mapping) else str(t) for t in tickers]

    assets_file = universe_cfg.get("assets_file")
    if assets_file is None:
        raise KeyError("Universe configuration must provide 'tickers' or 'assets_file'")

    assets_path = Path(str(assets_file))
    if not assets_path.is_absolute():
        candidates: list[Path] = []
        if base_path is not None:
            candidates.append((base_path / assets_path).resolve())
            parent = base_path.parent
            if parent != base_path:
                candidates.append((parent / assets_path).resolve())
        candidates.append((Path.cwd() / assets_path).resolve())

        for candidate in candidates:
            if candidate.exists():
                assets_path = candidate
                break
        else:
            assets_path = candidates[0]

    if not assets_path.exists():
        raise FileNotFoundError(f"Universe asset file not found: {assets_path}")
    assets_data = yaml.safe_load(assets_path.read_text()) or {}
    entries = assets_data.get("tickers")
    if not isinstance(entries, list):
        raise TypeError("Universe file must contain a 'tickers' list")
    return [dict(t) if isinstance(t, Mapping) else str(t) for t in entries]


def merge_overrides(base: Mapping[str, Any] | None, extra: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Recursively merge ``extra`` on top of ``base`` without mutating inputs."""

    if not base and not extra:
        return None

    def _merge(lhs: MutableMapping[str, Any], rhs: Mapping[str, Any]) -> MutableMapping[str, Any]:
        for key, value in rhs.items():
            if isinstance(value, Mapping) and isinstance(lhs.get(key), MutableMapping):
                lhs[key] = _merge(lhs[key], value)  # type: ignore[index]
            elif isinstance(value, Mapping):
                lhs[key] = _merge({}, value)
            else:
                lhs[key] = copy.deepcopy(value)
        return lhs

    merged: MutableMapping[str, Any] = {}
    if base:
        merged = _merge({}, base)
    if extra:
        merged = _merge(merged, extra)
    return dict(merged)


def resolve_config(
    config: Mapping[str, Any] | str | Path,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> tuple[AnalysisConfig, dict[str, Any], Path | None, Path | None]:
    """Return the typed configuration together with its raw mapping and location."""

    if isinstance(config, (str, Path)):
        cfg_path = Path(config)
        cfg_data = load_config(cfg_path)
        config_dir = cfg_path.parent.resolve()
    else:
        cfg_path = None
        cfg_data = copy.deepcopy(dict(config))
        config_dir = None

    if overrides:
        cfg_data = merge_overrides(cfg_data, overrides) or {}

    tickers = load_universe(cfg_data, base_path=config_dir)
    return AnalysisConfig.from_dict(cfg_data, tickers=tickers), cfg_data, cfg_path, config_dir


def prepare_pipeline(
    config: Mapping[str, Any] | str | Path,
    *,
    prices: pd.DataFrame | None = None,
    overrides: Mapping[str, Any] | None = None,
    homology_engine: HomologyEngine | None = None,
) -> tuple[TopologyPipeline, AnalysisContext]:
    """Load prices once and return a pipeline alongside the resolved context."""

    cfg, raw, cfg_path, config_dir = resolve_config(config, overrides=overrides)

    if prices is None:
        prices = load_prices(
            list(cfg.tickers),
            cfg.start_date,
            cfg.end_date,
            source=cfg.source,
            seed=cfg.seed,
            max_retries=cfg.max_retries,
            backoff_seconds=cfg.backoff_seconds,
            calendar=TradingCalendar(holidays=list(cfg.holidays)),
            stress_periods=cfg.stress_periods,
        )
    else:
        prices = prices.copy()

    context = AnalysisContext(
        config=cfg,
        raw_config=raw,
        config_path=cfg_path,
        config_dir=config_dir,
        prices=prices,
    )
    pipeline = TopologyPipeline(prices, cfg, homology_engine=homology_engine)
    return pipeline, context


def run_analysis(
    config: Mapping[str, Any] | str | Path,
    *,
    prices: pd.DataFrame | None = None,
    overrides: Mapping[str, Any] | None = None,
    homology_engine: HomologyEngine | None = None,
) -> tuple[AnalysisResults, AnalysisContext]:
    """Run the pipeline over the full configured date range."""

    pipeline, context = prepare_pipeline(
        config, prices=prices, overrides=overrides, homology_engine=homology_engine
    )
    return pipeline.run(), context


def run_periods(
    config: Mapping[str, Any] | str | Path,
    *,
    prices: pd.DataFrame | None = None,
    overrides: Mapping[str, Any] | None = None,
    homology_engine: HomologyEngine | None = None,
) -> tuple[list[PeriodResult], AnalysisContext]:
    """Run the pipeline once per configured period from a single price load."""

    pipeline, context = prepare_pipeline(
        config, prices=prices, overrides=overrides, homology_engine=homology_engine
    )
    results = [
        PeriodResult(period=period, results=pipeline.run(start=period.start, end=period.end))
        for period in context.config.resolved_periods()
    ]
    return results, context


def run_window_sweep(
    config: Mapping[str, Any] | str | Path,
    window_lengths: Sequence[int],
    *,
    prices: pd.DataFrame | None = None,
    overrides: Mapping[str, Any] | None = None,
    homology_engine: HomologyEngine | None = None,
) -> tuple[pd.DataFrame, AnalysisContext]:
    """Repeat the full-range analysis for each window length.

    Returns a frame indexed by window length with the headline distance
    statistics of each run.
    """

    if not window_lengths:
        raise ValueError("At least one window length is required for a sweep")

    pipeline, context = prepare_pipeline(
        config, prices=prices, overrides=overrides, homology_engine=homology_engine
    )
    records: list[dict[str, Any]] = []
    for length in window_lengths:
        scenario = TopologyPipeline(
            context.prices,
            context.config.with_overrides(window_length=int(length)),
            homology_engine=pipeline.homology_engine,
            diagram_distance=pipeline.diagram_distance,
        )
        result = scenario.run()
        record: dict[str, Any] = {"window_length": int(length), "config_hash": result.config_hash}
        record.update(
            distance_summary(
                result.distance_from_first,
                result.distance_from_previous,
                n_windows=result.n_windows,
            )
        )
        records.append(record)

    return pd.DataFrame(records).set_index("window_length"), context


__all__ = [
    "AnalysisContext",
    "PeriodResult",
    "load_config",
    "load_universe",
    "merge_overrides",
    "prepare_pipeline",
    "resolve_config",
    "run_analysis",
    "run_periods",
    "run_window_sweep",
]
