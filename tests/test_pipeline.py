"""End-to-end tests for the topology pipeline."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from topocorr.config import AnalysisConfig, MissingDataPolicy
from topocorr.engine.pipeline import TopologyPipeline
from topocorr.errors import InsufficientWindowError, MissingDataError
from topocorr.topology.homology import Barcode
from topocorr.transforms.distance import DistanceMatrix


class CountingEngine:
    """Homology stand-in that records every distance matrix it receives."""

    name = "counting"

    def __init__(self) -> None:
        self.calls: list[DistanceMatrix] = []

    def compute(self, distance: DistanceMatrix, max_dimension: int) -> Barcode:
        self.calls.append(distance)
        spread = float(distance.values.max())
        return Barcode.from_intervals(
            [(0, 0.0, np.inf), (1, 0.1, 0.1 + spread / 2)],
            max_dimension=max_dimension,
            window_index=distance.window_index,
            start_date=distance.start_date,
        )


def _prices(n_rows: int = 43, symbols=("AAA", "BBB", "CCC", "DDD"), seed: int = 5) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    index = pd.bdate_range("2022-01-03", periods=n_rows)
    shocks = rng.normal(0.0, 0.01, size=(n_rows, len(symbols)))
    return pd.DataFrame(100 * np.exp(np.cumsum(shocks, axis=0)), index=index, columns=list(symbols))


def _config(**overrides) -> AnalysisConfig:
    params = dict(
        start_date=pd.Timestamp("2022-01-01"),
        end_date=pd.Timestamp("2022-12-31"),
        tickers=("AAA", "BBB", "CCC", "DDD"),
        window_length=21,
    )
    params.update(overrides)
    return AnalysisConfig(**params)


def test_two_windows_of_four_tickers() -> None:
    engine = CountingEngine()
    result = TopologyPipeline(_prices(), _config(), homology_engine=engine).run()

    assert len(result.returns) == 42
    assert result.n_windows == 2
    assert [len(w) for w in result.windows] == [21, 21]
    assert len(engine.calls) == 2
    assert all(d.values.shape == (4, 4) for d in result.distances)
    assert [c.window_index for c in engine.calls] == [0, 1]

    first = result.distance_from_first
    assert list(first.columns) == ["window", "H1", "H2"]
    assert first.iloc[0]["H1"] == 0.0
    assert first.iloc[0]["H2"] == 0.0
    assert result.distance_from_previous["window"].tolist() == [1]


def test_pipeline_with_ripser_backend() -> None:
    result = TopologyPipeline(_prices(n_rows=64), _config(check_reproducibility=True)).run()
    assert result.n_windows == 3
    assert len(result.barcodes) == 3
    assert all(b.max_dimension == 2 for b in result.barcodes)
    assert len(result.distance_from_first) == 3
    assert len(result.distance_from_previous) == 2
    assert (result.distance_from_first[["H1", "H2"]].to_numpy() >= 0).all()
    stats = result.barcode_stats
    assert set(stats["dimension"]) == {0, 1, 2}
    assert len(stats) == 9
    frame = result.barcodes_frame()
    assert set(frame.columns) == {"window", "dimension", "birth", "death"}


def test_pipeline_parallel_matches_sequential() -> None:
    prices = _prices(n_rows=64)
    sequential = TopologyPipeline(prices, _config()).run()
    parallel = TopologyPipeline(prices, _config(n_jobs=2)).run()
    pd.testing.assert_frame_equal(sequential.distance_from_first, parallel.distance_from_first)
    for lhs, rhs in zip(sequential.barcodes, parallel.barcodes):
        assert lhs.window_index == rhs.window_index
        for k in range(3):
            assert np.array_equal(lhs.dimension(k), rhs.dimension(k))


def test_partial_trailing_window_is_kept() -> None:
    engine = CountingEngine()
    result = TopologyPipeline(_prices(n_rows=50), _config(), homology_engine=engine).run()
    assert [len(w) for w in result.windows] == [21, 21, 7]
    assert len(engine.calls) == 3


def test_period_slice_restricts_rows() -> None:
    prices = _prices(n_rows=120)
    engine = CountingEngine()
    pipeline = TopologyPipeline(prices, _config(), homology_engine=engine)
    result = pipeline.run(start=prices.index[0], end=prices.index[42])
    assert len(result.prices) == 43
    assert result.n_windows == 2


def test_missing_prices_fail_by_default() -> None:
    prices = _prices()
    prices.iloc[10, 2] = np.nan
    with pytest.raises(MissingDataError):
        TopologyPipeline(prices, _config(), homology_engine=CountingEngine()).run()


def test_zero_fill_policy_flags_substitutions() -> None:
    prices = _prices()
    prices.iloc[10, 2] = np.nan
    cfg = _config(missing_data=MissingDataPolicy.ZERO_FILL)
    result = TopologyPipeline(prices, cfg, homology_engine=CountingEngine()).run()
    assert result.returns.n_flagged == 2
    assert result.n_windows == 2


def test_config_hash_is_stable() -> None:
    engine = CountingEngine()
    first = TopologyPipeline(_prices(), _config(), homology_engine=engine).run()
    second = TopologyPipeline(_prices(), _config(), homology_engine=engine).run()
    third = TopologyPipeline(_prices(), _config(window_length=10), homology_engine=engine).run()
    assert first.config_hash == second.config_hash
    assert first.config_hash != third.config_hash


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        _config(window_length=0)
    with pytest.raises(ValueError):
        _config(distance_dimensions=(3,))
    with pytest.raises(ValueError):
        _config(source="auto")


def test_one_row_trailing_window_fails_the_run() -> None:
    engine = CountingEngine()
    pipeline = TopologyPipeline(_prices(n_rows=44), _config(), homology_engine=engine)
    with pytest.raises(InsufficientWindowError, match="window_length") as excinfo:
        pipeline.run()
    assert excinfo.value.window_index == 2
    assert excinfo.value.rows == 1
    assert engine.calls == []


def _payload(**sections) -> dict:
    payload = {
        "analysis": {"start": "2022-01-01", "end": "2022-12-31"},
        "universe": {"tickers": ["AAA", "BBB"]},
    }
    for name, values in sections.items():
        payload.setdefault(name, {}).update(values)
    return payload


def test_config_from_dict_reads_sections() -> None:
    cfg = AnalysisConfig.from_dict(
        _payload(
            analysis={"window_length": 5},
            data={"source": "synthetic", "holidays": ["2022-07-04"]},
            topology={"diagram_metric": "Bottleneck"},
        )
    )
    assert cfg.window_length == 5
    assert cfg.source == "synthetic"
    assert cfg.holidays == ("2022-07-04",)
    assert cfg.diagram_metric == "bottleneck"


@pytest.mark.parametrize(
    "section, typo",
    [("analysis", "window_lenght"), ("data", "sede"), ("topology", "backend")],
)
def test_config_from_dict_rejects_unknown_fields(section: str, typo: str) -> None:
    with pytest.raises(KeyError, match=f"Unknown {section} configuration fields: {typo}"):
        AnalysisConfig.from_dict(_payload(**{section: {typo: 5}}))
