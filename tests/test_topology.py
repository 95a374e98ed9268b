"""Tests for homology adapters, diagram distances and distance series."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from topocorr.topology.diagram_distance import DiagramDistance
from topocorr.topology.homology import (
    Barcode,
    GudhiHomologyEngine,
    RipserHomologyEngine,
    make_homology_engine,
)
from topocorr.topology.series import distance_series
from topocorr.transforms.distance import DistanceMatrix


def _square() -> DistanceMatrix:
    # Four points on a cycle: sides 1.0, diagonals 1.5.
    values = np.array(
        [
            [0.0, 1.0, 1.5, 1.0],
            [1.0, 0.0, 1.0, 1.5],
            [1.5, 1.0, 0.0, 1.0],
            [1.0, 1.5, 1.0, 0.0],
        ]
    )
    return DistanceMatrix(values=values, tickers=("A", "B", "C", "D"), window_index=0)


def _barcode(intervals, window_index=0, start="2024-01-01") -> Barcode:
    return Barcode.from_intervals(
        intervals,
        max_dimension=2,
        window_index=window_index,
        start_date=pd.Timestamp(start),
    )


def test_barcode_from_intervals_groups_by_dimension() -> None:
    barcode = _barcode([(0, 0.0, np.inf), (0, 0.0, 0.4), (1, 0.5, 0.9)])
    assert barcode.max_dimension == 2
    assert len(barcode.dimension(0)) == 2
    assert barcode.dimension(1).tolist() == [[0.5, 0.9]]
    assert barcode.dimension(2).shape == (0, 2)
    assert barcode.dimension(5).shape == (0, 2)
    assert len(barcode.finite(0)) == 1
    assert not barcode.dimension(1).flags.writeable


def test_barcode_to_frame_carries_window() -> None:
    frame = _barcode([(0, 0.0, 0.4), (1, 0.5, 0.9)], window_index=3).to_frame()
    assert list(frame.columns) == ["window", "dimension", "birth", "death"]
    assert frame["window"].tolist() == [3, 3]


def test_ripser_engine_finds_square_cycle() -> None:
    barcode = RipserHomologyEngine().compute(_square(), max_dimension=2)
    assert barcode.max_dimension == 2
    h0 = barcode.dimension(0)
    assert len(h0) == 4
    assert np.isinf(h0[:, 1]).sum() == 1
    h1 = barcode.dimension(1)
    assert len(h1) == 1
    assert h1[0, 0] == pytest.approx(1.0)
    assert h1[0, 1] == pytest.approx(1.5)
    assert barcode.window_index == 0


def test_gudhi_engine_matches_ripser_on_square() -> None:
    pytest.importorskip("gudhi")
    barcode = GudhiHomologyEngine().compute(_square(), max_dimension=1)
    h1 = barcode.dimension(1)
    assert len(h1) == 1
    assert h1[0, 0] == pytest.approx(1.0)
    assert h1[0, 1] == pytest.approx(1.5)


def test_make_homology_engine_rejects_unknown_backend() -> None:
    assert make_homology_engine("RIPSER").name == "ripser"
    with pytest.raises(ValueError):
        make_homology_engine("dionysus")


@pytest.mark.parametrize("metric", ["wasserstein", "bottleneck"])
def test_diagram_distance_symmetric_and_zero_on_identical(metric: str) -> None:
    engine = DiagramDistance(metric)
    lhs = _barcode([(1, 0.2, 0.5), (1, 0.3, 0.9)])
    rhs = _barcode([(1, 0.25, 0.6)])
    forward = engine.distance(lhs, rhs, 1)
    backward = engine.distance(rhs, lhs, 1)
    assert forward > 0.0
    assert forward == backward
    assert engine.distance(lhs, lhs, 1) == 0.0


@pytest.mark.parametrize("metric", ["wasserstein", "bottleneck"])
def test_diagram_distance_is_bit_identical_under_swap(metric: str) -> None:
    engine = DiagramDistance(metric)
    rng = np.random.default_rng(11)
    for _ in range(50):
        births = rng.uniform(0.0, 1.0, size=(2, 4))
        deaths = births + rng.uniform(0.01, 0.8, size=(2, 4))
        lhs = _barcode([(1, b, d) for b, d in zip(births[0], deaths[0])])
        rhs = _barcode([(1, b, d) for b, d in zip(births[1][:3], deaths[1][:3])])
        assert engine.distance(lhs, rhs, 1) == engine.distance(rhs, lhs, 1)


def test_diagram_distance_with_empty_diagrams() -> None:
    empty = _barcode([(0, 0.0, np.inf)])
    loaded = _barcode([(1, 0.2, 0.6), (1, 0.4, 0.5)])

    wasserstein = DiagramDistance("wasserstein")
    bottleneck = DiagramDistance("bottleneck")
    assert wasserstein.distance(empty, empty, 1) == 0.0
    assert wasserstein.distance(empty, loaded, 1) == pytest.approx(0.25)
    assert wasserstein.distance(loaded, empty, 1) == pytest.approx(0.25)
    assert bottleneck.distance(empty, loaded, 1) == pytest.approx(0.2)
    # Essential classes never enter the matching.
    assert wasserstein.distance(empty, empty, 0) == 0.0


def test_diagram_distance_rejects_unknown_metric() -> None:
    with pytest.raises(ValueError):
        DiagramDistance("sliced")


def _history() -> list[Barcode]:
    return [
        _barcode([(1, 0.2, 0.5)], window_index=0, start="2024-01-01"),
        _barcode([(1, 0.2, 0.7)], window_index=1, start="2024-01-30"),
        _barcode([(1, 0.2, 0.5), (2, 0.8, 0.9)], window_index=2, start="2024-02-28"),
    ]


def test_distance_series_from_first() -> None:
    barcodes = _history()
    series = distance_series(barcodes, [1, 2], reference="first")
    assert list(series.columns) == ["window", "H1", "H2"]
    assert series["window"].tolist() == [0, 1, 2]
    assert series.index.name == "start_date"
    assert series.iloc[0][["H1", "H2"]].tolist() == pytest.approx([0.0, 0.0], abs=1e-12)
    assert series["H1"].iloc[1] > 0.0
    assert series["H1"].iloc[2] == pytest.approx(0.0, abs=1e-12)
    assert series["H2"].iloc[2] == pytest.approx(0.05)


def test_distance_series_from_previous_skips_first_window() -> None:
    barcodes = _history()
    series = distance_series(barcodes, [1, 2], reference="previous")
    assert series["window"].tolist() == [1, 2]
    assert list(series.index) == [pd.Timestamp("2024-01-30"), pd.Timestamp("2024-02-28")]
    engine = DiagramDistance()
    assert series["H1"].iloc[1] == pytest.approx(engine.distance(barcodes[1], barcodes[2], 1))


def test_distance_series_single_window() -> None:
    barcodes = _history()[:1]
    assert distance_series(barcodes, [1], reference="previous").empty
    assert distance_series(barcodes, [1], reference="first")["H1"].tolist() == pytest.approx([0.0], abs=1e-12)


def test_distance_series_requires_chronological_order() -> None:
    barcodes = list(reversed(_history()))
    with pytest.raises(ValueError):
        distance_series(barcodes, [1])
    with pytest.raises(ValueError):
        distance_series(_history(), [1], reference="next")
