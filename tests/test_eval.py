import numpy as np
import pandas as pd
import pytest

from topocorr.eval.metrics import barcode_statistics, distance_summary, peak_dates
from topocorr.report.exporter import write_html, write_pdf
from topocorr.report.plots import plot_barcode, plot_distance_heatmap, plot_distance_series
from topocorr.topology.homology import Barcode
from topocorr.transforms.distance import DistanceMatrix


def _barcode():
    return Barcode.from_intervals(
        [(0, 0.0, np.inf), (0, 0.0, 0.6), (1, 0.7, 1.0), (1, 0.8, 0.9)],
        max_dimension=2,
        window_index=0,
        start_date=pd.Timestamp("2008-09-02"),
    )


def _series():
    index = pd.DatetimeIndex(
        pd.to_datetime(["2008-01-02", "2008-02-01", "2008-03-03"]), name="start_date"
    )
    return pd.DataFrame({"window": [0, 1, 2], "H1": [0.0, 0.4, 0.1], "H2": [0.0, 0.05, 0.2]}, index=index)


def test_barcode_statistics_ignores_essential_classes():
    stats = barcode_statistics([_barcode()]).set_index("dimension")
    assert stats.loc[0, "feature_count"] == 2
    assert stats.loc[0, "total_persistence"] == pytest.approx(0.6)
    assert stats.loc[1, "total_persistence"] == pytest.approx(0.4)
    assert stats.loc[1, "max_persistence"] == pytest.approx(0.3)
    assert stats.loc[2, "feature_count"] == 0
    assert stats.loc[2, "max_persistence"] == 0.0


def test_peak_dates_and_summary():
    series = _series()
    peaks = peak_dates(series, prefix="From first")
    assert peaks == {"From first H1 peak": "2008-02-01", "From first H2 peak": "2008-03-03"}

    summary = distance_summary(series, series.iloc[1:], n_windows=3)
    assert summary["Windows"] == 3.0
    assert summary["From first H1 max"] == pytest.approx(0.4)
    assert summary["From previous H2 mean"] == pytest.approx(0.125)
    assert "window" not in " ".join(summary)


def test_charts_and_reports_are_written(tmp_path):
    barcode_path = tmp_path / "barcodes" / "barcode.png"
    plot_barcode(_barcode(), barcode_path)
    assert barcode_path.exists()

    series_path = tmp_path / "series.png"
    plot_distance_series(_series(), series_path, title="Distance from first window")
    assert series_path.exists()

    values = np.array([[0.0, 0.5, 1.9], [0.5, 0.0, 1.2], [1.9, 1.2, 0.0]])
    heatmap_path = tmp_path / "heatmap.png"
    plot_distance_heatmap(
        DistanceMatrix(values=values, tickers=("A", "B", "C")), heatmap_path, title="Window 0"
    )
    assert heatmap_path.exists()

    summary = distance_summary(_series(), _series().iloc[1:], n_windows=3)
    charts = [("Series", "series.png")]
    gallery = [("Barcode", "barcodes/barcode.png")]
    html = write_html(
        tmp_path,
        summary,
        tables=[("Barcode Statistics", barcode_statistics([_barcode()]))],
        charts=charts,
        gallery=gallery,
        metadata={"config_hash": "abc"},
    )
    pdf = write_pdf(tmp_path, summary, charts=charts, gallery=gallery, metadata={"config_hash": "abc"})
    text = html.read_text()
    assert "Correlation Topology Report" in text
    assert "barcodes/barcode.png" in text
    assert pdf.exists()


def test_empty_series_skips_chart(tmp_path):
    empty = _series().iloc[0:0]
    path = tmp_path / "empty.png"
    plot_distance_series(empty, path, title="Empty")
    assert not path.exists()
