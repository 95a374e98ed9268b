import json
from pathlib import Path

import pandas as pd
import pytest
import yaml

from topocorr import api
from topocorr.cli import main as cli_main


def _base_config(tmp_path: Path) -> dict:
    return {
        "analysis": {
            "start": "2020-01-01",
            "end": "2020-06-30",
            "window_length": 21,
            "results_dir": str(tmp_path / "results"),
        },
        "universe": {"tickers": ["AAA", "BBB", "CCC", "DDD", "EEE"]},
        "data": {"source": "synthetic", "seed": 3, "stress_periods": [["2020-03-01", "2020-04-15"]]},
        "periods": [
            {"name": "first-half", "start": "2020-01-01", "end": "2020-03-30"},
            {"name": "second-half", "start": "2020-03-31", "end": "2020-06-30"},
        ],
    }


def _make_test_config(tmp_path: Path, **changes) -> Path:
    cfg = _base_config(tmp_path)
    cfg.update(changes)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(cfg))
    return config_path


def test_api_run_analysis_full_range(tmp_path):
    result, context = api.run_analysis(_base_config(tmp_path))
    assert context.config.source == "synthetic"
    assert context.config_path is None
    assert list(context.prices.columns) == ["AAA", "BBB", "CCC", "DDD", "EEE"]
    assert result.n_windows == -(-len(result.returns) // 21)
    assert result.distance_from_first.iloc[0]["H1"] == 0.0


def test_api_run_periods_loads_prices_once(tmp_path, monkeypatch):
    from topocorr import api as api_module

    calls = {"count": 0}
    original = api_module.load_prices

    def counting_load(*args, **kwargs):
        calls["count"] += 1
        return original(*args, **kwargs)

    monkeypatch.setattr(api_module, "load_prices", counting_load)

    config_path = _make_test_config(tmp_path)
    results, context = api.run_periods(config_path)
    assert calls["count"] == 1
    assert [r.period.name for r in results] == ["first-half", "second-half"]
    assert context.config_path == config_path
    for item in results:
        assert item.results.prices.index.min() >= item.period.start
        assert item.results.prices.index.max() <= item.period.end


def test_api_window_sweep(tmp_path):
    summary, _ = api.run_window_sweep(_base_config(tmp_path), [10, 21])
    assert list(summary.index) == [10, 21]
    assert summary.loc[10, "Windows"] > summary.loc[21, "Windows"]
    assert "From first H1 mean" in summary.columns


def test_load_universe_from_assets_file(tmp_path):
    configs = tmp_path / "configs"
    configs.mkdir()
    (configs / "universe.yaml").write_text(
        yaml.safe_dump({"tickers": ["AAA", {"symbol": "BBB", "sector": "Financials"}]})
    )
    cfg = {"universe": {"assets_file": "configs/universe.yaml"}}
    tickers = api.load_universe(cfg, base_path=configs)
    assert tickers == ["AAA", {"symbol": "BBB", "sector": "Financials"}]


def test_merge_overrides_is_recursive():
    base = {"analysis": {"window_length": 21, "max_dimension": 2}}
    merged = api.merge_overrides(base, {"analysis": {"window_length": 10}})
    assert merged == {"analysis": {"window_length": 10, "max_dimension": 2}}
    assert base["analysis"]["window_length"] == 21


def test_cli_run_writes_outputs(tmp_path):
    config_path = _make_test_config(tmp_path)
    cli_main(["run", "--config", str(config_path), "--run-id", "test-run"])

    run_dir = tmp_path / "results" / "test-run"
    for period in ("first-half", "second-half"):
        outdir = run_dir / period
        assert (outdir / "report.html").exists()
        assert (outdir / "report.pdf").exists()
        assert (outdir / "distance_from_first.png").exists()
        assert (outdir / "distance_from_previous.csv").exists()
        assert (outdir / "barcode_stats.csv").exists()
        assert any((outdir / "barcodes").glob("barcode_*.png"))
        assert any((outdir / "diagrams").glob("diagram_*.png"))
        summary = json.loads((outdir / "summary.json").read_text())
        assert summary["Windows"] >= 1
        tidy = pd.read_csv(outdir / "prices.csv")
        assert list(tidy.columns) == ["date", "ticker", "adj_close"]


def test_cli_report_prints_latest(tmp_path, capsys):
    config_path = _make_test_config(tmp_path)
    cli_main(["run", "--config", str(config_path), "--run-id", "latest", "--window-length", "30"])
    capsys.readouterr()
    cli_main(["report", "--config", str(config_path), "--run-id", "last"])
    captured = capsys.readouterr()
    assert "Report available at" in captured.out
    assert "report.html" in captured.out


def test_cli_sweep_writes_summary(tmp_path):
    config_path = _make_test_config(tmp_path)
    cli_main(["sweep", "--config", str(config_path), "--run-id", "sw", "--window-lengths", "10", "21"])
    summary = pd.read_csv(tmp_path / "results" / "sw" / "sweep_summary.csv")
    assert summary["window_length"].tolist() == [10, 21]


def test_cli_reports_invalid_config(tmp_path):
    config_path = _make_test_config(tmp_path)
    with pytest.raises(SystemExit) as excinfo:
        cli_main(["run", "--config", str(config_path), "--window-length", "0"])
    assert excinfo.value.code == 1


def test_config_holidays_reach_price_loader(tmp_path):
    cfg = _base_config(tmp_path)
    cfg["data"]["holidays"] = ["2020-01-20"]
    _, context = api.run_analysis(cfg)
    assert pd.Timestamp("2020-01-20") not in context.prices.index
    assert pd.Timestamp("2020-01-21") in context.prices.index


def test_cli_reports_unknown_config_key(tmp_path, capsys):
    cfg = _base_config(tmp_path)
    cfg["analysis"]["window_lenght"] = 5
    config_path = tmp_path / "typo.yaml"
    config_path.write_text(yaml.safe_dump(cfg))
    with pytest.raises(SystemExit) as excinfo:
        cli_main(["run", "--config", str(config_path)])
    assert excinfo.value.code == 1
    assert "window_lenght" in capsys.readouterr().out
