"""Command line interface for the correlation-topology toolkit."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import yaml
from rich import print as rprint

from . import api
from .data.validators import to_price_table
from .engine.pipeline import AnalysisResults
from .eval.metrics import distance_summary, peak_dates
from .report.exporter import write_html, write_pdf
from .report.plots import (
    plot_barcode,
    plot_distance_heatmap,
    plot_distance_series,
    plot_persistence_diagram,
)


def _export_table(
    data: pd.Series | pd.DataFrame,
    base_path: Path,
    label: str,
    *,
    index: bool = True,
) -> None:
    if isinstance(data, pd.Series):
        data.to_csv(base_path.with_suffix(".csv"))
        frame = data.to_frame(name=data.name or label)
    else:
        data.to_csv(base_path.with_suffix(".csv"), index=index)
        frame = data
    try:
        frame.to_parquet(base_path.with_suffix(".parquet"), index=index)
    except Exception as exc:  # pragma: no cover - optional dependency
        rprint(f"[yellow]Skipped Parquet export for {label}: {exc}[/yellow]")


def _parse_mapping_arg(value: str | None, *, label: str) -> dict[str, Any] | None:
    if value is None:
        return None

    candidate = Path(value)
    if candidate.exists():
        text = candidate.read_text()
    else:
        text = value

    try:
        parsed: Any = json.loads(text)
    except json.JSONDecodeError:
        parsed = yaml.safe_load(text)

    if parsed is None:
        return None
    if not isinstance(parsed, Mapping):
        raise ValueError(f"{label} must evaluate to a mapping (dict-like) structure")
    return dict(parsed)


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any] | None:
    extra: dict[str, Any] = {}
    if getattr(args, "source", None) is not None:
        extra.setdefault("data", {})["source"] = args.source
    if getattr(args, "seed", None) is not None:
        extra.setdefault("data", {})["seed"] = args.seed
    if getattr(args, "window_length", None) is not None:
        extra.setdefault("analysis", {})["window_length"] = args.window_length
    overrides = _parse_mapping_arg(getattr(args, "overrides", None), label="overrides")
    return api.merge_overrides(overrides, extra)


def _date_label(start_date: pd.Timestamp | None, window_index: int | None) -> str:
    if start_date is not None:
        return str(pd.Timestamp(start_date).date())
    return f"window-{window_index or 0:04d}"


def _prepare_run_directory(context: api.AnalysisContext, run_id: str) -> Path:
    outdir = context.results_dir / run_id
    outdir.mkdir(parents=True, exist_ok=True)
    return outdir


def _write_analysis_outputs(
    result: AnalysisResults,
    *,
    outdir: Path,
    metadata: Mapping[str, Any] | None = None,
) -> dict[str, float]:
    outdir.mkdir(parents=True, exist_ok=True)

    if result.prices is not None:
        _export_table(to_price_table(result.prices), outdir / "prices", "Prices", index=False)
    _export_table(result.returns.returns, outdir / "returns", "Returns")
    _export_table(result.returns.flagged, outdir / "flagged", "Flagged Returns")
    _export_table(result.distance_from_first, outdir / "distance_from_first", "Distance From First")
    _export_table(
        result.distance_from_previous, outdir / "distance_from_previous", "Distance From Previous"
    )
    _export_table(result.barcode_stats, outdir / "barcode_stats", "Barcode Statistics", index=False)
    _export_table(result.barcodes_frame(), outdir / "barcodes", "Barcodes", index=False)

    summary = distance_summary(
        result.distance_from_first,
        result.distance_from_previous,
        n_windows=result.n_windows,
    )
    (outdir / "summary.json").write_text(json.dumps(summary, indent=2))

    charts: list[tuple[str, str]] = []
    for path_name, frame, title in (
        ("distance_from_first.png", result.distance_from_first, "Distance from first window"),
        ("distance_from_previous.png", result.distance_from_previous, "Distance from previous window"),
    ):
        chart_path = outdir / path_name
        plot_distance_series(frame, chart_path, title=title)
        if chart_path.exists():
            charts.append((title, chart_path.name))

    if result.distances:
        first = result.distances[0]
        heatmap_path = outdir / "distance_heatmap_first.png"
        plot_distance_heatmap(
            first,
            heatmap_path,
            title=f"Distance matrix from {_date_label(first.start_date, first.window_index)}",
        )
        if heatmap_path.exists():
            charts.append(("First window distance matrix", heatmap_path.name))

    gallery: list[tuple[str, str]] = []
    for barcode in result.barcodes:
        label = _date_label(barcode.start_date, barcode.window_index)
        barcode_rel = Path("barcodes") / f"barcode_{label}.png"
        diagram_rel = Path("diagrams") / f"diagram_{label}.png"
        plot_barcode(barcode, outdir / barcode_rel)
        plot_persistence_diagram(barcode, outdir / diagram_rel)
        gallery.append((f"Barcode from {label}", barcode_rel.as_posix()))

    metadata_payload: dict[str, Any] = {
        "config_hash": result.config_hash,
    }
    if result.prices is not None and not result.prices.empty:
        metadata_payload["window"] = (
            f"{result.prices.index.min().date()} to {result.prices.index.max().date()}"
        )
    metadata_payload["flagged_returns"] = result.returns.n_flagged
    metadata_payload.update(peak_dates(result.distance_from_first, prefix="From first"))
    metadata_payload.update(peak_dates(result.distance_from_previous, prefix="From previous"))
    if metadata:
        metadata_payload.update({str(key): str(value) for key, value in metadata.items()})
    metadata_payload = {key: str(value) for key, value in metadata_payload.items()}

    tables: list[tuple[str, pd.DataFrame]] = []
    if not result.barcode_stats.empty:
        tables.append(("Barcode Statistics", result.barcode_stats))

    write_html(
        outdir, summary, tables=tables, charts=charts, gallery=gallery, metadata=metadata_payload
    )
    write_pdf(outdir, summary, charts=charts, gallery=gallery, metadata=metadata_payload)
    return summary


def cmd_run(args: argparse.Namespace) -> None:
    period_results, context = api.run_periods(args.config, overrides=_cli_overrides(args))
    outdir = _prepare_run_directory(context, args.run_id)
    for item in period_results:
        period = item.period
        metadata = {
            "run_id": args.run_id,
            "period": f"{period.name} ({period.start.date()} to {period.end.date()})",
            "window_length": context.config.window_length,
            "source": context.config.source,
        }
        _write_analysis_outputs(item.results, outdir=outdir / period.name, metadata=metadata)
        rprint(f"Period [cyan]{period.name}[/cyan]: {item.results.n_windows} windows")
    rprint(f"[bold green]Run complete[/bold green]. Results in {outdir}")


def cmd_report(args: argparse.Namespace) -> None:
    cfg = api.load_config(args.config)
    analysis_cfg = cfg.get("analysis", {}) or {}
    results_dir = Path(analysis_cfg.get("results_dir", "./results"))
    if args.run_id == "last":
        candidates = sorted(
            [p for p in results_dir.iterdir() if p.is_dir()] if results_dir.exists() else [],
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        if not candidates:
            print("No runs found.")
            sys.exit(1)
        run_dir = candidates[0]
    else:
        run_dir = results_dir / args.run_id

    reports = sorted(run_dir.glob("*/report.html"))
    if not reports:
        print(f"No reports found in {run_dir}")
        sys.exit(1)
    for report in reports:
        print(f"Report available at: {report}")


def cmd_sweep(args: argparse.Namespace) -> None:
    summary_frame, context = api.run_window_sweep(
        args.config,
        args.window_lengths,
        overrides=_cli_overrides(args),
    )
    base_dir = _prepare_run_directory(context, args.run_id)
    _export_table(summary_frame, base_dir / "sweep_summary", "Sweep Summary")
    rprint(f"[bold green]Sweep complete[/bold green]. Results in {base_dir}")


def _add_log_level(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="topocorr", description="Correlation topology analysis")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Run the analysis for every configured period")
    p_run.add_argument("--config", default="configs/base.yaml")
    p_run.add_argument("--run-id", default="run-001")
    p_run.add_argument("--overrides", help="JSON/YAML mapping or path with configuration overrides")
    p_run.add_argument("--source", choices=["vendor", "synthetic"], help="Override the price source")
    p_run.add_argument("--seed", type=int, help="Override the synthetic price seed")
    p_run.add_argument("--window-length", type=int, help="Trading days per window")
    _add_log_level(p_run)
    p_run.set_defaults(func=cmd_run)

    p_rep = sub.add_parser("report", help="Show report paths of a run")
    p_rep.add_argument("--config", default="configs/base.yaml")
    p_rep.add_argument("--run-id", default="last", help="'last' or specific run-id")
    _add_log_level(p_rep)
    p_rep.set_defaults(func=cmd_report)

    p_sweep = sub.add_parser("sweep", help="Run a window-length sensitivity sweep")
    p_sweep.add_argument("--config", default="configs/base.yaml")
    p_sweep.add_argument("--run-id", default="sweep-001")
    p_sweep.add_argument(
        "--window-lengths", nargs="+", type=int, required=True, help="Window lengths to compare"
    )
    p_sweep.add_argument("--overrides", help="JSON/YAML mapping or path with configuration overrides")
    p_sweep.add_argument("--source", choices=["vendor", "synthetic"], help="Override the price source")
    p_sweep.add_argument("--seed", type=int, help="Override the synthetic price seed")
    _add_log_level(p_sweep)
    p_sweep.set_defaults(func=cmd_sweep)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except (KeyError, ValueError) as exc:
        rprint(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
