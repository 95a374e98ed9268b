# Quick demo: synthetic crisis-era prices through the topology pipeline
from pathlib import Path

from topocorr import api
from topocorr.eval.metrics import distance_summary, peak_dates
from topocorr.report.plots import plot_barcode, plot_distance_series

result, context = api.run_analysis(
    "configs/base.yaml",
    overrides={"data": {"source": "synthetic", "seed": 7}},
)
outdir = context.results_dir / "example"
outdir.mkdir(parents=True, exist_ok=True)
plot_distance_series(result.distance_from_first, outdir / "from_first.png", title="Distance from first window")
plot_distance_series(result.distance_from_previous, outdir / "from_previous.png", title="Distance from previous window")
plot_barcode(result.barcodes[0], outdir / "first_barcode.png")
print(distance_summary(result.distance_from_first, result.distance_from_previous, n_windows=result.n_windows))
print(peak_dates(result.distance_from_previous, prefix="From previous"))
print(f"Artifacts in {Path(outdir)}")
