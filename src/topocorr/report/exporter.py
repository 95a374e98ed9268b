"""HTML and PDF reports for one analysed period."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.backends.backend_pdf import PdfPages
from tabulate import tabulate

REPORT_TITLE = "Correlation Topology Report"
_A4_PORTRAIT = (8.27, 11.69)
_GALLERY_ROWS, _GALLERY_COLS = 3, 2

_STYLE = """
  body { font-family: Arial, sans-serif; margin: 40px; background-color: #fafafa; }
  table { border-collapse: collapse; margin-bottom: 24px; }
  th, td { border: 1px solid #ddd; padding: 6px 10px; }
  th { background-color: #f0f0f0; }
  figure { margin: 24px 0; }
  figcaption { text-align: center; font-style: italic; margin-top: 8px; }
  .gallery { display: grid; grid-template-columns: repeat(auto-fill, minmax(260px, 1fr)); gap: 12px; }
  .gallery figure { margin: 0; }
"""


def _format_value(value: float | None) -> str:
    if value is None or pd.isna(value):
        return "-"
    if float(value).is_integer():
        return f"{int(value)}"
    return f"{value:.4f}"


def _summary_rows(summary: Mapping[str, float]) -> list[tuple[str, str]]:
    return [(metric, _format_value(value)) for metric, value in summary.items()]


def _figure(title: str, filename: str, *, width: int | None = None) -> str:
    size = f" width='{width}'" if width else ""
    return (
        f"<figure><img src='{filename}' alt='{title}'{size}/>"
        f"<figcaption>{title}</figcaption></figure>"
    )


def write_html(
    report_dir: Path | str,
    summary: Mapping[str, float],
    *,
    tables: Sequence[tuple[str, pd.DataFrame]] | None = None,
    charts: Sequence[tuple[str, str]] | None = None,
    gallery: Sequence[tuple[str, str]] | None = None,
    metadata: Mapping[str, str] | None = None,
) -> Path:
    """Write ``report.html`` with metadata, the distance summary and charts.

    ``charts`` and ``gallery`` hold ``(title, path)`` pairs relative to
    ``report_dir``; gallery images (one barcode per window) are laid out in
    a grid below the full-width charts.
    """

    report_dir = Path(report_dir)
    report_dir.mkdir(parents=True, exist_ok=True)

    sections: list[str] = []
    if metadata:
        sections.append("<h2>Run Metadata</h2>")
        sections.append(tabulate(list(metadata.items()), headers=["Key", "Value"], tablefmt="html"))

    sections.append("<h2>Distance Summary</h2>")
    sections.append(tabulate(_summary_rows(summary), headers=["Metric", "Value"], tablefmt="html"))

    for title, frame in tables or []:
        sections.append(f"<h2>{title}</h2>")
        sections.append(frame.to_html(index=False, float_format=lambda x: f"{x:.4f}", na_rep="-"))

    if charts:
        sections.append("<h2>Distance Series</h2>")
        sections.extend(_figure(title, filename, width=900) for title, filename in charts)

    if gallery:
        sections.append("<h2>Barcodes by Window</h2>")
        sections.append("<div class='gallery'>")
        sections.extend(_figure(title, filename) for title, filename in gallery)
        sections.append("</div>")

    body = "\n".join(sections)
    html = (
        "<html><head><meta charset='utf-8'/>"
        f"<title>{REPORT_TITLE}</title><style>{_STYLE}</style></head>"
        f"<body><h1>{REPORT_TITLE}</h1>\n{body}\n</body></html>\n"
    )

    report_path = report_dir / "report.html"
    report_path.write_text(html)
    return report_path


def write_pdf(
    report_dir: Path | str,
    summary: Mapping[str, float],
    *,
    charts: Sequence[tuple[str, str]] | None = None,
    gallery: Sequence[tuple[str, str]] | None = None,
    metadata: Mapping[str, str] | None = None,
) -> Path:
    """Write ``report.pdf``: a text cover page, one page per chart, then
    barcode thumbnails six to a page."""

    report_dir = Path(report_dir)
    report_dir.mkdir(parents=True, exist_ok=True)
    pdf_path = report_dir / "report.pdf"

    with PdfPages(pdf_path) as pdf:
        _cover_page(pdf, summary, metadata)

        for title, filename in charts or []:
            chart_path = report_dir / filename
            if not chart_path.exists():
                continue
            fig, ax = plt.subplots(figsize=_A4_PORTRAIT)
            ax.imshow(plt.imread(chart_path))
            ax.axis("off")
            ax.set_title(title)
            pdf.savefig(fig)
            plt.close(fig)

        images = [(t, report_dir / f) for t, f in gallery or [] if (report_dir / f).exists()]
        per_page = _GALLERY_ROWS * _GALLERY_COLS
        for offset in range(0, len(images), per_page):
            fig, axes = plt.subplots(_GALLERY_ROWS, _GALLERY_COLS, figsize=_A4_PORTRAIT)
            for ax in axes.ravel():
                ax.axis("off")
            for ax, (title, path) in zip(axes.ravel(), images[offset : offset + per_page]):
                ax.imshow(plt.imread(path))
                ax.set_title(title, fontsize=9)
            fig.tight_layout()
            pdf.savefig(fig)
            plt.close(fig)

    return pdf_path


def _cover_page(
    pdf: PdfPages, summary: Mapping[str, float], metadata: Mapping[str, str] | None
) -> None:
    fig, ax = plt.subplots(figsize=_A4_PORTRAIT)
    ax.axis("off")
    lines: list[tuple[str, float, str]] = [(REPORT_TITLE, 16, "bold")]
    if metadata:
        lines.append(("Run metadata", 12, "bold"))
        lines.extend((f"  {key}: {value}", 10, "normal") for key, value in metadata.items())
    lines.append(("Distance summary", 12, "bold"))
    lines.extend((f"  {metric}: {value}", 10, "normal") for metric, value in _summary_rows(summary))

    y = 0.96
    for text, size, weight in lines:
        ax.text(0.02, y, text, fontsize=size, weight=weight, transform=ax.transAxes)
        y -= 0.045 if weight == "bold" else 0.028
    pdf.savefig(fig)
    plt.close(fig)
