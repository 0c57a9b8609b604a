from __future__ import annotations

"""
sevdash report generator
------------------------
This module writes a DOCX report for a filtered view of severe-weather events.

Design goals:
- Keep sevdash usable without report dependencies (lazy imports).
- Pick charts that say something about the current view.
  Example: if the view is a single department, a "top departments" chart is a
  single bar, so it is skipped and the phenomenon/month charts carry the report.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import os
import tempfile

from .engine import aggregate, time_series, top_n
from .models import CanonicalRecord, FilterSpec


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Severe Weather Events Report"
    subtitle: str = "sevdash (CLI)"
    dataset_name: str = "Google Sheet export"
    source: Optional[str] = None

    # How many categories to show in bar charts
    top_n: int = 10

    # How many rows to show in the preview table
    max_rows_preview: int = 15


def describe_filters(spec: Optional[FilterSpec]) -> str:
    if spec is None or spec.is_empty():
        return "No filters (all geolocated events)"
    parts = []
    if spec.category:
        parts.append(f"department = {spec.category}")
    if spec.phenomena:
        parts.append("type in {" + ", ".join(sorted(spec.phenomena)) + "}")
    return "; ".join(parts)


def generate_docx_report(
    records: Sequence[CanonicalRecord],
    out_path: str,
    *,
    config: Optional[ReportConfig] = None,
    spec: Optional[FilterSpec] = None,
) -> str:
    """Generate a DOCX report + charts for a list of records."""
    config = config or ReportConfig()

    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib.\n"
            "Install with: python -m pip install matplotlib"
        ) from e

    if not records:
        raise ValueError("No records to report on (view is empty).")

    # -----------------------------
    # 1) Counts
    # -----------------------------
    agg = aggregate(records)
    monthly = time_series(records, freq="month")
    dated = [r.date for r in records if r.timestamp]
    date_min = min(dated) if dated else None
    date_max = max(dated) if dated else None

    # -----------------------------
    # 2) Charts
    # -----------------------------
    tmpdir = tempfile.mkdtemp(prefix="sevdash_report_")
    chart_paths: List[Tuple[str, str]] = []

    def _bar(title: str, items: List[Tuple[str, int]], filename: str, rotate: bool = True) -> None:
        plt.figure()
        plt.bar([k for k, _ in items], [v for _, v in items])
        if rotate:
            plt.xticks(rotation=45, ha="right")
        plt.title(title)
        plt.ylabel("Events")
        path = os.path.join(tmpdir, filename)
        plt.tight_layout()
        plt.savefig(path, dpi=150)
        plt.close()
        chart_paths.append((title, path))

    if len(agg.by_category) > 1:
        _bar(f"Top {config.top_n} departments", top_n(agg.by_category, config.top_n), "top_categories.png")
    if agg.by_phenomenon:
        _bar("Events by phenomenon type", top_n(agg.by_phenomenon, config.top_n), "phenomena.png")
    if len(monthly) > 1:
        _bar("Events per month", monthly, "monthly.png")

    # -----------------------------
    # 3) DOCX
    # -----------------------------
    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
        p = doc.add_paragraph()
        r = p.add_run(text)
        r.bold = bold
        r.italic = italic
        r.font.size = Pt(size)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _kv(key: str, value: str) -> None:
        p = doc.add_paragraph()
        r = p.add_run(f"{key}: ")
        r.bold = True
        p.add_run(value)

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    doc.add_paragraph("")
    _kv("Dataset", config.dataset_name)
    if config.source:
        _kv("Source", config.source)
    _kv("Filters", describe_filters(spec))
    _kv("Events in view", str(agg.total))
    if date_min and date_max:
        _kv("Date range", f"{date_min} to {date_max}")

    doc.add_heading("Counts", level=1)
    t = doc.add_table(rows=1, cols=2)
    t.rows[0].cells[0].text = "Phenomenon"
    t.rows[0].cells[1].text = "Events"
    for k, v in top_n(agg.by_phenomenon):
        row = t.add_row().cells
        row[0].text = k
        row[1].text = str(v)

    if chart_paths:
        doc.add_heading("Charts", level=1)
        for title, path in chart_paths:
            doc.add_paragraph(title)
            doc.add_picture(path, width=Inches(6.0))

    doc.add_heading("First events", level=1)
    preview = list(records)[:config.max_rows_preview]
    t2 = doc.add_table(rows=1, cols=5)
    h = t2.rows[0].cells
    h[0].text = "Date"
    h[1].text = "Department"
    h[2].text = "Type"
    h[3].text = "Lat"
    h[4].text = "Lon"
    for r in preview:
        c = t2.add_row().cells
        c[0].text = r.date
        c[1].text = r.category
        c[2].text = r.phenomenon
        c[3].text = f"{r.latitude:.4f}" if r.latitude is not None else ""
        c[4].text = f"{r.longitude:.4f}" if r.longitude is not None else ""

    from . import __version__
    from datetime import datetime as _dt
    doc.add_paragraph("")
    doc.add_paragraph(f"sevdash version: {__version__}")
    doc.add_paragraph(f"Report generated at: {_dt.now().isoformat(timespec='seconds')}")

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    doc.save(out_path)
    return out_path
