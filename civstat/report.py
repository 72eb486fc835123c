from __future__ import annotations

"""
civstat output: table export and DOCX report
--------------------------------------------
This module writes query results to files. Nothing here feeds back into the
engine; it only reads from it.

- `export_table` writes rows (a list of dicts) to CSV, JSON or XLSX via pandas.
- `generate_docx_report` writes a DOCX summary with per-ZIP tables and charts.

Report dependencies (python-docx, matplotlib) are imported lazily so the
interactive shell works without them until a report is requested.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
import os
import tempfile

import pandas as pd

from .engine import Analytics

EXPORT_FORMATS = (".csv", ".json", ".xlsx")


def export_table(rows: Sequence[Dict[str, object]], out_path: str) -> str:
    """Write rows to `out_path`; the file extension picks the format."""
    ext = os.path.splitext(out_path)[1].lower()
    if ext not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format {ext!r}. Use: .csv, .json or .xlsx")
    df = pd.DataFrame(list(rows))
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    if ext == ".csv":
        df.to_csv(out_path, index=False)
    elif ext == ".json":
        df.to_json(out_path, orient="records", indent=2)
    else:
        df.to_excel(out_path, index=False, engine="openpyxl")
    return out_path


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "civstat Report"
    subtitle: str = "Vaccination, population and property statistics by ZIP Code"

    # How many ZIP codes to show in bar charts
    top_n: int = 10

    # How many ZIP codes to show in the profile table
    max_rows_preview: int = 25

    # Dataset label -> file name, for the "Sources" section
    source_files: Dict[str, str] = field(default_factory=dict)


def generate_docx_report(
    engine: Analytics,
    out_path: str,
    *,
    config: Optional[ReportConfig] = None,
    date: Optional[str] = None,
) -> str:
    """
    Generate a DOCX report + charts from the loaded datasets.

    `date` (YYYY-MM-DD) adds the vaccination and health risk sections when
    vaccination data is loaded.
    """
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
        import numpy as np
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib (and numpy).\n"
            "Install with: python -m pip install matplotlib numpy"
        ) from e

    if not (engine.has_population_data() or engine.has_property_data() or engine.has_vaccination_data()):
        raise ValueError("No data loaded.")

    # -----------------------------
    # 1) Collect statistics
    # -----------------------------
    zips = engine.known_zips()
    profiles = [engine.zip_profile(z) for z in zips]
    by_population = sorted(profiles, key=lambda p: (-int(p["population"]), p["zip_code"]))

    risk: Dict[str, float] = {}
    per_capita: Dict[str, float] = {}
    if date and engine.has_vaccination_data():
        per_capita = engine.vaccination_per_capita("full", date)
        if engine.has_population_data() and engine.has_property_data():
            risk = engine.health_risk_index(date)

    # -----------------------------
    # 2) Charts
    # -----------------------------
    tmpdir = tempfile.mkdtemp(prefix="civstat_report_")
    chart_paths: List[Tuple[str, str]] = []

    def _bar(title: str, labels: List[str], values: List[float], ylabel: str, filename: str) -> None:
        if not labels:
            return
        x = np.arange(len(labels))
        plt.figure()
        plt.bar(x, values)
        plt.xticks(x, labels, rotation=45, ha="right")
        plt.title(title)
        plt.ylabel(ylabel)
        path = os.path.join(tmpdir, filename)
        plt.tight_layout()
        plt.savefig(path, dpi=150)
        plt.close()
        chart_paths.append((title, path))

    if engine.has_population_data():
        top = [p for p in by_population if int(p["population"]) > 0][:config.top_n]
        _bar(f"Top {config.top_n} ZIP Codes by Population",
             [str(p["zip_code"]) for p in top], [float(p["population"]) for p in top],
             "Population", "population.png")

    if engine.has_property_data():
        top = sorted(profiles, key=lambda p: -int(p["average_market_value"]))[:config.top_n]
        _bar(f"Top {config.top_n} ZIP Codes by Average Market Value",
             [str(p["zip_code"]) for p in top], [float(p["average_market_value"]) for p in top],
             "Average market value", "market_value.png")

    if per_capita:
        top = sorted(per_capita.items(), key=lambda kv: -kv[1])[:config.top_n]
        _bar(f"Full Vaccinations per Capita on {date}",
             [k for k, _ in top], [v for _, v in top], "Per capita", "per_capita.png")

    if risk:
        top = sorted(risk.items(), key=lambda kv: -kv[1])[:config.top_n]
        _bar(f"Health Risk Index on {date}",
             [k for k, _ in top], [v for _, v in top], "Index", "health_risk.png")

    # -----------------------------
    # 3) Build DOCX
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

    def _table(header: Sequence[str], rows: Sequence[Sequence[object]]) -> None:
        t = doc.add_table(rows=1, cols=len(header))
        for i, h in enumerate(header):
            t.rows[0].cells[i].text = h
        for row in rows:
            cells = t.add_row().cells
            for i, v in enumerate(row):
                cells[i].text = str(v)

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    doc.add_paragraph("")
    doc.add_heading("Datasets", level=1)
    _table(["Dataset", "Records", "Source"], [
        ("Vaccination", len(engine.vaccinations), config.source_files.get("covid", "-")),
        ("Population", len(engine.populations), config.source_files.get("population", "-")),
        ("Property", len(engine.properties), config.source_files.get("properties", "-")),
    ])
    if engine.has_population_data():
        _kv("Total population", f"{engine.total_population():,}")
    _kv("ZIP Codes", str(len(zips)))

    if profiles:
        doc.add_paragraph("")
        doc.add_heading("ZIP Code profiles", level=1)
        shown = by_population[:config.max_rows_preview]
        if len(shown) < len(profiles):
            doc.add_paragraph(f"Showing {len(shown)} of {len(profiles)} ZIP Codes (largest population first).")
        _table(
            ["ZIP", "Population", "Properties", "Avg. market value", "Avg. livable area", "Market value per capita"],
            [(p["zip_code"], p["population"], p["properties"], p["average_market_value"],
              p["average_livable_area"], p["market_value_per_capita"]) for p in shown],
        )

    if date and engine.has_vaccination_data():
        doc.add_paragraph("")
        doc.add_heading(f"Vaccination on {date}", level=1)
        if per_capita:
            _table(["ZIP", "Full per capita", "Health risk index"],
                   [(z, f"{v:.4f}", f"{risk[z]:.4f}" if z in risk else "-")
                    for z, v in per_capita.items()])
        else:
            doc.add_paragraph("No full vaccinations recorded for this date.")

    if chart_paths:
        doc.add_paragraph("")
        doc.add_heading("Visualizations", level=1)
        for title, path in chart_paths:
            doc.add_paragraph(title)
            doc.add_picture(path, width=Inches(6.0))

    doc.add_paragraph("")
    doc.add_heading("Reproducibility footer", level=1)
    from . import __version__ as civstat_version
    from datetime import datetime as _dt
    doc.add_paragraph(f"civstat version: {civstat_version}")
    doc.add_paragraph(f"Report generated at: {_dt.now().isoformat(timespec='seconds')}")

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    doc.save(out_path)
    return out_path
