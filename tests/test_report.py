"""
Tests for table export and the DOCX report.
"""

import pandas as pd
import pytest

from civstat.engine import Analytics
from civstat.models import PopulationRecord, PropertyRecord, VaccinationRecord
from civstat.report import ReportConfig, export_table, generate_docx_report

ROWS = [{"zip_code": "19103", "value": 0.002}, {"zip_code": "19104", "value": 0.01}]


@pytest.fixture
def engine():
    return Analytics(
        vaccinations=[VaccinationRecord("19103", "2021-05-01 17:22:10", 40, 100)],
        populations=[PopulationRecord("19103", 50000), PopulationRecord("19104", 30000)],
        properties=[PropertyRecord("19103", 200000, 1000), PropertyRecord("19104", None, 1500)],
    )


class TestExportTable:

    def test_csv(self, tmp_path):
        path = export_table(ROWS, str(tmp_path / "out.csv"))
        df = pd.read_csv(path, dtype={"zip_code": str})
        assert df.to_dict(orient="records") == ROWS

    def test_json_creates_directories(self, tmp_path):
        path = export_table(ROWS, str(tmp_path / "nested" / "out.json"))
        assert pd.read_json(path, orient="records", dtype={"zip_code": str}).to_dict(orient="records") == ROWS

    def test_xlsx(self, tmp_path):
        pytest.importorskip("openpyxl")
        path = export_table(ROWS, str(tmp_path / "out.xlsx"))
        df = pd.read_excel(path, dtype={"zip_code": str}, engine="openpyxl")
        assert list(df["zip_code"]) == ["19103", "19104"]

    def test_unknown_format(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown export format"):
            export_table(ROWS, str(tmp_path / "out.parquet"))


class TestDocxReport:

    def test_report_with_date(self, engine, tmp_path):
        docx = pytest.importorskip("docx")
        pytest.importorskip("matplotlib")
        out = tmp_path / "report.docx"
        config = ReportConfig(source_files={"population": "pop.csv"})
        assert generate_docx_report(engine, str(out), config=config, date="2021-05-01") == str(out)

        doc = docx.Document(str(out))
        headings = [p.text for p in doc.paragraphs if p.style.name.startswith("Heading")]
        assert "Datasets" in headings
        assert "ZIP Code profiles" in headings
        assert "Vaccination on 2021-05-01" in headings
        assert "Visualizations" in headings
        assert len(doc.inline_shapes) >= 3
        cells = [c.text for t in doc.tables for row in t.rows for c in row.cells]
        assert "pop.csv" in cells
        assert "0.0020" in cells

    def test_report_without_vaccination_data(self, tmp_path):
        docx = pytest.importorskip("docx")
        pytest.importorskip("matplotlib")
        engine = Analytics(properties=[PropertyRecord("19103", 1, 1)])
        out = tmp_path / "report.docx"
        generate_docx_report(engine, str(out))
        headings = [p.text for p in docx.Document(str(out)).paragraphs if p.style.name.startswith("Heading")]
        assert not any(h.startswith("Vaccination") for h in headings)

    def test_no_data(self, tmp_path):
        pytest.importorskip("docx")
        pytest.importorskip("matplotlib")
        with pytest.raises(ValueError, match="No data loaded"):
            generate_docx_report(Analytics(), str(tmp_path / "r.docx"))
