import pytest

from sevdash.loader import parse_dataset
from sevdash.models import FilterSpec
from sevdash.report import describe_filters, generate_docx_report

docx = pytest.importorskip("docx")
pytest.importorskip("matplotlib")


def test_describe_filters():
    assert describe_filters(None).startswith("No filters")
    assert describe_filters(FilterSpec.of("Central", ["RAF", "GRA"])) == "department = Central; type in {GRA, RAF}"


def test_report_written(tmp_path, sample_csv):
    _, records = parse_dataset(sample_csv)
    out = tmp_path / "reports" / "view.docx"
    generate_docx_report(records, str(out), spec=FilterSpec.of("", ["GRA"]))
    assert out.exists()
    text = "\n".join(p.text for p in docx.Document(str(out)).paragraphs)
    assert "Events in view: 5" in text
    assert "type in {GRA}" in text


def test_report_needs_records(tmp_path):
    with pytest.raises(ValueError):
        generate_docx_report([], str(tmp_path / "empty.docx"))
