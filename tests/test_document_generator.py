from datetime import datetime, timezone
from io import BytesIO

from pypdf import PdfReader

from main import build_report
from models import ProspectInfo, ProviderResult
from utils.document_generator import download_file_name, generate_report_pdf, report_file_name, save_report_pdf

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)
PROSPECT = ProspectInfo(first_name="Jane", last_name="Doe", city="Toronto", state="ON", dob="1990-04-12")


def _report(ai_data=None):
    ai = ProviderResult(ok=True, data=ai_data or {
        "employment_history": [{"company": "Northwind Freight", "position": "Dispatcher", "start_date": "2019-01"}],
        "legal_appearances": [{"date": "2022-03-01", "title": "Eviction <hearing> & notice", "link": "example.com/x"}],
        "short_summary": "Jane Doe works in logistics.",
    })
    return build_report(PROSPECT, ai, ProviderResult(ok=False, error="No match found"), now=NOW, report_id="BCR-ABC123")


def _text(pdf_bytes: bytes) -> str:
    reader = PdfReader(BytesIO(pdf_bytes))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def test_generate_report_pdf_contents():
    pdf_bytes = generate_report_pdf(_report(), app_settings={"brand_name": "Tenant Screening"})
    assert pdf_bytes.startswith(b"%PDF")

    text = _text(pdf_bytes)
    assert "AI Background Check Report" in text
    assert "Executive Summary" in text
    assert "Jane Doe works in logistics." in text
    assert "Employment History" in text
    assert "Legal Appearances" in text
    assert "No press mentions found." in text
    assert "Page 1 of" in text

    reader = PdfReader(BytesIO(pdf_bytes))
    assert reader.metadata.title == "AI Background Check Report - Jane Doe"
    assert reader.metadata.subject == "BCR-ABC123"


def test_empty_report_still_renders():
    report = build_report(PROSPECT, None, None, now=NOW, report_id="BCR-000000")
    text = _text(generate_report_pdf(report, app_settings={"brand_name": "Tenant Screening"}))
    assert "No summary available." in text
    assert "No employment history found." in text


def test_save_report_pdf_creates_file(tmp_path):
    file_path = tmp_path / "report.pdf"

    save_report_pdf(_report(), str(file_path))

    assert file_path.exists()
    assert file_path.stat().st_size > 0


def test_file_names():
    report = _report()
    assert report_file_name(report, 1700000000000) == "background-report-BCR-ABC123-1700000000000.pdf"
    assert download_file_name(report) == "background-report-Jane-Doe.pdf"
