from datetime import date

import pytest

from readiness.audit.exporter import ReportExporter
from readiness.errors import ExportAbortedError, ExportInProgressError


def test_guard_rejects_a_second_export_of_the_same_audit(settings):
    exporter = ReportExporter(settings, render_html=lambda result: "")

    with exporter.guard("a1"):
        assert exporter.is_exporting("a1")
        with pytest.raises(ExportInProgressError):
            with exporter.guard("a1"):
                pass
        with exporter.guard("b2"):
            assert exporter.is_exporting("b2")

    assert not exporter.is_exporting("a1")
    assert not exporter.is_exporting("b2")


async def test_export_pdf_builds_document_and_filename(settings, section, audit_result):
    seen = {}

    async def fake_capture(html, s, geometry, stylesheet):
        seen["html"] = html
        seen["stylesheet"] = stylesheet
        return [section("overview", 90), section("recommendation", 40)]

    exporter = ReportExporter(settings, render_html=lambda result: f"<p>{result['url']}</p>", capture=fake_capture)

    filename, pdf = await exporter.export_pdf("a1", audit_result, today=date(2026, 1, 15))

    assert filename == "ai-readiness-report-example.com-2026-01-15.pdf"
    assert pdf.startswith(b"%PDF")
    assert seen["html"] == "<p>https://example.com</p>"
    assert seen["stylesheet"].name == "site.css"
    assert not exporter.is_exporting("a1")


async def test_aborted_capture_releases_the_guard(settings, audit_result):
    async def empty_capture(*args):
        raise ExportAbortedError("No sections to export. Please run an audit first.")

    exporter = ReportExporter(settings, render_html=lambda result: "", capture=empty_capture)

    with pytest.raises(ExportAbortedError):
        await exporter.export_pdf("a1", audit_result)

    assert not exporter.is_exporting("a1")


def test_report_logos_are_optional(settings, tmp_path):
    from PIL import Image

    from readiness.config import Settings

    assert Settings.model_fields["REPORT_LOGO_PATH"].default is None
    assert Settings.model_fields["REPORT_WHITE_LOGO_PATH"].default is None

    logo_path = tmp_path / "logo.png"
    Image.new("RGB", (40, 10), (10, 20, 30)).save(logo_path)
    branded = settings.model_copy(update={"REPORT_LOGO_PATH": logo_path, "REPORT_WHITE_LOGO_PATH": None})

    context = ReportExporter(branded, render_html=lambda result: "")._context("https://example.com", date(2026, 1, 15))

    assert context.logo.aspect_ratio == 4
    assert context.white_logo is None
