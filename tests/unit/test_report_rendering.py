"""Tests for the report template and PDF renderer."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeout

from api.exceptions import RenderError
from api.schemas.audit import AuditRequest
from worker.models import (
    AuditData,
    PerformanceResult,
    PresenceResult,
    ReportNarrative,
    ScrapedData,
)
from worker.reports.renderer import DocumentRenderer, render_report_html, seo_checklist
from worker.reports.templating import (
    data_uri,
    gauge_offset,
    rating_label,
    render_template,
    score_color,
)


@pytest.fixture
def audit_data(
    audit_request: AuditRequest,
    scraped: ScrapedData,
    performance: PerformanceResult,
    presence: PresenceResult,
    narrative: ReportNarrative,
) -> AuditData:
    return AuditData(
        request=audit_request,
        scraped=scraped,
        performance=performance,
        presence=presence,
        narrative=narrative,
    )


class TestFilters:
    @pytest.mark.parametrize(
        ("score", "color"), [(95, "#0cce6b"), (90, "#0cce6b"), (50, "#ffa400"), (49, "#ff4e42"),
                             (None, "#ff4e42")]
    )
    def test_score_color(self, score: int | None, color: str) -> None:
        assert score_color(score) == color

    def test_gauge_offset_bounds(self) -> None:
        assert gauge_offset(100) == 0
        assert gauge_offset(0) == pytest.approx(339.29, abs=0.01)

    def test_rating_label(self) -> None:
        assert rating_label("needs-improvement") == "Needs improvement"

    def test_data_uri(self) -> None:
        assert data_uri(b"png") == "data:image/png;base64,cG5n"
        assert data_uri(b"") == ""


class TestSeoChecklist:
    def test_rows(self, scraped: ScrapedData) -> None:
        checks = dict(seo_checklist(scraped))

        assert checks["SSL (HTTPS)"] is True
        assert checks["Schema.org"] is False
        assert checks["Images with alt text (6/8)"] is False
        assert checks["Internal links (12)"] is True
        assert len(checks) == 8

    def test_no_images_counts_as_covered(self) -> None:
        checks = dict(seo_checklist(ScrapedData(url="https://x.com")))
        assert checks["Images with alt text (0/0)"] is True
        assert checks["Internal links (0)"] is False


class TestRenderReportHtml:
    def test_five_pages_with_content(self, audit_data: AuditData) -> None:
        html = render_report_html(
            audit_data,
            agency_name="Acme Digital",
            contact_url="https://agency.com/contact",
            report_date=datetime(2026, 3, 1, tzinfo=UTC),
        )

        assert "acme.example.com" in html
        assert "Prepared for: Dana Cohen" in html
        assert "March 1, 2026" in html
        assert "Solid foundation with room to grow." in html
        assert data_uri(b"desktop-png") in html
        assert data_uri(b"mobile-png") in html
        assert "Eliminate render-blocking resources" in html
        assert "3100ms" in html
        assert "Add schema markup" in html
        assert "High priority" in html
        assert 'href="https://agency.com/contact"' in html
        assert html.count('class="page-number"') == 4

    def test_model_text_is_escaped(self, audit_data: AuditData) -> None:
        audit_data.narrative = audit_data.narrative.model_copy(
            update={"executive_summary": "<script>alert(1)</script>"}
        )

        html = render_report_html(audit_data)

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    def test_email_templates_render(self, audit_request: AuditRequest) -> None:
        html = render_template("team_email.html.j2", request=audit_request)
        assert "landing_page_section" in html

    def test_user_email_accepts_name_in_context(self) -> None:
        html = render_template(
            "user_email.html.j2",
            name="Dana Cohen",
            domain="acme.example.com",
            highlights=["Add schema markup (High priority)"],
            agency_name="Acme Digital",
            contact_url="https://agency.com/contact",
        )

        assert "Hi Dana Cohen," in html
        assert "Add schema markup (High priority)" in html


class TestDocumentRenderer:
    def _browser(self, page: MagicMock) -> MagicMock:
        browser = MagicMock()
        browser.new_page = AsyncMock(return_value=page)
        launch = MagicMock()
        launch.return_value.__aenter__ = AsyncMock(return_value=browser)
        launch.return_value.__aexit__ = AsyncMock(return_value=False)
        return launch

    async def test_prints_a4_pdf(self, audit_data: AuditData) -> None:
        page = MagicMock()
        page.set_content = AsyncMock()
        page.evaluate = AsyncMock(return_value=True)
        page.pdf = AsyncMock(return_value=b"%PDF-1.7")

        with patch("worker.reports.renderer.launch_browser", self._browser(page)):
            pdf = await DocumentRenderer(timeout_ms=5000).render(audit_data)

        assert pdf == b"%PDF-1.7"
        assert page.set_content.await_args.kwargs["wait_until"] == "networkidle"
        page.evaluate.assert_awaited_once()
        pdf_kwargs = page.pdf.await_args.kwargs
        assert pdf_kwargs["format"] == "A4"
        assert pdf_kwargs["print_background"] is True

    async def test_timeout_becomes_render_error(self, audit_data: AuditData) -> None:
        page = MagicMock()
        page.set_content = AsyncMock(side_effect=PlaywrightTimeout("Timeout 5000ms exceeded"))

        with patch("worker.reports.renderer.launch_browser", self._browser(page)):
            with pytest.raises(RenderError, match="did not load"):
                await DocumentRenderer(timeout_ms=5000).render(audit_data)

    async def test_stuck_font_load_becomes_render_error(self, audit_data: AuditData) -> None:
        page = MagicMock()
        page.set_content = AsyncMock()

        async def fonts_never_ready(script: str) -> None:
            await asyncio.Event().wait()

        page.evaluate = fonts_never_ready
        page.pdf = AsyncMock(return_value=b"%PDF-1.7")

        with patch("worker.reports.renderer.launch_browser", self._browser(page)):
            with pytest.raises(RenderError, match="did not load within 50ms"):
                await asyncio.wait_for(DocumentRenderer(timeout_ms=50).render(audit_data), 2)

        page.pdf.assert_not_awaited()
