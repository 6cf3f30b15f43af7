"""PDF rendering of the audit report."""

import asyncio
from datetime import UTC, datetime

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from api.exceptions import RenderError
from worker.crawler.browser import launch_browser
from worker.models import AuditData, ScrapedData
from worker.reports.templating import render_template

logger = structlog.get_logger(__name__)

REPORT_TEMPLATE = "report.html.j2"

# Internal links below this count are flagged in the SEO checklist
MIN_INTERNAL_LINKS = 5


def seo_checklist(scraped: ScrapedData) -> list[tuple[str, bool]]:
    """Pass/fail rows shown beside the SEO analysis."""
    return [
        ("SSL (HTTPS)", scraped.has_ssl),
        ("Viewport Meta", scraped.has_viewport_meta),
        ("Schema.org", scraped.has_schema_org),
        ("Meta Description", bool(scraped.meta_description)),
        ("Meta Keywords", bool(scraped.meta_keywords)),
        ("Open Graph Tags", bool(scraped.og_tags)),
        (
            f"Images with alt text ({scraped.images_with_alt}/{scraped.image_count})",
            scraped.images_with_alt == scraped.image_count,
        ),
        (
            f"Internal links ({scraped.internal_link_count})",
            scraped.internal_link_count >= MIN_INTERNAL_LINKS,
        ),
    ]


def render_report_html(
    data: AuditData,
    agency_name: str = "Digital Audit",
    contact_url: str = "",
    report_date: datetime | None = None,
    lang: str = "en",
    direction: str = "ltr",
) -> str:
    """Fill the report template. Screenshots are inlined as data URIs."""
    when = report_date or datetime.now(UTC)
    return render_template(
        REPORT_TEMPLATE,
        request=data.request,
        scraped=data.scraped,
        performance=data.performance,
        presence=data.presence,
        narrative=data.narrative,
        domain=data.request.domain,
        seo_checks=seo_checklist(data.scraped),
        agency_name=agency_name,
        contact_url=contact_url,
        report_date=f"{when:%B} {when.day}, {when.year}",
        lang=lang,
        direction=direction,
    )


class DocumentRenderer:
    """Prints the report HTML to an A4 PDF in a private headless browser."""

    def __init__(
        self,
        timeout_ms: int = 30000,
        agency_name: str = "Digital Audit",
        contact_url: str = "",
    ):
        self.timeout_ms = timeout_ms
        self.agency_name = agency_name
        self.contact_url = contact_url

    async def render(self, data: AuditData) -> bytes:
        """
        Render ``data`` to PDF bytes.

        Raises:
            RenderError: the page did not settle within the timeout or printing failed
        """
        html = render_report_html(
            data, agency_name=self.agency_name, contact_url=self.contact_url
        )

        try:
            async with asyncio.timeout(self.timeout_ms / 1000):
                async with launch_browser() as browser:
                    page = await browser.new_page()
                    await page.set_content(
                        html, wait_until="networkidle", timeout=self.timeout_ms
                    )
                    await page.evaluate("() => document.fonts.ready.then(() => true)")
                    pdf = await page.pdf(
                        format="A4",
                        print_background=True,
                        prefer_css_page_size=True,
                        margin={"top": "0", "right": "0", "bottom": "0", "left": "0"},
                    )
        except (PlaywrightTimeout, TimeoutError) as e:
            raise RenderError(f"Report did not load within {self.timeout_ms}ms") from e
        except PlaywrightError as e:
            raise RenderError(f"PDF generation failed: {e.message}") from e

        logger.info("report_rendered", website=data.request.website, pdf_bytes=len(pdf))
        return pdf
