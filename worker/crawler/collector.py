"""Site collection: one rendered load of the audited page."""

import time
from urllib.parse import urlparse

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from api.exceptions import CollectionError
from worker.crawler.browser import launch_browser
from worker.extraction.page import count_links, extract_page_signals
from worker.models import ScrapedData

logger = structlog.get_logger(__name__)


class SiteCollector:
    """Loads a site in headless Chromium and reads its on-page signals."""

    def __init__(
        self,
        timeout_ms: int = 30000,
        desktop_viewport: tuple[int, int] = (1440, 900),
        mobile_viewport: tuple[int, int] = (390, 844),
    ):
        self.timeout_ms = timeout_ms
        self.desktop_viewport = desktop_viewport
        self.mobile_viewport = mobile_viewport

    async def collect(self, url: str) -> ScrapedData:
        """
        Load ``url`` at desktop and mobile widths.

        Captures a full-page screenshot at each width and parses the
        desktop DOM for meta tags, headings, links and images.

        Raises:
            CollectionError: navigation failed or timed out
        """
        started = time.perf_counter()
        width, height = self.desktop_viewport
        mobile_width, mobile_height = self.mobile_viewport

        try:
            async with launch_browser() as browser:
                page = await browser.new_page(viewport={"width": width, "height": height})

                await page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
                screenshot_desktop = await page.screenshot(full_page=True)
                html = await page.content()
                page_url = page.url

                await page.set_viewport_size({"width": mobile_width, "height": mobile_height})
                await page.reload(wait_until="networkidle", timeout=self.timeout_ms)
                screenshot_mobile = await page.screenshot(full_page=True)
                load_time_ms = int((time.perf_counter() - started) * 1000)

        except PlaywrightTimeout as e:
            raise CollectionError(f"Timed out loading {url} after {self.timeout_ms}ms") from e
        except PlaywrightError as e:
            raise CollectionError(f"Failed to load {url}: {e.message}") from e

        parsed = urlparse(url)
        signals = extract_page_signals(html, page_url or url)
        internal, external = count_links(signals.links, parsed.hostname or "")

        logger.info(
            "site_collected",
            url=url,
            load_time_ms=load_time_ms,
            headings=len(signals.headings),
            internal_links=internal,
            external_links=external,
        )

        return ScrapedData(
            url=url,
            title=signals.meta.title,
            meta_description=signals.meta.description,
            meta_keywords=signals.meta.keywords,
            og_tags=signals.meta.og_tags,
            headings=signals.headings,
            internal_link_count=internal,
            external_link_count=external,
            image_count=signals.image_count,
            images_with_alt=signals.images_with_alt,
            has_ssl=parsed.scheme == "https",
            language=signals.language,
            direction=signals.direction,
            has_viewport_meta=signals.has_viewport_meta,
            has_schema_org=signals.has_schema_org,
            load_time_ms=load_time_ms,
            screenshot_desktop=screenshot_desktop,
            screenshot_mobile=screenshot_mobile,
        )
