"""Headless Chromium lifecycle."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from playwright.async_api import Browser, async_playwright

logger = structlog.get_logger(__name__)

# Container-friendly flags; the default /dev/shm is too small for full-page screenshots
CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


@asynccontextmanager
async def launch_browser(headless: bool = True) -> AsyncIterator[Browser]:
    """
    Launch a private Chromium instance for a single caller.

    The browser is closed when the block exits, including on error.
    Instances are never pooled or shared between calls.
    """
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=headless, args=CHROMIUM_ARGS)
        logger.debug("browser_launched", version=browser.version)
        try:
            yield browser
        finally:
            await browser.close()
            logger.debug("browser_closed")
