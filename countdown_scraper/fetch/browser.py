"""Headless browser driver for loading Countdown category pages."""
import logging
from typing import Optional

from playwright.async_api import (
    Browser,
    Page,
    Playwright,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)
from selectolax.parser import HTMLParser, Node

from countdown_scraper.config import config

logger = logging.getLogger(__name__)

# Product cards are rendered client-side into this element
LISTINGS_READY_SELECTOR = "cdx-card"
LISTING_SELECTOR = "cdx-card a.product-entry"

EXCLUDED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "media", "font", "other"})
EXCLUDED_URL_PARTS = (
    "googleoptimize.com",
    "gtm.js",
    "visitoridentification.js",
    "js-agent.newrelic.com",
    "cquotient.com",
    "googletagmanager.com",
    "cloudflareinsights.com",
    "dwanalytics",
    "edge.adobedc.net",
)


class PageLoadTimeout(Exception):
    """Navigation or listing wait exceeded its time budget."""


def should_block_request(url: str, resource_type: str) -> bool:
    """Ads, tracking and bandwidth-heavy resources are never downloaded."""
    if resource_type in EXCLUDED_RESOURCE_TYPES:
        return True
    return any(part in url for part in EXCLUDED_URL_PARTS)


class BrowserDriver:
    """Single-page Playwright driver, reused for every target and closed once."""

    def __init__(self, browser_name: Optional[str] = None, headless: Optional[bool] = None):
        self.browser_name = browser_name or config.BROWSER
        self.headless = config.HEADLESS if headless is None else headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._page: Optional[Page] = None

    async def start(self) -> None:
        logger.info("Launching Headless Browser..")
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.browser_name)
        self._browser = await launcher.launch(headless=self.headless)
        self._page = await self._browser.new_page()
        await self._page.route("**/*", self._route_exclusions)

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _route_exclusions(self, route: Route) -> None:
        request = route.request
        if should_block_request(request.url, request.resource_type):
            await route.abort()
        else:
            await route.continue_()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("BrowserDriver.start() has not been called")
        return self._page

    async def navigate(self, url: str, timeout: float) -> None:
        """Open url, raising PageLoadTimeout after timeout seconds."""
        try:
            await self.page.goto(url, timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise PageLoadTimeout(f"Navigation to {url} timed out after {timeout}s") from e

    async def wait_for_listings_ready(self, timeout: float) -> None:
        """Wait for product cards to materialise."""
        try:
            await self.page.wait_for_selector(LISTINGS_READY_SELECTOR, timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise PageLoadTimeout(f"No {LISTINGS_READY_SELECTOR} after {timeout}s") from e

    async def extract_listing_elements(self) -> list[Node]:
        """Snapshot the rendered DOM and return one node per product listing."""
        html = await self.page.evaluate("() => document.body.innerHTML")
        return HTMLParser(html).css(LISTING_SELECTOR)

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
            self._page = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
