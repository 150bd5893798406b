"""Main job runner orchestrating the scraping pipeline."""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Awaitable, Callable, Optional, Protocol

from selectolax.parser import Node

from countdown_scraper.config import config
from countdown_scraper.fetch.browser import PageLoadTimeout
from countdown_scraper.fetch.images import ImageMirror
from countdown_scraper.fetch.urls import shorten_url
from countdown_scraper.jobs.metrics import Metrics, PageCounters
from countdown_scraper.jobs.metrics_exporter import MetricsExporter
from countdown_scraper.parse.listing import build_product, extract_raw_fields, validate_product
from countdown_scraper.parse.models import CategorisedUrl, Product, UpsertDecision, utcnow
from countdown_scraper.parse.table import ProductTableFormatter
from countdown_scraper.store.base import StorageBackend
from countdown_scraper.store.reconcile import ReconciliationEngine

logger = logging.getLogger(__name__)


class PageDriver(Protocol):
    async def navigate(self, url: str, timeout: float) -> None: ...

    async def wait_for_listings_ready(self, timeout: float) -> None: ...

    async def extract_listing_elements(self) -> list[Node]: ...

    async def close(self) -> None: ...


class ScrapeRunner:
    """Visits each target page in order, one at a time, with a fixed delay between pages.

    Listings on one page are reconciled and stored concurrently and joined
    before the page summary is logged. A page that fails to load is skipped
    and the run moves on. In dry-run mode nothing is reconciled or stored;
    valid products are logged as table rows instead.
    """

    def __init__(
        self,
        targets: list[CategorisedUrl],
        driver: PageDriver,
        store: Optional[StorageBackend] = None,
        engine: Optional[ReconciliationEngine] = None,
        dry_run: bool = False,
        reverse: bool = False,
        delay_seconds: Optional[float] = None,
        page_timeout: Optional[float] = None,
        image_mirror: Optional[ImageMirror] = None,
        metrics_exporter: Optional[MetricsExporter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
        run_id: Optional[str] = None,
    ):
        if not dry_run and (store is None or engine is None):
            raise ValueError("A store and a reconciliation engine are required unless dry_run is set")

        self.targets = list(reversed(targets)) if reverse else list(targets)
        self.driver = driver
        self.store = store
        self.engine = engine
        self.dry_run = dry_run
        self.delay_seconds = (
            config.SECONDS_DELAY_BETWEEN_PAGES if delay_seconds is None else delay_seconds
        )
        if self.delay_seconds < 0:
            raise ValueError(f"delay_seconds must not be negative, got {self.delay_seconds}")
        self.page_timeout = config.PAGE_TIMEOUT if page_timeout is None else page_timeout
        self.image_mirror = None if dry_run else image_mirror
        self.metrics_exporter = metrics_exporter
        self.sleep = sleep
        self.clock = clock

        self.run_id = run_id or str(uuid.uuid4())
        self.metrics = Metrics(len(self.targets))

    async def run(self) -> None:
        """Scrape every target, then release the browser."""
        logger.info(
            f"{len(self.targets)} pages to be scraped \t"
            f"{self.delay_seconds}s delay between scrapes\t"
            + (" (Dry Run Mode On) " if self.dry_run else "")
        )

        try:
            for index, target in enumerate(self.targets, start=1):
                try:
                    await self._scrape_page(index, target)
                except Exception as e:
                    logger.error(f"Error scraping {target.url}: {e}", exc_info=True)
                    self.metrics.increment("pages_skipped")
                    await self._export_page(target, page_valid=False, listings=0, counters=PageCounters())

                # Throttle requests to the origin site
                if index < len(self.targets):
                    await self.sleep(self.delay_seconds)
        finally:
            await self.driver.close()
            self._final_report()

    async def _scrape_page(self, index: int, target: CategorisedUrl) -> None:
        logger.info(f"[{index}/{len(self.targets)}] Scraping {shorten_url(target.url)}")

        try:
            await self.driver.navigate(target.url, self.page_timeout)
            await self.driver.wait_for_listings_ready(self.page_timeout)
        except PageLoadTimeout as e:
            logger.error(f"Page Timeout after {self.page_timeout} seconds - Skipping this page ({e})")
            self.metrics.increment("pages_skipped")
            await self._export_page(target, page_valid=False, listings=0, counters=PageCounters())
            return

        elements = await self.driver.extract_listing_elements()
        self.metrics.increment("pages_scraped")
        self.metrics.increment("listings_found", len(elements))
        logger.info(
            f"{len(elements)} product entries found \t"
            f"Time Elapsed: {self.metrics.format_elapsed()} \t"
            f"Categories: [{', '.join(target.categories)}]"
        )

        if self.dry_run:
            self._log_table(elements, target.categories)
            return

        counters = PageCounters()
        tasks = [self._process_listing(element, target.categories, counters) for element in elements]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Listing task failed: {result}")
                counters.record(UpsertDecision.FAILED)

        self.metrics.add_page(counters)
        logger.info(f"{self.store.name}: {counters.summary()}\n")
        await self._export_page(target, page_valid=True, listings=len(elements), counters=counters)

    def _candidate(self, element: Node, categories: list[str]) -> Optional[Product]:
        """Extract and validate one listing, or None if it is unusable."""
        raw = extract_raw_fields(element)
        if raw is None:
            self.metrics.increment("extraction_failed")
            return None

        product = build_product(raw, categories, now=self.clock())
        if not validate_product(product):
            logger.error(f"Unable to Scrape: {product.id} | {product.name} | ${product.current_price}")
            self.metrics.increment("rejected")
            return None
        return product

    def _log_table(self, elements: list[Node], categories: list[str]) -> None:
        formatter = ProductTableFormatter()
        logger.info(formatter.header())
        for element in elements:
            product = self._candidate(element, categories)
            if product is not None:
                logger.info(formatter.row(product))

    async def _process_listing(
        self, element: Node, categories: list[str], counters: PageCounters
    ) -> None:
        product = self._candidate(element, categories)
        if product is None:
            return

        decision = await self.reconcile_and_store(product)
        counters.record(decision)

        if self.image_mirror is not None:
            try:
                await self.image_mirror.mirror_product(product)
            except Exception as e:
                logger.warning(f"Image mirroring failed for {product.id}: {e}")

    async def reconcile_and_store(self, product: Product) -> UpsertDecision:
        """Look up the stored record, decide, and persist. Never raises."""
        try:
            existing = await self.store.get(product.id)
        except Exception as e:
            logger.error(f"{self.store.name}: failed to read product {product.id}: {e}")
            return UpsertDecision.FAILED

        decision, to_persist = self.engine.reconcile(product, existing)
        return await self.store.upsert(decision, to_persist)

    async def _export_page(
        self, target: CategorisedUrl, page_valid: bool, listings: int, counters: PageCounters
    ) -> None:
        if self.metrics_exporter is None:
            return
        try:
            await self.metrics_exporter.export_page(
                url=target.url,
                page_valid=page_valid,
                listings=listings,
                counters=counters.as_dict(),
                elapsed=self.metrics.elapsed(),
            )
        except OSError as e:
            logger.warning(f"Could not export page metrics: {e}")

    def _final_report(self) -> None:
        summary = self.metrics.get_summary()
        logger.info(
            f"Run {self.run_id}: {summary['pages_scraped']} pages scraped, "
            f"{summary['pages_skipped']} skipped, {summary['listings_found']} listings, "
            f"{summary['rejected']} rejected"
        )
        logger.info(f"All Pages Completed = Total Time Elapsed {self.metrics.format_elapsed()} \n")
