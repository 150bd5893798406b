"""Shared fakes and builders for the test suite."""
import asyncio
from datetime import datetime, timezone
from typing import Optional
from selectolax.parser import HTMLParser

from countdown_scraper.fetch.browser import PageLoadTimeout
from countdown_scraper.parse.models import DatedPrice, Product, UpsertDecision
from countdown_scraper.store.base import StorageBackend

DAY_D = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
DAY_D1 = datetime(2024, 3, 2, 9, 30, tzinfo=timezone.utc)


def listing_html(
    product_id: str = "282764",
    name: str = "anchor blue top milk",
    size: str = "2L",
    dollars: str = "4",
    cents: str = "50",
) -> str:
    """One `cdx-card a.product-entry` as rendered by the site."""
    return f"""
    <cdx-card>
      <a class="product-entry">
        <h3 id="product-{product_id}-title">{name}</h3>
        <div class="product-meta">
          <p><span class="size">{size}</span></p>
          <product-price><h3><em>{dollars}</em><span>{cents}</span></h3></product-price>
        </div>
      </a>
    </cdx-card>
    """


def listing_nodes(*cards: str):
    return HTMLParser("<div>" + "".join(cards) + "</div>").css("cdx-card a.product-entry")


def make_product(
    product_id: str = "282764",
    price: float = 4.00,
    when: datetime = DAY_D,
    category: Optional[list[str]] = None,
    name: str = "Anchor Blue Top Milk",
) -> Product:
    return Product(
        id=product_id,
        name=name,
        size="2L",
        category=["milk"] if category is None else category,
        current_price=price,
        price_history=[DatedPrice(date=when, price=price)],
        last_checked=when,
        last_updated=when,
    )


class MemoryStore(StorageBackend):
    """Dict-backed store recording every call."""

    name = "Memory"

    def __init__(
        self,
        products: Optional[dict[str, Product]] = None,
        fail_writes: bool = False,
        yield_control: bool = False,
    ):
        self.products = dict(products or {})
        self.fail_writes = fail_writes
        # Hand control back to the event loop on every call so listing tasks interleave
        self.yield_control = yield_control
        self.gets: list[str] = []
        self.writes: list[tuple[UpsertDecision, Product]] = []

    async def get(self, product_id: str) -> Optional[Product]:
        if self.yield_control:
            await asyncio.sleep(0)
        self.gets.append(product_id)
        return self.products.get(product_id)

    async def _write(self, decision: UpsertDecision, product: Product) -> None:
        if self.yield_control:
            await asyncio.sleep(0)
        if self.fail_writes:
            raise ConnectionError("database is down")
        self.writes.append((decision, product))
        self.products[product.id] = product


class FakeDriver:
    """Serves canned listing HTML per url; urls in `timeouts` never load.

    Urls in `broken` fail with an unexpected error once the page has loaded.
    """

    def __init__(
        self,
        pages: dict[str, list[str]],
        timeouts: tuple[str, ...] = (),
        broken: tuple[str, ...] = (),
    ):
        self.pages = pages
        self.timeouts = set(timeouts)
        self.broken = set(broken)
        self.visited: list[str] = []
        self.closed = 0
        self._current: Optional[str] = None

    async def navigate(self, url: str, timeout: float) -> None:
        self.visited.append(url)
        self._current = url

    async def wait_for_listings_ready(self, timeout: float) -> None:
        if self._current in self.timeouts:
            raise PageLoadTimeout(f"No cdx-card after {timeout}s")

    async def extract_listing_elements(self):
        if self._current in self.broken:
            raise RuntimeError("Target page crashed")
        return listing_nodes(*self.pages.get(self._current, []))

    async def close(self) -> None:
        self.closed += 1


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
