"""Extract and validate products from Countdown listing cards."""
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from selectolax.parser import Node

from countdown_scraper.config import config
from countdown_scraper.parse.models import DatedPrice, Product, utcnow

# Selectors inside one `cdx-card a.product-entry`
TITLE_SELECTOR = "h3"
SIZE_SELECTOR = "div.product-meta p span.size"
DOLLARS_SELECTOR = "div.product-meta product-price h3 em"
CENTS_SELECTOR = "div.product-meta product-price h3 span"

MAX_PRICE = 999

_NON_DIGITS = re.compile(r"\D")
_APOSTROPHES = re.compile(r"['’]")
_WORDS = re.compile(r"[^\W_]+")


@dataclass(frozen=True)
class RawProductFields:
    """Untyped candidate fields read from one listing element."""

    id: str
    name: str
    size: str
    dollars: str
    cents: str


def start_case(text: str) -> str:
    """Capitalise the first letter of every word, dropping separator punctuation.

    Apostrophes are removed rather than splitting a word.

    "ANCHOR blue-top milk" -> "ANCHOR Blue Top Milk"
    "ben & jerry's" -> "Ben Jerrys"
    """
    words = _WORDS.findall(_APOSTROPHES.sub("", text))
    return " ".join(word[0].upper() + word[1:] for word in words)


def digits_only(text: str) -> str:
    return _NON_DIGITS.sub("", text or "")


def _text(element: Node, selector: str) -> str:
    node = element.css_first(selector)
    return node.text(strip=True) if node else ""


def extract_raw_fields(element: Node) -> Optional[RawProductFields]:
    """Read id, name, size and split price parts from a listing element.

    Returns None when the element has no title or no dollar amount.
    """
    title = element.css_first(TITLE_SELECTOR)
    if title is None:
        return None

    dollars = _text(element, DOLLARS_SELECTOR)
    if not dollars:
        return None

    # Cents may carry a unit suffix such as "kg" on meat products
    cents = digits_only(_text(element, CENTS_SELECTOR)) or "0"

    return RawProductFields(
        id=digits_only(title.attributes.get("id") or ""),
        name=start_case(title.text(strip=True)),
        size=_text(element, SIZE_SELECTOR),
        dollars=dollars,
        cents=cents,
    )


def parse_price(dollars: str, cents: str) -> float:
    """Join dollar and cent strings into a price, NaN when unparseable."""
    try:
        return round(float(f"{dollars}.{cents}"), 2)
    except ValueError:
        return math.nan


def build_product(
    raw: RawProductFields,
    categories: list[str],
    now: Optional[datetime] = None,
) -> Product:
    """Build a candidate Product stamped with the scrape time."""
    now = now or utcnow()
    price = parse_price(raw.dollars, raw.cents)
    return Product(
        id=raw.id,
        name=raw.name,
        size=raw.size,
        source_site=config.SOURCE_SITE,
        category=list(categories),
        current_price=price,
        price_history=[DatedPrice(date=now, price=price)],
        last_checked=now,
        last_updated=now,
    )


def validate_product(product: Product) -> bool:
    """Runs basic range checks on a scraped product. Fails closed."""
    try:
        if len(product.name) < 4 or len(product.name) > 100:
            return False
        if len(product.id) < 2 or len(product.id) > 20:
            return False
        price = product.current_price
        if price is None or not math.isfinite(price) or price <= 0 or price > MAX_PRICE:
            return False
        return True
    except Exception:
        return False

