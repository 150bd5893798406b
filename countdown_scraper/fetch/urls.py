"""Scrape target parsing for Countdown category pages."""
import logging
from pathlib import Path
from typing import Optional

from countdown_scraper.config import config
from countdown_scraper.parse.models import CategorisedUrl

logger = logging.getLogger(__name__)

# Show 48 in-stock products on the first page
QUERY_OPTIONS = "?page=1&size=48&inStockProductsOnly=true"


def parse_and_categorise_url(line: str, site: Optional[str] = None) -> Optional[CategorisedUrl]:
    """Parse a url and optional categories from one line of text.

    Example:
        countdown.co.nz/shop/browse/frozen/ice-cream-sorbet/tubs categories=ice-cream
        -> url https://countdown.co.nz/shop/browse/frozen/ice-cream-sorbet/tubs?page=1&size=48&inStockProductsOnly=true
           categories ["ice-cream"]

    Without a ``categories=`` token the last /path/ segment is used.
    Returns None if the line holds no url for the site.
    """
    site = site or config.SOURCE_SITE
    if site not in line:
        return None

    url = ""
    categories: list[str] = []
    for section in line.split():
        if site in section:
            url = section if section.startswith("http") else f"https://{section}"
            # Replace any existing query options with our own
            url = url.split("?", 1)[0] + QUERY_OPTIONS
        elif section.startswith("categories="):
            raw = section[len("categories="):]
            categories = [c.strip() for c in raw.split(",") if c.strip()]

    if not url:
        return None

    if not categories:
        base_url = url.split("?", 1)[0]
        segments = [s for s in base_url.split("/") if s]
        categories = [segments[-1]]

    return CategorisedUrl(url=url, categories=categories)


def load_targets(path: Path, site: Optional[str] = None) -> list[CategorisedUrl]:
    """Read scrape targets from a text file, one per line.

    Blank lines and lines starting with '#' are ignored.
    """
    targets = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            target = parse_and_categorise_url(line, site)
            if target is None:
                logger.warning(f"Ignoring line without a {site or config.SOURCE_SITE} url: {line}")
                continue
            targets.append(target)
    return targets


def shorten_url(url: str) -> str:
    """Strip scheme, www and our query options for log output."""
    for prefix in ("https://www.", "http://www.", "https://", "http://"):
        if url.startswith(prefix):
            url = url[len(prefix):]
            break
    return url.replace(QUERY_OPTIONS, "")
