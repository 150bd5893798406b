"""Counters for scrape progress and upsert outcomes."""
import time
import logging
from collections import defaultdict
from typing import Dict

from countdown_scraper.parse.models import UpsertDecision

logger = logging.getLogger(__name__)


def format_elapsed(seconds: float) -> str:
    """Seconds under a minute, otherwise m:ss."""
    if seconds < 60:
        return f"{seconds:.0f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


class PageCounters:
    """Upsert outcomes for the listings of one page.

    Listing tasks all run on the event loop thread and ``record`` never awaits,
    so concurrent tasks cannot lose an increment.
    """

    def __init__(self):
        self.counters: Dict[UpsertDecision, int] = defaultdict(int)

    def record(self, decision: UpsertDecision) -> None:
        self.counters[decision] += 1

    def get(self, decision: UpsertDecision) -> int:
        return self.counters.get(decision, 0)

    @property
    def total(self) -> int:
        return sum(self.counters.values())

    def summary(self) -> str:
        return (
            f"{self.get(UpsertDecision.NEW_PRODUCT)} new products, "
            f"{self.get(UpsertDecision.PRICE_CHANGED)} updated prices, "
            f"{self.get(UpsertDecision.INFO_CHANGED)} updated info, "
            f"{self.get(UpsertDecision.ALREADY_UP_TO_DATE)} already up-to-date, "
            f"{self.get(UpsertDecision.FAILED)} failed updates"
        )

    def as_dict(self) -> Dict[str, int]:
        return {decision.value: self.get(decision) for decision in UpsertDecision}


class Metrics:
    """Track run-wide progress across pages."""

    def __init__(self, total_pages: int):
        self.total_pages = total_pages
        self.start_time = time.monotonic()
        self.counters: Dict[str, int] = defaultdict(int)

    def increment(self, key: str, amount: int = 1) -> None:
        """Increment a counter."""
        self.counters[key] = self.counters.get(key, 0) + amount

    def add_page(self, page: PageCounters) -> None:
        for decision, count in page.counters.items():
            self.increment(decision.value, count)

    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def format_elapsed(self) -> str:
        return format_elapsed(self.elapsed())

    def get_summary(self) -> Dict:
        """Get summary statistics."""
        summary = {
            "total_pages": self.total_pages,
            "pages_scraped": self.counters.get("pages_scraped", 0),
            "pages_skipped": self.counters.get("pages_skipped", 0),
            "listings_found": self.counters.get("listings_found", 0),
            "rejected": self.counters.get("rejected", 0),
            "elapsed_seconds": self.elapsed(),
        }
        for decision in UpsertDecision:
            summary[decision.value] = self.counters.get(decision.value, 0)
        return summary
