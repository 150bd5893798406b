"""Decide how a freshly scraped product changes its stored record."""
import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, Optional

from countdown_scraper.parse.models import Product, UpsertDecision
from countdown_scraper.parse.table import format_price_change

logger = logging.getLogger(__name__)

# Price moves at or below this are treated as noise
PRICE_CHANGE_THRESHOLD = 0.05


def calendar_day(timestamp: datetime, tz: tzinfo) -> date:
    """Date of timestamp as seen in tz. Naive timestamps are taken as UTC."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(tz).date()


class ReconciliationEngine:
    """Compares scraped products against stored ones.

    A price change is only recorded when it moves by more than 5 cents and is
    seen on a different calendar day from the stored ``last_updated``, so
    several runs on one day add at most one history entry.

    Stored categories that are missing or outside ``valid_categories`` are
    replaced by the scraped ones without touching the price history.
    """

    def __init__(
        self,
        valid_categories: Iterable[str],
        day_timezone: tzinfo = timezone.utc,
        price_change_threshold: float = PRICE_CHANGE_THRESHOLD,
    ):
        self.valid_categories = frozenset(valid_categories)
        self.day_timezone = day_timezone
        self.price_change_threshold = price_change_threshold

    def reconcile(
        self, scraped: Product, existing: Optional[Product]
    ) -> tuple[UpsertDecision, Product]:
        """Return the decision and the product state to persist. Never raises."""
        try:
            return self._reconcile(scraped, existing)
        except Exception as e:
            logger.error(f"Reconciliation failed for product {scraped.id}: {e}", exc_info=True)
            return UpsertDecision.FAILED, scraped

    def _reconcile(
        self, scraped: Product, existing: Optional[Product]
    ) -> tuple[UpsertDecision, Product]:
        if existing is None:
            logger.info(
                f"  New Product: {scraped.name[:47].ljust(47)} | $ {scraped.current_price}"
            )
            return UpsertDecision.NEW_PRODUCT, scraped.model_copy(deep=True)

        if self.is_price_change(scraped, existing):
            logger.info(format_price_change(existing.name, existing.current_price, scraped.current_price))
            history = [*existing.price_history, *scraped.price_history[-1:]]
            updated = scraped.model_copy(
                update={
                    "price_history": history,
                    "last_updated": scraped.last_updated,
                    "last_checked": scraped.last_checked,
                },
                deep=True,
            )
            return UpsertDecision.PRICE_CHANGED, updated

        if not self.has_valid_categories(existing):
            logger.info(
                f"  Categories Changed: {scraped.name.ljust(40)[:40]}"
                f" - {' '.join(existing.category)} > {' '.join(scraped.category)}"
            )
            updated = scraped.model_copy(
                update={
                    "current_price": existing.current_price,
                    "price_history": list(existing.price_history),
                    "last_updated": existing.last_updated,
                    "last_checked": max(scraped.last_checked, existing.last_updated),
                },
                deep=True,
            )
            return UpsertDecision.INFO_CHANGED, updated

        updated = existing.model_copy(
            update={"last_checked": max(scraped.last_checked, existing.last_updated)},
            deep=True,
        )
        return UpsertDecision.ALREADY_UP_TO_DATE, updated

    def price_delta(self, scraped: Product, existing: Product) -> float:
        return round(abs(existing.current_price - scraped.current_price), 2)

    def is_price_change(self, scraped: Product, existing: Product) -> bool:
        if self.price_delta(scraped, existing) <= self.price_change_threshold:
            return False
        existing_day = calendar_day(existing.last_updated, self.day_timezone)
        scraped_day = calendar_day(scraped.last_updated, self.day_timezone)
        return existing_day != scraped_day

    def has_valid_categories(self, product: Product) -> bool:
        if not product.category:
            return False
        return all(category in self.valid_categories for category in product.category)
