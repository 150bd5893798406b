"""Storage backend interface shared by every product store."""
import abc
import logging
from typing import Any, Optional

from countdown_scraper.parse.models import Product, UpsertDecision

logger = logging.getLogger(__name__)


class StorageBackend(abc.ABC):
    """Durable product store keyed by product id.

    Subclasses implement ``get`` and ``_write``. ``upsert`` wraps ``_write`` so
    that a write error is reported as ``UpsertDecision.FAILED`` and never
    raised.
    """

    name = "storage"

    async def initialize(self) -> None:
        """Open connections and create tables if needed."""

    async def close(self) -> None:
        """Release connections."""

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @abc.abstractmethod
    async def get(self, product_id: str) -> Optional[Product]:
        """Fetch the stored record, or None if the id is unknown."""
        raise NotImplementedError

    @abc.abstractmethod
    async def _write(self, decision: UpsertDecision, product: Product) -> None:
        """Write product as the new durable state for its id."""
        raise NotImplementedError

    async def upsert(self, decision: UpsertDecision, product: Product) -> UpsertDecision:
        """Persist product and return decision, or FAILED if the write errors."""
        if decision is UpsertDecision.FAILED:
            return decision
        try:
            await self._write(decision, product)
        except Exception as e:
            logger.error(f"{self.name}: failed to write product {product.id}: {e}")
            return UpsertDecision.FAILED
        return decision


def product_to_row(product: Product) -> dict[str, Any]:
    """Flatten a product into JSON-compatible column values."""
    return product.model_dump(mode="json")


def row_to_product(row: dict[str, Any]) -> Product:
    return Product.model_validate(row)
