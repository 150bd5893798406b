"""Supabase product store (one JSON-friendly row per product)."""
import asyncio
import logging
from typing import Any, Optional
from supabase import create_client, Client
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from countdown_scraper.config import config
from countdown_scraper.parse.models import Product, UpsertDecision
from countdown_scraper.store.base import StorageBackend, product_to_row, row_to_product

logger = logging.getLogger(__name__)


class SupabaseStore(StorageBackend):
    """Reads and upserts products in a Supabase table keyed by id."""

    name = "Supabase"

    def __init__(self, client: Optional[Client] = None, table: Optional[str] = None):
        if client is None:
            if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE:
                raise ValueError("Supabase configuration missing")
            client = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE)
        self.client: Client = client
        self.table = table or config.SUPABASE_TABLE

    async def initialize(self) -> None:
        if not await self.test_connection():
            raise RuntimeError("Supabase connection failed")

    async def get(self, product_id: str) -> Optional[Product]:
        # Run sync Supabase client in thread pool
        loop = asyncio.get_running_loop()
        rows = await loop.run_in_executor(None, self._select_sync, product_id)
        if not rows:
            return None
        return row_to_product(rows[0])

    async def _write(self, decision: UpsertDecision, product: Product) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._upsert_sync, product_to_row(product))

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((Exception,)),
        reraise=True,
    )
    def _select_sync(self, product_id: str) -> list[dict[str, Any]]:
        """Synchronous select (called from thread pool)."""
        response = (
            self.client.table(self.table)
            .select("*")
            .eq("id", product_id)
            .limit(1)
            .execute()
        )
        return response.data or []

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((Exception,)),
        reraise=True,
    )
    def _upsert_sync(self, row: dict[str, Any]) -> None:
        """Synchronous upsert (called from thread pool)."""
        (
            self.client.table(self.table)
            .upsert(row, on_conflict="id")
            .execute()
        )

    async def test_connection(self) -> bool:
        """Test Supabase connection."""
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                lambda: (
                    self.client.table(self.table)
                    .select("id", count="exact")
                    .limit(1)
                    .execute()
                ),
            )
            logger.info("Supabase connection successful")
            return True
        except Exception as e:
            logger.error(f"Supabase connection test failed: {e}")
            return False
