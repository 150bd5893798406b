"""Frappe REST product store (Product Item doctype)."""
import logging
from typing import Any, Optional
import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from countdown_scraper.config import config
from countdown_scraper.parse.models import Product, UpsertDecision
from countdown_scraper.store.base import StorageBackend

logger = logging.getLogger(__name__)

_network_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
    reraise=True,
)


class FrappeStore(StorageBackend):
    """Products as Frappe resources, addressed as <FRAPPE_URL>/<id>.

    Documents use camelCase field names.
    """

    name = "Frappe"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or config.FRAPPE_URL or "").rstrip("/")
        if not self.base_url:
            raise ValueError("Frappe configuration missing")
        api_key = api_key or config.FRAPPE_API_KEY
        api_secret = api_secret or config.FRAPPE_API_SECRET
        self.client = client or httpx.AsyncClient(timeout=config.TIMEOUT)
        self.headers = {"Authorization": f"token {api_key}:{api_secret}"}

    async def close(self) -> None:
        await self.client.aclose()

    @_network_retry
    async def get(self, product_id: str) -> Optional[Product]:
        response = await self.client.get(f"{self.base_url}/{product_id}", headers=self.headers)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return Product.model_validate(response.json()["data"])

    def _document(self, product: Product) -> dict[str, Any]:
        return product.model_dump(mode="json", by_alias=True)

    @_network_retry
    async def _write(self, decision: UpsertDecision, product: Product) -> None:
        document = self._document(product)
        if decision is UpsertDecision.NEW_PRODUCT:
            response = await self.client.post(
                self.base_url, json={"data": document}, headers=self.headers
            )
            # Created by an earlier, interrupted run
            if response.status_code != 409:
                response.raise_for_status()
                return
        document.pop("id", None)
        response = await self.client.put(
            f"{self.base_url}/{product.id}", json={"data": document}, headers=self.headers
        )
        response.raise_for_status()
