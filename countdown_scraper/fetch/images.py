"""Best-effort product image mirroring through a storage function endpoint."""
import logging
from enum import Enum
from typing import Optional
import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from countdown_scraper.config import config
from countdown_scraper.parse.models import Product

logger = logging.getLogger(__name__)

IMAGE_URL_BASE = "https://assets.woolworths.com.au/images/2010/"
IMAGE_URL_SUFFIX = ".jpg?impolicy=wowcdxwbjbx&w=900&h=900"
IMAGE_DESTINATION = "s3://supermarketimages/product-images/"


class ImageMirrorResult(str, Enum):
    SUCCESS = "success"
    ALREADY_EXISTS = "already_exists"
    UNAVAILABLE = "unavailable"
    UNPROCESSABLE = "unprocessable"
    ERROR = "error"


def image_url_for(product_id: str) -> str:
    return f"{IMAGE_URL_BASE}{product_id}{IMAGE_URL_SUFFIX}"


def classify_response(text: str) -> ImageMirrorResult:
    """Map the mirror function's plain-text reply to a result."""
    if "S3 Upload of Full-Size" in text:
        return ImageMirrorResult.SUCCESS
    if "already exists" in text:
        return ImageMirrorResult.ALREADY_EXISTS
    if "Unable to download:" in text:
        return ImageMirrorResult.UNAVAILABLE
    if "unable to be processed" in text:
        return ImageMirrorResult.UNPROCESSABLE
    return ImageMirrorResult.ERROR


class ImageMirror:
    """Asks the mirror function to copy a product image into the CDN bucket."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        cdn_check_url_base: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint or config.IMAGE_MIRROR_URL
        if not self.endpoint or "http" not in self.endpoint:
            raise ValueError(
                "IMAGE_MIRROR_URL is invalid, expected "
                "https://<func-app>.azurewebsites.net/api/ImageToS3?code=<auth-code>"
            )
        self.cdn_check_url_base = (
            config.CDN_CHECK_URL_BASE if cdn_check_url_base is None else cdn_check_url_base
        )
        self.client = client or httpx.AsyncClient(timeout=config.TIMEOUT)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    def build_request_url(self, product_id: str, image_url: str) -> str:
        return f"{self.endpoint}&destination={IMAGE_DESTINATION}{product_id}&source={image_url}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        reraise=True,
    )
    async def _request(self, url: str) -> str:
        response = await self.client.get(url)
        return response.text

    async def mirror_image(self, product_id: str, image_url: str) -> ImageMirrorResult:
        """Never raises; failures are logged and reported as a result."""
        if not image_url or "http" not in image_url:
            logger.info(f"   Image {product_id} has invalid url: {image_url}")
            return ImageMirrorResult.ERROR

        try:
            text = await self._request(self.build_request_url(product_id, image_url))
        except httpx.HTTPError as e:
            logger.warning(f"  Image {product_id} mirror request failed: {e}")
            return ImageMirrorResult.ERROR

        result = classify_response(text)
        if result is ImageMirrorResult.SUCCESS:
            logger.info(f"  New Image  : {self.cdn_check_url_base}{product_id}.webp")
        elif result is ImageMirrorResult.UNAVAILABLE:
            logger.info(f"  Image {product_id} unavailable to be downloaded")
        elif result is ImageMirrorResult.UNPROCESSABLE:
            logger.info(f"  Image {product_id} unable to be processed")
        elif result is ImageMirrorResult.ERROR:
            logger.warning(f"  Image {product_id} mirror error: {text[:200]}")
        return result

    async def mirror_product(self, product: Product) -> ImageMirrorResult:
        return await self.mirror_image(product.id, image_url_for(product.id))
