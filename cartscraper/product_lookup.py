"""
Cart Scraper — Product Lookup Client

Fetches full product details for a single SHEIN product id through
SearchAPI's `shein_product` engine. Used by the order UI to enrich items
after a cart has been scraped.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from cartscraper.config import settings

logger = structlog.get_logger(__name__)

SEARCHAPI_ENGINE = "shein_product"


class ProductLookupError(Exception):
    """Upstream lookup failed; carries the HTTP status to return to the caller."""

    def __init__(self, message: str, status_code: int = 500, details: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ProductLookupClient:
    """
    Async client for SearchAPI product lookups.

    Usage:
        async with ProductLookupClient() as client:
            product = await client.fetch_product("12345678")
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.SEARCHAPI_API_KEY
        self._base_url = base_url or settings.SEARCHAPI_URL
        self._timeout = timeout or settings.SEARCHAPI_TIMEOUT_SECONDS
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> ProductLookupClient:
        self._client = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    async def fetch_product(self, product_id: str) -> dict[str, Any]:
        """
        Fetch product data for one product id.

        Args:
            product_id: SHEIN goods id.

        Returns:
            The upstream JSON document.

        Raises:
            ProductLookupError: missing id or API key, upstream error status,
                an error field in a 200 response, or a transport failure.
        """
        assert self._client is not None, "Client not initialized. Use 'async with'."

        if not product_id:
            raise ProductLookupError("Product ID is required", status_code=400)
        if not self._api_key:
            raise ProductLookupError("SEARCHAPI_API_KEY is not configured", status_code=503)

        logger.info("product_lookup_fetch", product_id=product_id, source="product_lookup")

        try:
            response = await self._client.get(
                self._base_url,
                params={
                    "engine": SEARCHAPI_ENGINE,
                    "product_id": product_id,
                    "api_key": self._api_key,
                },
            )
        except httpx.RequestError as e:
            logger.error(
                "product_lookup_request_error",
                product_id=product_id,
                error=str(e),
                source="product_lookup",
            )
            raise ProductLookupError(f"Failed to fetch product data: {e}", status_code=502) from e

        try:
            data = response.json()
        except ValueError:
            data = {"body": response.text[:500]}

        if response.is_error:
            message = (
                (data.get("error") or data.get("message")) if isinstance(data, dict) else None
            ) or f"API request failed: {response.status_code} {response.reason_phrase}"
            logger.warning(
                "product_lookup_http_error",
                product_id=product_id,
                status_code=response.status_code,
                source="product_lookup",
            )
            raise ProductLookupError(message, status_code=response.status_code, details=data)

        if isinstance(data, dict) and data.get("error"):
            raise ProductLookupError(str(data["error"]), status_code=400, details=data)

        logger.info("product_lookup_fetch_complete", product_id=product_id, source="product_lookup")
        return data
