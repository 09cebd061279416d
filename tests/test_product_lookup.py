"""
Tests for the Product Lookup client (cartscraper/product_lookup.py).

Covers:
- Client initialization and configuration
- fetch_product: success, upstream error status, error field in a 200 body
- Missing id and missing API key
- Transport failures
"""

from __future__ import annotations

import httpx
import pytest
import respx

from cartscraper.config import settings
from cartscraper.product_lookup import ProductLookupClient, ProductLookupError

SEARCH_URL = "https://searchapi.test/api/v1/search"


def test_client_init_defaults() -> None:
    """Client uses settings defaults when no overrides are given."""
    client = ProductLookupClient()

    assert client._api_key == settings.SEARCHAPI_API_KEY
    assert client._base_url == settings.SEARCHAPI_URL
    assert client._client is None


@pytest.mark.asyncio
async def test_fetch_product_success() -> None:
    """The upstream document is returned untouched, with the engine query params sent."""
    document = {"product": {"product_id": "12345", "title": "Shirt", "price": "$19.99"}}

    with respx.mock:
        route = respx.get(SEARCH_URL).mock(return_value=httpx.Response(200, json=document))

        async with ProductLookupClient(api_key="test-key", base_url=SEARCH_URL) as client:
            result = await client.fetch_product("12345")

    assert result == document
    params = route.calls.last.request.url.params
    assert params["engine"] == "shein_product"
    assert params["product_id"] == "12345"
    assert params["api_key"] == "test-key"


@pytest.mark.asyncio
async def test_fetch_product_upstream_error() -> None:
    """Upstream error statuses are passed through with the upstream message."""
    with respx.mock:
        respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(401, json={"error": "Invalid API key"})
        )

        with pytest.raises(ProductLookupError) as exc_info:
            async with ProductLookupClient(api_key="bad-key", base_url=SEARCH_URL) as client:
                await client.fetch_product("12345")

    assert exc_info.value.status_code == 401
    assert str(exc_info.value) == "Invalid API key"
    assert exc_info.value.details == {"error": "Invalid API key"}


@pytest.mark.asyncio
async def test_fetch_product_upstream_error_without_message() -> None:
    with respx.mock:
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(ProductLookupError) as exc_info:
            async with ProductLookupClient(api_key="k", base_url=SEARCH_URL) as client:
                await client.fetch_product("12345")

    assert exc_info.value.status_code == 502
    assert str(exc_info.value).startswith("API request failed: 502")


@pytest.mark.asyncio
async def test_fetch_product_error_field_in_ok_response() -> None:
    with respx.mock:
        respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json={"error": "Product not found"})
        )

        with pytest.raises(ProductLookupError) as exc_info:
            async with ProductLookupClient(api_key="k", base_url=SEARCH_URL) as client:
                await client.fetch_product("0")

    assert exc_info.value.status_code == 400
    assert str(exc_info.value) == "Product not found"


@pytest.mark.asyncio
async def test_fetch_product_transport_error() -> None:
    with respx.mock:
        respx.get(SEARCH_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(ProductLookupError) as exc_info:
            async with ProductLookupClient(api_key="k", base_url=SEARCH_URL) as client:
                await client.fetch_product("12345")

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_fetch_product_requires_id() -> None:
    async with ProductLookupClient(api_key="k", base_url=SEARCH_URL) as client:
        with pytest.raises(ProductLookupError) as exc_info:
            await client.fetch_product("")

    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_fetch_product_requires_api_key() -> None:
    """No request is made when the API key is not configured."""
    with respx.mock(assert_all_called=False) as mock:
        route = mock.get(SEARCH_URL)

        async with ProductLookupClient(api_key="", base_url=SEARCH_URL) as client:
            with pytest.raises(ProductLookupError) as exc_info:
                await client.fetch_product("12345")

    assert exc_info.value.status_code == 503
    assert not route.called
