"""
Tests for the HTTP API (cartscraper/api.py).

Covers:
- POST /scrape: success, request validation, not-found diagnostics, errors
- GET /scrape and GET /health
- GET /product/{product_id}
"""

from __future__ import annotations

from typing import Any, Callable
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cartscraper.api import create_app, get_product_client, get_runner
from cartscraper.product_lookup import ProductLookupError
from cartscraper.scraper.errors import BrowserUnavailable, NavigationFailure
from fakes import FakePage, FakeResponse

CART_API_URL = "https://m.shein.com/api/cart/share/getCartInfo"


class RaisingRunner:
    """Runner stand-in whose extraction always fails with the given error."""

    def __init__(self, error: Exception) -> None:
        self.error = error

    async def run_extraction(self, cart_url: str) -> Any:
        raise self.error


class FakeProductClient:
    def __init__(self, data: Any = None, error: ProductLookupError | None = None) -> None:
        self.data = data
        self.error = error
        self.requested: list[str] = []

    async def __aenter__(self) -> FakeProductClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        return None

    async def fetch_product(self, product_id: str) -> Any:
        self.requested.append(product_id)
        if self.error is not None:
            raise self.error
        return self.data


@pytest.fixture
def app() -> FastAPI:
    return create_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def use_page(app: FastAPI, make_runner: Callable) -> Callable[[FakePage], None]:
    """Serve POST /scrape from a runner bound to the given fake page."""

    def _use(page: FakePage) -> None:
        runner, _ = make_runner(page)
        app.dependency_overrides[get_runner] = lambda: runner

    return _use


# ---------------------------------------------------------------------------
# POST /scrape
# ---------------------------------------------------------------------------


class TestScrape:
    def test_network_cart(
        self,
        client: TestClient,
        use_page: Callable,
        cart_url: str,
        network_cart_payload: dict,
    ) -> None:
        use_page(FakePage(responses=[FakeResponse(CART_API_URL, network_cart_payload)]))

        response = client.post("/scrape", json={"cartShareUrl": cart_url})

        assert response.status_code == 200
        body = response.json()
        assert body["sourceApiUrl"] == CART_API_URL
        assert "source" not in body
        assert body["count"] == 1
        item = body["items"][0]
        assert item["productId"] == "123"
        assert item["name"] == "Shirt"
        assert item["price"] == 19.99
        assert item["currency"] == "USD"
        assert item["qty"] == 2
        assert body["metadata"]["groupId"] == "631392305"
        assert body["metadata"]["localCountry"] == "AE"
        assert body["metadata"]["language"] == "ar"
        assert body["metadata"]["capturedAt"]

    def test_fallback_tier_reports_source(
        self,
        client: TestClient,
        use_page: Callable,
        cart_url: str,
        dom_cart_html: str,
    ) -> None:
        use_page(FakePage(html=dom_cart_html))

        response = client.post("/scrape", json={"cartShareUrl": cart_url})

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "dom_extraction"
        assert "sourceApiUrl" not in body
        assert body["items"][0]["productId"] == "55"

    def test_missing_url(self, client: TestClient, use_page: Callable) -> None:
        use_page(FakePage())
        response = client.post("/scrape", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "cartShareUrl is required"}

    def test_non_object_body(self, client: TestClient, use_page: Callable) -> None:
        use_page(FakePage())
        response = client.post("/scrape", json=["https://m.shein.com/cart/share/x"])
        assert response.status_code == 400

    def test_invalid_json(self, client: TestClient, use_page: Callable) -> None:
        use_page(FakePage())
        response = client.post(
            "/scrape",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON in request body"

    def test_wrong_domain(self, client: TestClient, use_page: Callable) -> None:
        use_page(FakePage())
        response = client.post(
            "/scrape", json={"cartShareUrl": "https://www.example.com/cart/share/landing"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid cart share URL"
        assert body["type"] == "InvalidCartUrl"

    def test_nothing_found(
        self, client: TestClient, use_page: Callable, cart_url: str
    ) -> None:
        use_page(
            FakePage(
                responses=[FakeResponse("https://m.shein.com/api/user/info", {"data": {"id": 1}})]
            )
        )

        response = client.post("/scrape", json={"cartShareUrl": cart_url})

        assert response.status_code == 404
        body = response.json()
        assert body["error"].startswith("Could not capture cart items")
        assert body["debug"]["capturedCount"] == 1
        assert body["debug"]["rejectedUrls"] == ["https://m.shein.com/api/user/info"]
        assert body["debug"]["suggestion"]

    @pytest.mark.parametrize(
        "error,expected",
        [
            (BrowserUnavailable("No module named 'playwright'"), "Playwright not available"),
            (NavigationFailure("Timeout 60000ms exceeded"), "Failed to load cart page"),
        ],
    )
    def test_scraper_errors(
        self, app: FastAPI, client: TestClient, cart_url: str, error: Exception, expected: str
    ) -> None:
        app.dependency_overrides[get_runner] = lambda: RaisingRunner(error)

        response = client.post("/scrape", json={"cartShareUrl": cart_url})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == expected
        assert body["message"] == str(error)
        assert body["type"] == type(error).__name__

    def test_unexpected_error(self, app: FastAPI, client: TestClient, cart_url: str) -> None:
        app.dependency_overrides[get_runner] = lambda: RaisingRunner(RuntimeError("boom"))

        response = client.post("/scrape", json={"cartShareUrl": cart_url})

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to scrape cart items",
            "message": "boom",
            "type": "RuntimeError",
        }


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_scrape_health(self, client: TestClient) -> None:
        with patch("cartscraper.api.engine_available", return_value=False):
            response = client.get("/scrape")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "message": "Cart items API is running",
            "playwrightAvailable": False,
        }

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


# ---------------------------------------------------------------------------
# GET /product/{product_id}
# ---------------------------------------------------------------------------


class TestProduct:
    def test_found(self, app: FastAPI, client: TestClient) -> None:
        fake = FakeProductClient(data={"product": {"title": "Shirt"}})
        app.dependency_overrides[get_product_client] = lambda: fake

        response = client.get("/product/12345")

        assert response.status_code == 200
        assert response.json() == {"product": {"title": "Shirt"}}
        assert fake.requested == ["12345"]

    def test_not_configured(self, app: FastAPI, client: TestClient) -> None:
        fake = FakeProductClient(
            error=ProductLookupError("SEARCHAPI_API_KEY is not configured", status_code=503)
        )
        app.dependency_overrides[get_product_client] = lambda: fake

        response = client.get("/product/12345")

        assert response.status_code == 503
        assert response.json() == {"error": "SEARCHAPI_API_KEY is not configured", "status": 503}

    def test_upstream_error_details(self, app: FastAPI, client: TestClient) -> None:
        fake = FakeProductClient(
            error=ProductLookupError(
                "Product not found", status_code=404, details={"error": "Product not found"}
            )
        )
        app.dependency_overrides[get_product_client] = lambda: fake

        response = client.get("/product/999")

        assert response.status_code == 404
        assert response.json()["details"] == {"error": "Product not found"}
