"""
Cart Scraper — Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- Site profile and cart URL
- Sample cart payloads and page HTML
- A ScraperRunner with every settle delay set to zero
"""

from __future__ import annotations

from typing import Callable

import pytest

from cartscraper.scraper.runner import ScraperRunner
from cartscraper.scraper.site_profile import SHEIN_PROFILE, SiteProfile
from fakes import FakePage, FakeSession

CART_URL = "https://m.shein.com/ar/cart/share/landing?group_id=631392305&local_country=AE"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def profile() -> SiteProfile:
    return SHEIN_PROFILE


@pytest.fixture
def cart_url() -> str:
    return CART_URL


@pytest.fixture
def network_cart_payload() -> dict:
    """Cart API payload as returned by the storefront's cart list endpoint."""
    return {
        "data": {
            "cart": {
                "items": [
                    {
                        "goods_id": "123",
                        "goods_name": "Shirt",
                        "sale_price": {"amount": 19.99, "currency": "USD"},
                        "quantity": 2,
                    }
                ]
            }
        }
    }


@pytest.fixture
def inline_state_html() -> str:
    return (
        "<html><head><script>"
        'window.cartData = {"items":[{"name":"Bag","price":"12.50"}]};'
        "</script></head><body><div id='app'></div></body></html>"
    )


@pytest.fixture
def dom_cart_html() -> str:
    return (
        "<html><body>"
        '<div data-goods-id="55">'
        '<div class="goods-name">Hat</div>'
        '<div class="price">$7.00</div>'
        "</div>"
        "</body></html>"
    )


@pytest.fixture
def make_runner() -> Callable[[FakePage], tuple[ScraperRunner, FakeSession]]:
    """Build a ScraperRunner around a FakePage with every delay set to zero."""

    def _make(page: FakePage) -> tuple[ScraperRunner, FakeSession]:
        session = FakeSession(page)
        runner = ScraperRunner(session_factory=session)
        runner.grace_seconds = 0
        runner.scroll_wait_seconds = 0
        runner.lazy_image_wait_seconds = 0
        runner.dom_scroll_wait_seconds = 0
        runner.dom_scroll_steps = 1
        return runner, session

    return _make
