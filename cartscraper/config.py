"""
Cart Scraper — Configuration & Constants

Every timeout, settle delay and scoring weight used by the extraction
pipeline lives here. Site knowledge (selectors, patterns, denylists) lives
in cartscraper.scraper.site_profile instead.

Usage:
    from cartscraper.config import settings
"""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Central configuration for the cart scraper.

    Loads from environment variables with fallback defaults.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # -----------------------------------------------------------------------
    # Service
    # -----------------------------------------------------------------------
    APP_NAME: str = "cart-scraper"
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: list[str] = ["*"]

    # -----------------------------------------------------------------------
    # Browser
    # -----------------------------------------------------------------------
    BROWSER_HEADLESS: bool = True
    BROWSER_ARGS: list[str] = ["--no-sandbox", "--disable-setuid-sandbox"]
    USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    VIEWPORT_WIDTH: int = 1920
    VIEWPORT_HEIGHT: int = 1080
    PROXY_URL: str = ""
    DEFAULT_LOCAL_COUNTRY: str = "AE"

    # -----------------------------------------------------------------------
    # Settle protocol (bounded waits, tuned against the live storefront)
    # -----------------------------------------------------------------------
    SCRAPE_NAVIGATION_TIMEOUT_MS: int = 60000
    SCRAPE_NETWORK_IDLE_TIMEOUT_MS: int = 30000     # Non-fatal on timeout
    SCRAPE_GRACE_SECONDS: float = 5.0
    SCRAPE_SCROLL_FRACTIONS: list[float] = [1 / 3, 1 / 2, 1.0]
    SCRAPE_SCROLL_WAIT_SECONDS: float = 2.0
    SCRAPE_LAZY_IMAGE_WAIT_SECONDS: float = 2.0
    SCRAPE_DOM_SCROLL_STEPS: int = 4                # Viewport-height increments before DOM mining
    SCRAPE_DOM_SCROLL_WAIT_SECONDS: float = 0.5

    # -----------------------------------------------------------------------
    # Candidate scoring
    # score = STRUCTURE_BONUS * has_product_fields + item_count
    # -----------------------------------------------------------------------
    SCRAPE_STRUCTURE_BONUS: int = 10
    SCRAPE_MAX_CANDIDATES: int = 25
    SCRAPE_MAX_REJECTED_URLS: int = 50

    # -----------------------------------------------------------------------
    # Normalization
    # Currency used when an item carries none
    # -----------------------------------------------------------------------
    DEFAULT_CURRENCY: str = "USD"
    DOM_CURRENCY: str = "USD"

    # -----------------------------------------------------------------------
    # Product lookup (SearchAPI)
    # -----------------------------------------------------------------------
    SEARCHAPI_API_KEY: str = ""
    SEARCHAPI_URL: str = "https://www.searchapi.io/api/v1/search"
    SEARCHAPI_TIMEOUT_SECONDS: float = 30.0


# Singleton instance
settings = Settings()
