"""
Cart Scraper — Anti-Detection Layer

Builds the browser launch options, page options and request headers that
make the headless session look like an ordinary desktop visitor arriving
from the storefront itself, in the locale the cart link was shared in.
"""

from __future__ import annotations

from typing import Any

import structlog

from cartscraper.config import settings
from cartscraper.scraper import ExtractionRequest
from cartscraper.scraper.site_profile import SiteProfile

logger = structlog.get_logger(__name__)


class AntiDetect:
    """
    Browser fingerprint and header settings for one extraction.

    Manages:
    - Desktop user agent and viewport
    - Accept-Language derived from the cart URL's locale
    - Referer pointing at the storefront
    - Proxy configuration
    """

    ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"

    ACCEPT_LANGUAGE = {
        "ar": "ar,en-US;q=0.9,en;q=0.8",
        "en": "en-US,en;q=0.9",
    }

    def __init__(self) -> None:
        self._user_agent: str = settings.USER_AGENT
        self._viewport: dict[str, int] = {
            "width": settings.VIEWPORT_WIDTH,
            "height": settings.VIEWPORT_HEIGHT,
        }
        self._headless: bool = settings.BROWSER_HEADLESS
        self._launch_args: list[str] = list(settings.BROWSER_ARGS)

    def get_proxy_config(self) -> dict[str, str] | None:
        """Return proxy configuration if PROXY_URL is set."""
        if settings.PROXY_URL:
            return {"server": settings.PROXY_URL}
        return None

    def launch_options(self) -> dict[str, Any]:
        """Keyword arguments for chromium.launch()."""
        options: dict[str, Any] = {"headless": self._headless, "args": self._launch_args}
        proxy = self.get_proxy_config()
        if proxy:
            options["proxy"] = proxy
        return options

    def page_options(self) -> dict[str, Any]:
        """Keyword arguments for browser.new_page()."""
        return {"user_agent": self._user_agent, "viewport": dict(self._viewport)}

    def build_headers(self, request: ExtractionRequest, profile: SiteProfile) -> dict[str, str]:
        """
        Extra HTTP headers matching the locale encoded in the cart URL.

        Args:
            request: Validated cart URL.
            profile: Site knowledge providing the referer.
        """
        accept_language = self.ACCEPT_LANGUAGE.get(request.language, self.ACCEPT_LANGUAGE["en"])
        logger.debug(
            "anti_detect_headers",
            language=request.language,
            country=request.country,
            source="anti_detect",
        )
        return {
            "Accept-Language": accept_language,
            "Accept": self.ACCEPT,
            "Referer": profile.referer,
        }
