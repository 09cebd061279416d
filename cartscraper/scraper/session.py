"""
Cart Scraper — Headless Browser Session Manager

Owns one Playwright driver, one Chromium process and one page per
extraction request. Nothing is shared across requests.

    async with BrowserSession(request, profile) as page:
        ...

The browser and driver are released on every exit path: normal return,
any exception inside the block, or a failure part-way through startup.
"""

from __future__ import annotations

import importlib
from typing import Any, Callable

import structlog

from cartscraper.scraper import ExtractionRequest
from cartscraper.scraper.anti_detect import AntiDetect
from cartscraper.scraper.errors import BrowserUnavailable, LaunchFailure
from cartscraper.scraper.site_profile import SiteProfile

logger = structlog.get_logger(__name__)

ENGINE_MODULE = "playwright.async_api"


def load_engine() -> Callable[[], Any]:
    """
    Import Playwright lazily so the service can start without it.

    Returns:
        The async_playwright factory.

    Raises:
        BrowserUnavailable: Playwright is not installed.
    """
    try:
        module = importlib.import_module(ENGINE_MODULE)
    except ImportError as e:
        logger.error("browser_engine_import_failed", error=str(e), source="session")
        raise BrowserUnavailable(
            f"{e}. Install Playwright: pip install playwright && playwright install chromium"
        ) from e
    return module.async_playwright


def engine_available() -> bool:
    """True if the browser automation engine is importable. Logs at debug only."""
    try:
        importlib.import_module(ENGINE_MODULE)
    except ImportError as e:
        logger.debug("browser_engine_unavailable", error=str(e), source="session")
        return False
    return True


class BrowserSession:
    """Scoped acquisition of a headless browser page for one cart URL."""

    def __init__(
        self,
        request: ExtractionRequest,
        profile: SiteProfile,
        anti_detect: AntiDetect | None = None,
        engine_loader: Callable[[], Callable[[], Any]] = load_engine,
    ) -> None:
        self.request = request
        self.profile = profile
        self.anti_detect = anti_detect or AntiDetect()
        self._engine_loader = engine_loader
        self._playwright: Any = None
        self._browser: Any = None
        self.page: Any = None

    async def __aenter__(self) -> Any:
        async_playwright = self._engine_loader()

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                **self.anti_detect.launch_options()
            )
            logger.info("browser_launched", source="session")
        except Exception as e:
            logger.error("browser_launch_failed", error=str(e), source="session")
            await self.close()
            raise LaunchFailure(
                f"{e}. Make sure Chromium is installed: playwright install chromium"
            ) from e

        try:
            self.page = await self._browser.new_page(**self.anti_detect.page_options())
            await self.page.set_extra_http_headers(
                self.anti_detect.build_headers(self.request, self.profile)
            )
        except Exception as e:
            logger.error("browser_page_setup_failed", error=str(e), source="session")
            await self.close()
            raise LaunchFailure(str(e)) from e

        return self.page

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Release browser and driver. Close errors are logged, never raised."""
        if self._browser is not None:
            try:
                await self._browser.close()
                logger.info("browser_closed", source="session")
            except Exception as e:
                logger.error("browser_close_failed", error=str(e), source="session")
            finally:
                self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.error("browser_driver_stop_failed", error=str(e), source="session")
            finally:
                self._playwright = None
