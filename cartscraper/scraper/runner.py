"""
Cart Scraper — Scraper Runner (Pipeline Orchestrator)

Orchestrates the three-tier fallback chain for one cart URL:
1. Network Interception (PRIMARY)
2. Inline Page State (BACKUP)
3. DOM Heuristics (EMERGENCY)

Tiers run strictly in that order inside a single browser page; the first
tier that yields items wins. The browser is closed on every path.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable

import structlog

from cartscraper.config import settings
from cartscraper.scraper import (
    ExtractionMetadata,
    ExtractionRequest,
    ExtractionResult,
    NoCandidatesFound,
    NormalizedItem,
)
from cartscraper.scraper.dom_extract import extract_dom_items, materialize_lazy_content
from cartscraper.scraper.errors import NavigationFailure
from cartscraper.scraper.inline_state import parse_inline_state, probe_window_globals
from cartscraper.scraper.network_intercept import ResponseInterceptor
from cartscraper.scraper.normalize import TierDefaults, normalize_items
from cartscraper.scraper.selector import select_best
from cartscraper.scraper.session import BrowserSession
from cartscraper.scraper.site_profile import SHEIN_PROFILE, SiteProfile

logger = structlog.get_logger(__name__)

SOURCE_PAGE_CONTENT = "page_content"
SOURCE_DOM_EXTRACTION = "dom_extraction"


class ScraperRunner:
    """
    Runs the extraction fallback chain for a cart-share URL.

    Usage:
        runner = ScraperRunner()
        outcome = await runner.run_extraction(cart_url)
        if isinstance(outcome, NoCandidatesFound):
            ...
    """

    def __init__(
        self,
        profile: SiteProfile = SHEIN_PROFILE,
        session_factory: Callable[[ExtractionRequest, SiteProfile], Any] = BrowserSession,
    ) -> None:
        self.profile = profile
        self._session_factory = session_factory

        self.navigation_timeout_ms: int = settings.SCRAPE_NAVIGATION_TIMEOUT_MS
        self.network_idle_timeout_ms: int = settings.SCRAPE_NETWORK_IDLE_TIMEOUT_MS
        self.grace_seconds: float = settings.SCRAPE_GRACE_SECONDS
        self.scroll_fractions: list[float] = list(settings.SCRAPE_SCROLL_FRACTIONS)
        self.scroll_wait_seconds: float = settings.SCRAPE_SCROLL_WAIT_SECONDS
        self.lazy_image_wait_seconds: float = settings.SCRAPE_LAZY_IMAGE_WAIT_SECONDS
        self.dom_scroll_steps: int = settings.SCRAPE_DOM_SCROLL_STEPS
        self.dom_scroll_wait_seconds: float = settings.SCRAPE_DOM_SCROLL_WAIT_SECONDS
        self.structure_bonus: int = settings.SCRAPE_STRUCTURE_BONUS
        self.max_candidates: int = settings.SCRAPE_MAX_CANDIDATES

        self.network_defaults = TierDefaults(currency=settings.DEFAULT_CURRENCY)
        self.dom_defaults = TierDefaults(currency=settings.DOM_CURRENCY)

    async def run_extraction(self, cart_url: str | None) -> ExtractionResult | NoCandidatesFound:
        """
        Extract the cart behind a share URL.

        Args:
            cart_url: SHEIN cart-share URL.

        Returns:
            ExtractionResult from the first tier that found items, or
            NoCandidatesFound with diagnostics when every tier came back empty.

        Raises:
            InvalidCartUrl: URL failed validation (before any browser work).
            BrowserUnavailable / LaunchFailure: browser could not be started.
            NavigationFailure: page failed to load within the timeout.
        """
        request = ExtractionRequest.parse(
            cart_url, self.profile, default_country=settings.DEFAULT_LOCAL_COUNTRY
        )
        logger.info(
            "scraper_extraction_started",
            url=request.cart_url[:150],
            group_id=request.group_id,
            source="scraper_runner",
        )

        async with self._session_factory(request, self.profile) as page:
            interceptor = ResponseInterceptor(
                self.profile,
                structure_bonus=self.structure_bonus,
                max_candidates=self.max_candidates,
            )
            interceptor.attach(page)

            await self._navigate(page, request)
            await self._settle(page)

            return await self._extract(page, request, interceptor)

    # -----------------------------------------------------------------------
    # Page lifecycle
    # -----------------------------------------------------------------------

    async def _navigate(self, page: Any, request: ExtractionRequest) -> None:
        try:
            await page.goto(
                request.cart_url,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout_ms,
            )
        except Exception as e:
            logger.error(
                "scraper_navigation_failed",
                url=request.cart_url[:150],
                error=str(e),
                source="scraper_runner",
            )
            raise NavigationFailure(str(e)) from e

        try:
            await page.wait_for_load_state("networkidle", timeout=self.network_idle_timeout_ms)
        except Exception as e:
            logger.info("scraper_network_idle_timeout", error=str(e), source="scraper_runner")

    async def _settle(self, page: Any) -> None:
        """Grace period, then scroll in steps so delayed requests and lazy content fire."""
        await asyncio.sleep(self.grace_seconds)
        for fraction in self.scroll_fractions:
            try:
                await page.evaluate(
                    "(f) => window.scrollTo(0, document.body.scrollHeight * f)", fraction
                )
            except Exception as e:
                logger.debug("scraper_scroll_failed", error=str(e), source="scraper_runner")
            await asyncio.sleep(self.scroll_wait_seconds)

    # -----------------------------------------------------------------------
    # Tiers
    # -----------------------------------------------------------------------

    async def _extract(
        self,
        page: Any,
        request: ExtractionRequest,
        interceptor: ResponseInterceptor,
    ) -> ExtractionResult | NoCandidatesFound:
        metadata = ExtractionMetadata(
            group_id=request.group_id,
            country=request.country,
            language=request.language,
        )

        # Tier 1: Network Interception (PRIMARY)
        logger.info(
            "scraper_trying_network_intercept",
            candidate_count=len(interceptor.candidates),
            source="scraper_runner",
        )
        result = self._from_network(interceptor, metadata)

        # Tier 2: Inline Page State (BACKUP)
        if result is None:
            logger.info("scraper_trying_inline_state", source="scraper_runner")
            result = await self._from_inline_state(page, metadata)

        # Tier 3: DOM Heuristics (EMERGENCY)
        if result is None:
            logger.info("scraper_trying_dom_extraction", source="scraper_runner")
            result = await self._from_dom(page, metadata)

        if result is not None:
            logger.info(
                "scraper_success",
                tier=result.provenance_tier,
                item_count=result.count,
                source_descriptor=result.source_descriptor[:150],
                source="scraper_runner",
            )
            return result

        outcome = self._no_candidates(interceptor)
        logger.warning(
            "scraper_all_tiers_failed",
            url=request.cart_url[:150],
            captured_count=outcome.captured_count,
            source="scraper_runner",
        )
        return outcome

    def _from_network(
        self,
        interceptor: ResponseInterceptor,
        metadata: ExtractionMetadata,
    ) -> ExtractionResult | None:
        best = select_best(interceptor.candidates)
        if best is None:
            return None
        items = normalize_items(best.items, self.network_defaults, self.profile.item_fields)
        return ExtractionResult(
            items=items,
            provenance_tier="network",
            source_descriptor=best.source_url,
            captured_at=best.captured_at,
            metadata=metadata,
        )

    async def _from_inline_state(
        self,
        page: Any,
        metadata: ExtractionMetadata,
    ) -> ExtractionResult | None:
        try:
            html = await page.content()
        except Exception as e:
            logger.warning("scraper_page_content_failed", error=str(e), source="scraper_runner")
            return None

        logger.debug("scraper_page_content", length=len(html or ""), source="scraper_runner")
        await probe_window_globals(page, self.profile)

        match = await asyncio.to_thread(parse_inline_state, html, self.profile)
        if match is None:
            return None

        items = normalize_items(match.items, self.network_defaults, self.profile.item_fields)
        return ExtractionResult(
            items=items,
            provenance_tier="inline_state",
            source_descriptor=SOURCE_PAGE_CONTENT,
            captured_at=datetime.now(timezone.utc),
            metadata=metadata,
        )

    async def _from_dom(
        self,
        page: Any,
        metadata: ExtractionMetadata,
    ) -> ExtractionResult | None:
        await materialize_lazy_content(
            page,
            self.profile,
            scroll_steps=self.dom_scroll_steps,
            scroll_wait=self.dom_scroll_wait_seconds,
        )
        await asyncio.sleep(self.lazy_image_wait_seconds)

        try:
            html = await page.content()
        except Exception as e:
            logger.warning("scraper_page_content_failed", error=str(e), source="scraper_runner")
            return None

        records = await asyncio.to_thread(extract_dom_items, html, self.profile)
        items = [
            item
            for item in normalize_items(records, self.dom_defaults, self.profile.item_fields)
            if _has_usable_data(item)
        ]
        if not items:
            return None

        return ExtractionResult(
            items=items,
            provenance_tier="dom",
            source_descriptor=SOURCE_DOM_EXTRACTION,
            captured_at=datetime.now(timezone.utc),
            metadata=metadata,
        )

    def _no_candidates(self, interceptor: ResponseInterceptor) -> NoCandidatesFound:
        candidates = interceptor.candidates
        return NoCandidatesFound(
            captured_count=len(candidates) + interceptor.rejected_count,
            captured_urls=[c.source_url[:200] for c in candidates],
            captured_samples=[
                {
                    "url": c.source_url[:150],
                    "itemCount": c.item_count,
                    "firstItemSample": (
                        list(c.items[0].keys())[:5]
                        if c.items and isinstance(c.items[0], dict)
                        else []
                    ),
                }
                for c in candidates[:3]
            ],
            rejected_urls=list(interceptor.rejected_urls),
        )


def _has_usable_data(item: NormalizedItem) -> bool:
    return any(v is not None for v in (item.product_id, item.name, item.price))
