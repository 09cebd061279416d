"""
Cart Scraper — Network Response Interceptor (Tier 1 — PRIMARY)

Listens to every response the cart page receives and keeps the JSON
payloads that look like cart item lists. This is the primary extraction
method; inline state and DOM mining are fallbacks only.

Each response is judged on its own, in constant time apart from the JSON
parse, and kept in a bounded heap so a chatty page cannot grow memory
without limit.
"""

from __future__ import annotations

import heapq
import itertools
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

import structlog

from cartscraper.config import settings
from cartscraper.scraper import CapturedResponse
from cartscraper.scraper.rules import first_list, has_any_field
from cartscraper.scraper.site_profile import SiteProfile

logger = structlog.get_logger(__name__)


class ResponseInterceptor:
    """
    Collects scored cart candidates from in-page network traffic.

    Usage:
        interceptor = ResponseInterceptor(profile)
        interceptor.attach(page)          # before page.goto()
        ...
        best = select_best(interceptor.candidates)
    """

    def __init__(
        self,
        profile: SiteProfile,
        structure_bonus: int | None = None,
        max_candidates: int | None = None,
        max_rejected: int | None = None,
    ) -> None:
        self.profile = profile
        self._structure_bonus: int = (
            settings.SCRAPE_STRUCTURE_BONUS if structure_bonus is None else structure_bonus
        )
        self._max_candidates: int = max_candidates or settings.SCRAPE_MAX_CANDIDATES
        self._max_rejected: int = max_rejected or settings.SCRAPE_MAX_REJECTED_URLS
        self._heap: list[tuple[int, int, int, CapturedResponse]] = []
        self._sequence = itertools.count()
        self.rejected_urls: list[str] = []
        self.rejected_count: int = 0

    # -----------------------------------------------------------------------
    # Playwright wiring
    # -----------------------------------------------------------------------

    def attach(self, page: Any) -> None:
        """Subscribe to the page's response events. Must run before navigation."""
        page.on("response", self.handle_response)

    async def handle_response(self, response: Any) -> None:
        """
        Response event callback. Never raises: arbitrary site traffic is
        expected to fail JSON parsing routinely.
        """
        try:
            url = response.url
            content_type = (response.headers or {}).get("content-type", "")
            if not self.should_inspect(url, content_type):
                return

            try:
                data = await response.json()
            except Exception as e:
                logger.debug(
                    "network_intercept_parse_error",
                    url=url[:150],
                    error=str(e),
                    source="network_intercept",
                )
                return

            self.consider(url, data)
        except Exception as e:
            logger.debug(
                "network_intercept_response_error",
                error=str(e),
                source="network_intercept",
            )

    # -----------------------------------------------------------------------
    # Filter policy
    # -----------------------------------------------------------------------

    def should_inspect(self, url: str, content_type: str) -> bool:
        """Cheap pre-filter on content type, host and denylist; no body access."""
        content_type = (content_type or "").lower()
        looks_json = any(ct in content_type for ct in self.profile.json_content_types) or (
            self.profile.json_url_marker in url
        )
        if not looks_json:
            return False

        host = urlparse(url).netloc
        if not host or not self.profile.matches_host(host):
            return False

        return not any(blocked in url for blocked in self.profile.denylist)

    def extract_items(self, data: Any) -> list[Any] | None:
        """
        Find the item array in a payload and check that it looks like a cart.

        Returns:
            The item list, or None if no known path yields a product-like list.
        """
        items = first_list(data, self.profile.network_item_paths)
        if not items or not self.profile.looks_like_product(items[0]):
            return None
        return items

    def score(self, items: list[Any]) -> int:
        has_props = has_any_field(items[0], self.profile.product_marker_fields) if items else False
        return (self._structure_bonus if has_props else 0) + len(items)

    # -----------------------------------------------------------------------
    # Candidate storage
    # -----------------------------------------------------------------------

    def consider(self, url: str, data: Any) -> CapturedResponse | None:
        """Score a parsed payload and keep it if it passes the item test."""
        items = self.extract_items(data)
        if items is None:
            self._record_rejection(url)
            return None

        captured = CapturedResponse(
            source_url=url,
            raw_payload=data,
            items=items,
            score=self.score(items),
            item_count=len(items),
            captured_at=datetime.now(timezone.utc),
        )
        self._push(captured)

        logger.info(
            "network_intercept_captured",
            url=url[:100],
            item_count=captured.item_count,
            score=captured.score,
            source="network_intercept",
        )
        return captured

    def _push(self, captured: CapturedResponse) -> None:
        # Min-heap on (score, item_count): the weakest candidate is evicted first
        entry = (captured.score, captured.item_count, -next(self._sequence), captured)
        if len(self._heap) < self._max_candidates:
            heapq.heappush(self._heap, entry)
        else:
            evicted = heapq.heappushpop(self._heap, entry)
            logger.debug(
                "network_intercept_candidate_evicted",
                url=evicted[3].source_url[:100],
                score=evicted[0],
                source="network_intercept",
            )

    def _record_rejection(self, url: str) -> None:
        self.rejected_count += 1
        if len(self.rejected_urls) < self._max_rejected:
            self.rejected_urls.append(url[:200])

    @property
    def candidates(self) -> list[CapturedResponse]:
        """Kept candidates, in capture order."""
        ordered = sorted(self._heap, key=lambda entry: -entry[2])
        return [entry[3] for entry in ordered]
