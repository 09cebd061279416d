"""
Cart Scraper — Inline-State Parser (Tier 2 — BACKUP)

Scans the rendered page HTML for state blobs the storefront embeds for
its own front-end (global state assignments, framework data islands,
bare "items": [...] fragments). Used when network interception captured
nothing usable.

Not finding anything is the common case and is not an error.
"""

from __future__ import annotations

import json
import re
from typing import Any, NamedTuple

import structlog

from cartscraper.scraper.rules import first_list
from cartscraper.scraper.site_profile import SiteProfile

logger = structlog.get_logger(__name__)

_WINDOW_PROBE_JS = """
(names) => names.filter((name) => {
    try {
        const value = window[name];
        return value !== undefined && value !== null && typeof value === 'object';
    } catch (e) {
        return false;
    }
})
"""


class InlineStateMatch(NamedTuple):
    pattern: str
    items: list[Any]
    payload: Any


def parse_inline_state(html: str, profile: SiteProfile) -> InlineStateMatch | None:
    """
    Try each inline pattern in order and return the first usable item list.

    A pattern is usable when it matches, its capture parses as JSON, and one
    of the inline item paths yields a list whose first entry looks like a
    product.

    Args:
        html: Full rendered page content.
        profile: Site knowledge providing patterns and item paths.

    Returns:
        InlineStateMatch for the first usable pattern, None otherwise.
    """
    if not html:
        return None

    for pattern in profile.inline_patterns:
        try:
            match = re.search(pattern.regex, html, re.DOTALL)
            if not match:
                continue
            payload = json.loads(match.group(1))
        except (re.error, json.JSONDecodeError, IndexError, ValueError) as e:
            logger.debug(
                "inline_state_pattern_failed",
                pattern=pattern.name,
                error=str(e),
                source="inline_state",
            )
            continue

        items = first_list(payload, profile.inline_item_paths)
        if not items or not profile.looks_like_product(items[0]):
            logger.debug(
                "inline_state_pattern_no_items",
                pattern=pattern.name,
                source="inline_state",
            )
            continue

        logger.info(
            "inline_state_matched",
            pattern=pattern.name,
            item_count=len(items),
            source="inline_state",
        )
        return InlineStateMatch(pattern=pattern.name, items=items, payload=payload)

    return None


async def probe_window_globals(page: Any, profile: SiteProfile) -> list[str]:
    """
    List which well-known state globals exist on the live page.

    Diagnostic only: the result is logged to help author new patterns.
    """
    if not profile.window_globals:
        return []
    try:
        found = await page.evaluate(_WINDOW_PROBE_JS, list(profile.window_globals))
    except Exception as e:
        logger.debug("inline_state_probe_failed", error=str(e), source="inline_state")
        return []
    found = [name for name in (found or []) if isinstance(name, str)]
    if found:
        logger.info("inline_state_globals_present", globals=found, source="inline_state")
    return found
