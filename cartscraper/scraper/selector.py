"""
Cart Scraper — Candidate Selector

Picks the winning network candidate: highest score, then most items.
Pure and deterministic; input order never changes the winner.
"""

from __future__ import annotations

from typing import Iterable

from cartscraper.scraper import CapturedResponse


def _rank_key(candidate: CapturedResponse) -> tuple[int, int, str]:
    # source_url as a last resort keeps the order total for exact ties
    return (-candidate.score, -candidate.item_count, candidate.source_url)


def select_best(candidates: Iterable[CapturedResponse]) -> CapturedResponse | None:
    """
    Return the best candidate, or None when there is nothing usable.

    Args:
        candidates: Captured responses in any order.

    Returns:
        The top-ranked candidate, or None if the list is empty or the
        top-ranked candidate carries no items.
    """
    ranked = sorted(candidates, key=_rank_key)
    if not ranked or ranked[0].item_count == 0:
        return None
    return ranked[0]
