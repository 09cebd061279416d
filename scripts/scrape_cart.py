"""
Cart Scraper — One-off Extraction Script

Runs the full extraction pipeline for a single cart-share URL and prints
the same JSON the POST /scrape endpoint would return. Useful when tuning
selectors or inline-state patterns against a live cart.

Usage:
    python scripts/scrape_cart.py "https://m.shein.com/ar/cart/share/landing?group_id=631392305&local_country=AE"
    python scripts/scrape_cart.py URL --grace-seconds 2 --no-headless
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys

# Resolve project root so this script can be run from any working directory
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cartscraper.api import not_found_payload, result_payload
from cartscraper.config import settings
from cartscraper.main import configure_logging
from cartscraper.scraper import NoCandidatesFound
from cartscraper.scraper.errors import ScraperError
from cartscraper.scraper.runner import ScraperRunner


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract cart items from a SHEIN cart-share URL.",
    )
    parser.add_argument("url", type=str, help="Cart share URL.")
    parser.add_argument(
        "--grace-seconds",
        type=float,
        default=None,
        help=f"Wait after page load before extraction (default: {settings.SCRAPE_GRACE_SECONDS}).",
    )
    parser.add_argument(
        "--no-headless",
        action="store_true",
        help="Show the browser window while scraping.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        help="Log level for pipeline output on stdout (default: WARNING).",
    )
    return parser.parse_args()


async def main() -> None:
    args = parse_args()
    configure_logging(args.log_level)

    if args.no_headless:
        settings.BROWSER_HEADLESS = False

    runner = ScraperRunner()
    if args.grace_seconds is not None:
        runner.grace_seconds = args.grace_seconds

    try:
        outcome = await runner.run_extraction(args.url)
    except ScraperError as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)

    if isinstance(outcome, NoCandidatesFound):
        print(json.dumps(not_found_payload(outcome), indent=2, ensure_ascii=False))
        sys.exit(2)

    print(json.dumps(result_payload(outcome), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    asyncio.run(main())
