"""
Cart Scraper — Error Taxonomy

Only resource-acquisition failures are exceptions. "Nothing found" is a
normal result (see cartscraper.scraper.NoCandidatesFound), and per-response,
per-pattern and per-element parse failures are recovered where they happen.
"""

from __future__ import annotations


class ScraperError(Exception):
    """Base class for errors that abort an extraction request."""

    status_code: int = 500
    public_message: str = "Failed to scrape cart items"


class InvalidCartUrl(ScraperError):
    """The URL is missing, not on the target domain, or not a cart-share link."""

    status_code = 400
    public_message = "Invalid cart share URL"


class BrowserUnavailable(ScraperError):
    """The browser automation engine cannot be imported."""

    public_message = "Playwright not available"


class LaunchFailure(ScraperError):
    """The browser process could not be started."""

    public_message = "Failed to launch browser"


class NavigationFailure(ScraperError):
    """The cart page failed to load within the navigation timeout."""

    public_message = "Failed to load cart page"
