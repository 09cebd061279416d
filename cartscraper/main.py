"""
Cart Scraper — Application Entrypoint

Configures structlog and serves the HTTP API with uvicorn.

Run via:
    python -m cartscraper.main
"""

from __future__ import annotations

import asyncio
import logging
import sys

import structlog
import uvicorn

from cartscraper import __version__
from cartscraper.config import settings
from cartscraper.scraper.session import engine_available


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    # Configure stdlib logging first (for uvicorn and other libraries)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application Startup
# ---------------------------------------------------------------------------


async def main() -> None:
    """
    Application entrypoint.

    Execution order:
    1. Configure logging (structlog JSON)
    2. Report browser engine availability
    3. Serve the API until shutdown
    """
    configure_logging(log_level=settings.LOG_LEVEL)
    logger = structlog.get_logger(__name__)

    logger.info("cart_scraper_startup_begin", version=__version__)

    if not engine_available():
        logger.warning(
            "config_browser_engine_missing",
            note="POST /scrape will return 500 until Playwright is installed",
        )

    config = uvicorn.Config(
        "cartscraper.api:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_config=None,
    )
    server = uvicorn.Server(config)

    try:
        await server.serve()
    except KeyboardInterrupt:
        logger.info("cart_scraper_interrupted_by_user")
    finally:
        logger.info("cart_scraper_shutdown_complete")


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    asyncio.run(main())
