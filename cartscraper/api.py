"""
Cart Scraper — HTTP API

    POST /scrape                 Extract cart items from a cart-share URL
    GET  /scrape                 Health check incl. browser engine availability
    GET  /product/{product_id}   Product details lookup
    GET  /health                 Liveness
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cartscraper import __version__
from cartscraper.config import settings
from cartscraper.product_lookup import ProductLookupClient, ProductLookupError
from cartscraper.scraper import ExtractionResult, NoCandidatesFound
from cartscraper.scraper.errors import ScraperError
from cartscraper.scraper.runner import ScraperRunner
from cartscraper.scraper.session import engine_available

logger = structlog.get_logger(__name__)

NOT_FOUND_SUGGESTION = (
    "Try checking the browser Network tab to see which API endpoint returns the "
    "actual cart items. The cart items API might use a different structure."
)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_runner() -> ScraperRunner:
    """One runner per request; each extraction gets its own browser."""
    return ScraperRunner()


def get_product_client() -> ProductLookupClient:
    return ProductLookupClient()


# ---------------------------------------------------------------------------
# Response shaping
# ---------------------------------------------------------------------------


def result_payload(result: ExtractionResult) -> dict[str, Any]:
    """
    JSON body for a successful extraction. The network tier reports the
    winning API URL, the fallback tiers report which fallback produced items.
    """
    payload: dict[str, Any] = {}
    if result.provenance_tier == "network":
        payload["sourceApiUrl"] = result.source_descriptor
    else:
        payload["source"] = result.source_descriptor
    payload.update(
        {
            "count": result.count,
            "items": [item.model_dump(mode="json", by_alias=True) for item in result.items],
            "metadata": {
                "groupId": result.metadata.group_id,
                "localCountry": result.metadata.country,
                "language": result.metadata.language,
                "capturedAt": result.captured_at.isoformat(),
            },
        }
    )
    return payload


def not_found_payload(outcome: NoCandidatesFound) -> dict[str, Any]:
    return {
        "error": "Could not capture cart items. The endpoint may be protected or payload shape differs.",
        "debug": {
            "capturedUrls": outcome.captured_urls,
            "capturedCount": outcome.captured_count,
            "capturedSamples": outcome.captured_samples,
            "rejectedUrls": outcome.rejected_urls,
            "suggestion": NOT_FOUND_SUGGESTION,
        },
    }


def error_payload(exc: ScraperError) -> dict[str, Any]:
    return {
        "error": exc.public_message,
        "message": str(exc) or exc.public_message,
        "type": type(exc).__name__,
    }


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    app = FastAPI(
        title="Cart Scraper",
        description="Recovers cart contents from SHEIN cart-share links",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ScraperError)
    async def scraper_error_handler(request: Request, exc: ScraperError) -> JSONResponse:
        logger.error(
            "api_scraper_error",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
            status_code=exc.status_code,
        )
        return JSONResponse(error_payload(exc), status_code=exc.status_code)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/scrape")
    async def scrape_health() -> dict[str, Any]:
        return {
            "status": "ok",
            "message": "Cart items API is running",
            "playwrightAvailable": engine_available(),
        }

    @app.post("/scrape")
    async def scrape_cart(
        request: Request,
        runner: ScraperRunner = Depends(get_runner),
    ) -> JSONResponse:
        logger.info("api_scrape_request_received")

        try:
            body = await request.json()
        except ValueError as e:
            return JSONResponse(
                {"error": "Invalid JSON in request body", "message": str(e)},
                status_code=400,
            )

        cart_url = body.get("cartShareUrl") if isinstance(body, dict) else None
        if not cart_url:
            return JSONResponse({"error": "cartShareUrl is required"}, status_code=400)

        try:
            outcome = await runner.run_extraction(cart_url)
        except ScraperError:
            raise
        except Exception as e:
            logger.error(
                "api_scrape_unexpected_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            return JSONResponse(
                {
                    "error": "Failed to scrape cart items",
                    "message": str(e) or "Unknown error occurred",
                    "type": type(e).__name__,
                },
                status_code=500,
            )

        if isinstance(outcome, NoCandidatesFound):
            return JSONResponse(not_found_payload(outcome), status_code=404)
        return JSONResponse(result_payload(outcome), status_code=200)

    @app.get("/product/{product_id}")
    async def product_details(
        product_id: str,
        client: ProductLookupClient = Depends(get_product_client),
    ) -> JSONResponse:
        try:
            async with client:
                data = await client.fetch_product(product_id)
        except ProductLookupError as e:
            body: dict[str, Any] = {"error": str(e), "status": e.status_code}
            if e.details is not None:
                body["details"] = e.details
            return JSONResponse(body, status_code=e.status_code)
        return JSONResponse(data, status_code=200)

    return app


app = create_app()
