"""
Tests for the application entrypoint (cartscraper/main.py).
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import structlog

from cartscraper.main import configure_logging, main


def test_configure_logging() -> None:
    """configure_logging() installs the structlog JSON pipeline."""
    configure_logging("debug")

    assert structlog.is_configured()
    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)


@pytest.mark.asyncio
async def test_main_serves_api() -> None:
    """main() builds a uvicorn server for the API app and serves it."""
    server = MagicMock()
    server.serve = AsyncMock()

    with patch("cartscraper.main.configure_logging"), patch(
        "cartscraper.main.engine_available", return_value=False
    ), patch("cartscraper.main.uvicorn.Config") as mock_config, patch(
        "cartscraper.main.uvicorn.Server", return_value=server
    ):
        await main()

    assert mock_config.call_args.args[0] == "cartscraper.api:app"
    server.serve.assert_awaited_once()
