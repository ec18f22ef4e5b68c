"""
Application Factory

Wires configuration, fetcher and handler into a FastAPI app.

Run locally:
    cd backend
    uvicorn card_image_proxy.app:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .config import ProxyConfig
from .fetcher import HttpxImageFetcher, ImageFetcher
from .handler import ImageProxyHandler
from .retry import RetryingFetcher
from .routes_fastapi import router

logger = logging.getLogger(__name__)


def build_fetcher(config: ProxyConfig) -> ImageFetcher:
    """Default httpx fetcher, wrapped in the retry policy when enabled."""
    fetcher: ImageFetcher = HttpxImageFetcher(timeout=config.timeout_seconds)
    if config.retry_attempts > 1:
        fetcher = RetryingFetcher(
            fetcher,
            attempts=config.retry_attempts,
            backoff_factor=config.retry_backoff,
            status_forcelist=config.retry_status_forcelist,
        )
    return fetcher


def create_app(
    config: Optional[ProxyConfig] = None,
    fetcher: Optional[ImageFetcher] = None,
) -> FastAPI:
    """
    Build the proxy application.

    Args:
        config: Settings; read from the environment when omitted
        fetcher: Outbound fetch capability; httpx-backed when omitted
    """
    config = config or ProxyConfig.from_env()
    fetcher = fetcher or build_fetcher(config)
    handler = ImageProxyHandler(config, fetcher)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"[ImageProxy] Started: {config.describe()}")
        yield
        await fetcher.aclose()

    app = FastAPI(title="Card Image Proxy", lifespan=lifespan)
    app.state.image_proxy_handler = handler
    app.include_router(router)
    return app


app = create_app()
