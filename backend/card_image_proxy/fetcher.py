"""
Upstream Image Fetcher

The outbound fetch capability the handler depends on. Production uses
HttpxImageFetcher (a shared httpx.AsyncClient); tests substitute any object
with the same two coroutines.

Cancellation: the handler wraps fetch() in asyncio.wait_for. When the
timeout fires the fetch task is cancelled, which makes httpx abort the
request and release its pooled connection.
"""

import logging
from typing import Dict, Optional, Protocol

import httpx

from .models import UpstreamResponse

logger = logging.getLogger(__name__)

# Browser-like headers reduce anti-bot rejections from card databases
BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def build_request_headers(origin: str) -> Dict[str, str]:
    """Browser headers plus a Referer pointing at the target's own origin."""
    headers = dict(BROWSER_HEADERS)
    headers["Referer"] = f"{origin}/"
    return headers


class ImageFetcher(Protocol):
    """Anything that can GET a URL and hand back the full response."""

    async def fetch(self, url: str, headers: Dict[str, str]) -> UpstreamResponse:
        ...

    async def aclose(self) -> None:
        ...


class HttpxImageFetcher:
    """
    Fetches images with a shared httpx.AsyncClient.

    The client-level timeout is a backstop only; the handler enforces the
    configured deadline around the whole call.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._owns_client = client is None
        self.http_client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
        )

    async def fetch(self, url: str, headers: Dict[str, str]) -> UpstreamResponse:
        response = await self.http_client.get(url, headers=headers)
        logger.debug(
            f"[ImageProxy] Upstream {response.status_code} "
            f"{response.headers.get('content-type')} for {url[:80]}"
        )
        return UpstreamResponse(
            status_code=response.status_code,
            reason=response.reason_phrase,
            content_type=response.headers.get("content-type"),
            body=response.content,
        )

    async def aclose(self) -> None:
        """Close HTTP client (only when this fetcher created it)."""
        if self._owns_client:
            await self.http_client.aclose()
