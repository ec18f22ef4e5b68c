"""
Image Proxy Handler

Turns one proxy request into either the image bytes or a structured error.

Pipeline (each stage short-circuits to a ProxyFailure):
1. URL parameter present
2. URL parses as absolute
3. Scheme is http/https
4. Host is allow-listed (strict mode only)
5. Upstream fetch, bounded by the configured timeout
6. Upstream status is 2xx
7. Content type is image/* (rejected or only logged, per config)
8. Body size within [min_body_bytes, max_body_bytes]
"""

import asyncio
import logging
from typing import Dict
from urllib.parse import unquote, urlparse

import httpx

from .config import ProxyConfig
from .errors import (
    BodyTooLargeError,
    BodyTooSmallError,
    DisallowedHostError,
    DisallowedSchemeError,
    ErrorKind,
    InvalidContentTypeError,
    InvalidUrlError,
    MissingParameterError,
    ProxyError,
    UpstreamConnectionError,
    UpstreamHttpError,
    UpstreamTimeoutError,
)
from .fetcher import ImageFetcher, build_request_headers
from .models import (
    ProxyFailure,
    ProxyOutcome,
    ProxyRequest,
    ProxySuccess,
    UpstreamResponse,
    ValidatedTarget,
)

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}


def host_is_allowed(host: str, allowed_hosts) -> bool:
    """Exact match or proper subdomain of an allow-listed domain."""
    host = host.lower()
    return any(host == domain or host.endswith("." + domain) for domain in allowed_hosts)


def parse_target(raw_url: str) -> ValidatedTarget:
    """
    Parse and scheme-check a target URL.

    Raises InvalidUrlError for anything that is not an absolute URL and
    DisallowedSchemeError for absolute URLs with a non-http(s) scheme.
    """
    # Accept URLs that arrive percent-encoded a second time
    if "://" not in raw_url and "%3a" in raw_url.lower():
        raw_url = unquote(raw_url)

    try:
        parsed = urlparse(raw_url)
        parsed.port  # Raises ValueError on a malformed port
    except ValueError as e:
        raise InvalidUrlError() from e

    if not parsed.scheme:
        raise InvalidUrlError()
    if parsed.scheme not in ALLOWED_SCHEMES:
        raise DisallowedSchemeError()
    if not parsed.hostname:
        raise InvalidUrlError()

    return ValidatedTarget(
        url=raw_url,
        scheme=parsed.scheme,
        host=parsed.hostname.lower(),
        origin=f"{parsed.scheme}://{parsed.netloc}",
    )


class ImageProxyHandler:
    """
    Stateless fetch-validate-relay unit.

    One instance serves every request; it only reads its frozen config and
    calls the injected fetcher, so concurrent requests need no locking.
    """

    def __init__(self, config: ProxyConfig, fetcher: ImageFetcher):
        self.config = config
        self.fetcher = fetcher

    async def handle(self, request: ProxyRequest) -> ProxyOutcome:
        try:
            target = self.validate(request)
            upstream = await self.fetch(target)
            return self.relay(target, upstream)
        except ProxyError as e:
            self._log_failure(request, e)
            return self.failure(e.status_code, e.message, e.kind)
        except Exception as e:
            logger.exception(f"[ImageProxy] Unexpected error for {str(request.raw_url)[:80]}")
            return self.failure(500, str(e) or "Internal server error", ErrorKind.UNKNOWN_INTERNAL_ERROR)

    # ============================================
    # Stages
    # ============================================

    def validate(self, request: ProxyRequest) -> ValidatedTarget:
        raw_url = (request.raw_url or "").strip()
        if not raw_url:
            raise MissingParameterError(f"{request.parameter} parameter is required")

        target = parse_target(raw_url)

        if self.config.enforce_host_allow_list and not host_is_allowed(
            target.host, self.config.allowed_hosts
        ):
            raise DisallowedHostError()
        return target

    async def fetch(self, target: ValidatedTarget) -> UpstreamResponse:
        headers = build_request_headers(target.origin)
        logger.debug(f"[ImageProxy] Fetching: {target.url[:80]}")
        try:
            # wait_for cancels the fetch task on expiry, aborting the request
            upstream = await asyncio.wait_for(
                self.fetcher.fetch(target.url, headers),
                timeout=self.config.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise UpstreamTimeoutError() from e
        except httpx.TransportError as e:
            raise UpstreamConnectionError(f"Failed to fetch image: {e}") from e

        if not upstream.ok:
            raise UpstreamHttpError(upstream.status_code, upstream.reason)
        return upstream

    def relay(self, target: ValidatedTarget, upstream: UpstreamResponse) -> ProxySuccess:
        media_type = upstream.media_type
        if media_type is not None and not media_type.startswith("image/"):
            if self.config.reject_non_image_content_type:
                raise InvalidContentTypeError()
            logger.warning(
                f"[ImageProxy] Unexpected content type: {upstream.content_type} for {target.url[:80]}"
            )

        size = len(upstream.body)
        if size < self.config.min_body_bytes:
            raise BodyTooSmallError()
        if size > self.config.max_body_bytes:
            max_mb = self.config.max_body_bytes // (1024 * 1024)
            raise BodyTooLargeError(f"Image too large (max {max_mb}MB)")

        content_type = upstream.content_type or self.config.default_content_type
        logger.info(f"[ImageProxy] Proxied: {target.url[:80]} ({size} bytes)")

        return ProxySuccess(
            content_type=content_type,
            body=upstream.body,
            headers=self.success_headers(size),
        )

    # ============================================
    # Helpers
    # ============================================

    def success_headers(self, size: int) -> Dict[str, str]:
        headers = dict(CORS_HEADERS)
        headers.update({
            "Cache-Control": f"public, max-age={self.config.cache_max_age}",
            "Content-Length": str(size),
            "X-Content-Type-Options": "nosniff",
        })
        return headers

    def failure(self, status_code: int, message: str, kind: ErrorKind) -> ProxyFailure:
        return ProxyFailure(
            status_code=status_code,
            error=message,
            kind=kind,
            headers=dict(CORS_HEADERS),
        )

    def _log_failure(self, request: ProxyRequest, error: ProxyError) -> None:
        url = str(request.raw_url)[:80]
        if error.status_code >= 500:
            logger.error(f"[ImageProxy] {error.message} ({error.status_code}): {url}")
        else:
            logger.warning(f"[ImageProxy] {error.message} ({error.status_code}): {url}")
