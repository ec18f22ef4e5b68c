"""
Image Proxy API Routes

Provides endpoints for:
- Proxying card images from third-party hosts (bypasses CORS)
- CORS preflight
- Health check

Both /api/img (?src=) and /api/image-proxy (?url=) are served by the same
handler and configuration; either parameter name works on either route.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .handler import CORS_HEADERS, ImageProxyHandler
from .models import ProxyFailure, ProxyOutcome, ProxyRequest

PREFLIGHT_MAX_AGE = "86400"


# ============================================
# Response Models
# ============================================

class HealthResponse(BaseModel):
    """Response model for health endpoint"""
    status: str
    service: str
    config: Dict[str, Any] = Field(..., description="Active proxy settings")


# ============================================
# Router
# ============================================

router = APIRouter(tags=["Image Proxy"])


def get_handler(request: Request) -> ImageProxyHandler:
    """The handler built by create_app() for this application."""
    return request.app.state.image_proxy_handler


def build_proxy_request(url: Optional[str], src: Optional[str]) -> ProxyRequest:
    """`url` is canonical; `src` is accepted as an alias."""
    if url is not None:
        return ProxyRequest(raw_url=url, parameter="url")
    if src is not None:
        return ProxyRequest(raw_url=src, parameter="src")
    return ProxyRequest(raw_url=None, parameter="url")


def to_response(outcome: ProxyOutcome) -> Response:
    if isinstance(outcome, ProxyFailure):
        return JSONResponse(
            content=outcome.to_dict(),
            status_code=outcome.status_code,
            headers=outcome.headers,
        )
    return Response(
        content=outcome.body,
        status_code=outcome.status_code,
        media_type=outcome.content_type,
        headers=outcome.headers,
    )


def preflight_response() -> Response:
    headers = dict(CORS_HEADERS)
    headers["Access-Control-Max-Age"] = PREFLIGHT_MAX_AGE
    return Response(status_code=200, headers=headers)


# ============================================
# Endpoints
# ============================================

@router.get("/api/img")
@router.get("/api/image-proxy")
async def proxy_image(
    url: Optional[str] = Query(None, description="URL of the image to proxy"),
    src: Optional[str] = Query(None, description="Alias of url"),
    handler: ImageProxyHandler = Depends(get_handler),
):
    """
    Proxy a card image so the browser can read its pixels.

    Example:
        GET /api/image-proxy?url=https://en.onepiece-cardgame.com/images/cardlist/card/OP01-001.png
    """
    outcome = await handler.handle(build_proxy_request(url, src))
    return to_response(outcome)


@router.options("/api/img")
@router.options("/api/image-proxy")
async def proxy_image_preflight():
    """CORS preflight. Always 200 with no body."""
    return preflight_response()


@router.get("/api/image-proxy/health", response_model=HealthResponse)
async def health_check(handler: ImageProxyHandler = Depends(get_handler)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        service="image-proxy",
        config=handler.config.describe(),
    )
