"""
Card Image Proxy Module

Fetches card images from third-party card-database hosts and re-serves
them with permissive CORS headers, so client-side PDF generation can draw
them without cross-origin errors.

Features:
- URL, scheme and host allow-list validation
- Bounded upstream timeout with cancellation
- Content-type and body-size guards against error pages
- Optional retry policy for flaky hosts
"""

from .config import ProxyConfig
from .handler import ImageProxyHandler
from .routes_fastapi import router

__all__ = ["router", "ProxyConfig", "ImageProxyHandler"]
