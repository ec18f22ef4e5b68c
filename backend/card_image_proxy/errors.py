"""
Image Proxy Errors

Every way a proxy request can fail, with the HTTP status it maps to.
Validation stages raise these; ImageProxyHandler turns them into
ProxyFailure outcomes so nothing escapes to the web framework.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers"""
    MISSING_PARAMETER = "missing_parameter"
    INVALID_URL = "invalid_url"
    DISALLOWED_SCHEME = "disallowed_scheme"
    DISALLOWED_HOST = "disallowed_host"
    UPSTREAM_HTTP_ERROR = "upstream_http_error"
    TIMEOUT = "timeout"
    UPSTREAM_CONNECTION_ERROR = "upstream_connection_error"
    INVALID_CONTENT_TYPE = "invalid_content_type"
    BODY_TOO_SMALL = "body_too_small"
    BODY_TOO_LARGE = "body_too_large"
    UNKNOWN_INTERNAL_ERROR = "unknown_internal_error"


class ProxyError(Exception):
    """Base class for proxy failures. Subclasses pin kind, status and message."""

    kind: ErrorKind = ErrorKind.UNKNOWN_INTERNAL_ERROR
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class MissingParameterError(ProxyError):
    kind = ErrorKind.MISSING_PARAMETER
    status_code = 400
    default_message = "url parameter is required"


class InvalidUrlError(ProxyError):
    kind = ErrorKind.INVALID_URL
    status_code = 400
    default_message = "Invalid URL"


class DisallowedSchemeError(ProxyError):
    kind = ErrorKind.DISALLOWED_SCHEME
    status_code = 400
    default_message = "Invalid protocol"


class DisallowedHostError(ProxyError):
    kind = ErrorKind.DISALLOWED_HOST
    status_code = 403
    default_message = "Domain not allowed"


class UpstreamHttpError(ProxyError):
    """Upstream answered with a non-2xx status. The status is mirrored."""

    kind = ErrorKind.UPSTREAM_HTTP_ERROR
    status_code = 502
    default_message = "Failed to fetch image"

    def __init__(self, upstream_status: int, reason: str = ""):
        self.upstream_status = upstream_status
        message = f"Failed to fetch image: {upstream_status} {reason}".rstrip()
        # Only error statuses can be mirrored back to the browser
        status = upstream_status if 400 <= upstream_status <= 599 else 502
        super().__init__(message, status_code=status)


class UpstreamTimeoutError(ProxyError):
    kind = ErrorKind.TIMEOUT
    status_code = 504
    default_message = "Request timeout"


class UpstreamConnectionError(ProxyError):
    kind = ErrorKind.UPSTREAM_CONNECTION_ERROR
    status_code = 502
    default_message = "Failed to fetch image"


class InvalidContentTypeError(ProxyError):
    kind = ErrorKind.INVALID_CONTENT_TYPE
    status_code = 400
    default_message = "Not an image"


class BodyTooSmallError(ProxyError):
    kind = ErrorKind.BODY_TOO_SMALL
    status_code = 400
    default_message = "Image data too small"


class BodyTooLargeError(ProxyError):
    kind = ErrorKind.BODY_TOO_LARGE
    status_code = 413
    default_message = "Image too large"
