"""
Image Proxy Models

Per-request value types. Nothing here outlives a single request.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from .errors import ErrorKind


@dataclass(frozen=True)
class ProxyRequest:
    """Raw target URL as it arrived in the query string"""
    raw_url: Optional[str]
    parameter: str = "url"      # Query parameter the value came from


@dataclass(frozen=True)
class ValidatedTarget:
    """A target URL that passed scheme (and optionally host) policy"""
    url: str
    scheme: str                 # "http" or "https"
    host: str                   # Lower-cased hostname
    origin: str                 # scheme://netloc


@dataclass
class UpstreamResponse:
    """What the origin server sent back"""
    status_code: int
    reason: str = ""
    content_type: Optional[str] = None
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def media_type(self) -> Optional[str]:
        """Content type without parameters, lower-cased"""
        if not self.content_type:
            return None
        return self.content_type.split(";")[0].strip().lower() or None


@dataclass
class ProxySuccess:
    content_type: str
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    status_code: int = 200


@dataclass
class ProxyFailure:
    status_code: int
    error: str
    kind: ErrorKind = ErrorKind.UNKNOWN_INTERNAL_ERROR
    headers: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, str]:
        """JSON error body"""
        return {"error": self.error}


ProxyOutcome = Union[ProxySuccess, ProxyFailure]
