"""
Image Proxy Configuration

Immutable settings shared by every request. Built once at startup,
usually from environment variables, then handed to the handler.

Modes:
- strict: only known card-image hosts, 20s timeout, non-images rejected
- lenient: any http/https host, 10s timeout, non-images only logged
"""

import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

# ============================================
# Defaults
# ============================================

DEFAULT_ALLOWED_HOSTS: FrozenSet[str] = frozenset({
    "optcgapi.com",
    "onepiece-cardgame.com",
    "en.onepiece-cardgame.com",
    "onepiece.limitlesstcg.com",
})

STRICT_TIMEOUT_SECONDS = 20.0
LENIENT_TIMEOUT_SECONDS = 10.0
MIN_BODY_BYTES = 1000               # Smaller bodies are error pages or placeholders
MAX_IMAGE_SIZE_MB = 10
CACHE_MAX_AGE_SECONDS = 3600
DEFAULT_CONTENT_TYPE = "image/png"
RETRY_STATUS_FORCELIST: Tuple[int, ...] = (429, 500, 502, 503, 504)

MODES = ("strict", "lenient")


def normalize_hosts(hosts: Iterable[str]) -> FrozenSet[str]:
    """Lower-case, strip, and drop empty or dot-prefixed host entries."""
    cleaned = set()
    for host in hosts:
        host = host.strip().lower().lstrip(".")
        if host:
            cleaned.add(host)
    return frozenset(cleaned)


@dataclass(frozen=True)
class ProxyConfig:
    """Process-wide proxy settings. Never mutated after construction."""
    enforce_host_allow_list: bool = True
    allowed_hosts: FrozenSet[str] = DEFAULT_ALLOWED_HOSTS
    timeout_seconds: float = STRICT_TIMEOUT_SECONDS
    reject_non_image_content_type: bool = True

    min_body_bytes: int = MIN_BODY_BYTES
    max_body_bytes: int = MAX_IMAGE_SIZE_MB * 1024 * 1024
    cache_max_age: int = CACHE_MAX_AGE_SECONDS
    default_content_type: str = DEFAULT_CONTENT_TYPE

    # Retry policy (1 attempt = no retry)
    retry_attempts: int = 1
    retry_backoff: float = 0.5
    retry_status_forcelist: Tuple[int, ...] = field(default=RETRY_STATUS_FORCELIST)

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        if self.min_body_bytes < 0:
            raise ValueError(f"min_body_bytes must be >= 0, got {self.min_body_bytes}")
        if self.max_body_bytes < self.min_body_bytes:
            raise ValueError("max_body_bytes must not be smaller than min_body_bytes")
        if self.cache_max_age < 0:
            raise ValueError(f"cache_max_age must be >= 0, got {self.cache_max_age}")
        if self.retry_attempts < 1:
            raise ValueError(f"retry_attempts must be >= 1, got {self.retry_attempts}")
        if self.retry_backoff < 0:
            raise ValueError(f"retry_backoff must be >= 0, got {self.retry_backoff}")
        object.__setattr__(self, "allowed_hosts", normalize_hosts(self.allowed_hosts))
        if self.enforce_host_allow_list and not self.allowed_hosts:
            raise ValueError("allow-list enforcement needs at least one allowed host")

    # ============================================
    # Presets
    # ============================================

    @classmethod
    def strict(cls, **overrides) -> "ProxyConfig":
        """Allow-listed card hosts only."""
        return cls(**overrides)

    @classmethod
    def lenient(cls, **overrides) -> "ProxyConfig":
        """Any http/https host, shorter timeout, content type only logged."""
        settings: Dict[str, Any] = {
            "enforce_host_allow_list": False,
            "timeout_seconds": LENIENT_TIMEOUT_SECONDS,
            "reject_non_image_content_type": False,
        }
        settings.update(overrides)
        return cls(**settings)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ProxyConfig":
        """
        Build configuration from environment variables.

        Unset variables fall back to the preset selected by IMAGE_PROXY_MODE.
        Malformed values raise ValueError so a bad deploy fails at startup.
        """
        env = os.environ if environ is None else environ

        mode = env.get("IMAGE_PROXY_MODE", "strict").strip().lower()
        if mode not in MODES:
            raise ValueError(f"IMAGE_PROXY_MODE must be one of {MODES}, got {mode!r}")

        overrides: Dict[str, Any] = {}

        hosts = env.get("IMAGE_PROXY_ALLOWED_HOSTS")
        if hosts:
            overrides["allowed_hosts"] = normalize_hosts(hosts.split(","))

        if env.get("IMAGE_PROXY_TIMEOUT_SECONDS"):
            overrides["timeout_seconds"] = float(env["IMAGE_PROXY_TIMEOUT_SECONDS"])
        if env.get("IMAGE_PROXY_MIN_BYTES"):
            overrides["min_body_bytes"] = int(env["IMAGE_PROXY_MIN_BYTES"])
        if env.get("IMAGE_MAX_SIZE_MB"):
            overrides["max_body_bytes"] = int(env["IMAGE_MAX_SIZE_MB"]) * 1024 * 1024
        if env.get("IMAGE_PROXY_CACHE_MAX_AGE"):
            overrides["cache_max_age"] = int(env["IMAGE_PROXY_CACHE_MAX_AGE"])
        if env.get("IMAGE_PROXY_RETRY_ATTEMPTS"):
            overrides["retry_attempts"] = int(env["IMAGE_PROXY_RETRY_ATTEMPTS"])
        if env.get("IMAGE_PROXY_RETRY_BACKOFF"):
            overrides["retry_backoff"] = float(env["IMAGE_PROXY_RETRY_BACKOFF"])

        if mode == "lenient":
            return cls.lenient(**overrides)
        return cls.strict(**overrides)

    def with_overrides(self, **changes) -> "ProxyConfig":
        return replace(self, **changes)

    def describe(self) -> Dict[str, Any]:
        """Non-secret summary for the health endpoint"""
        return {
            "mode": "strict" if self.enforce_host_allow_list else "lenient",
            "allowed_hosts": sorted(self.allowed_hosts) if self.enforce_host_allow_list else [],
            "timeout_seconds": self.timeout_seconds,
            "reject_non_image_content_type": self.reject_non_image_content_type,
            "min_body_bytes": self.min_body_bytes,
            "max_image_size_mb": self.max_body_bytes // (1024 * 1024),
            "cache_max_age": self.cache_max_age,
            "retry_attempts": self.retry_attempts,
        }
