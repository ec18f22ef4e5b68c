"""
Retry Policy

Optional wrapper around an ImageFetcher for flaky upstream hosts.
Kept separate from the validation pipeline: the handler sees a single
fetch() call, and its timeout still bounds every attempt combined.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Dict, Optional, Tuple

import httpx

from .config import RETRY_STATUS_FORCELIST
from .fetcher import ImageFetcher
from .models import UpstreamResponse

logger = logging.getLogger(__name__)


class RetryingFetcher:
    """
    Retries transport errors and forcelisted statuses with jittered backoff.

    Delay before retry n (0-based) is backoff_factor * 2**n plus a uniform
    jitter of up to backoff_factor. Timeouts are not retried.
    """

    def __init__(
        self,
        inner: ImageFetcher,
        attempts: int = 3,
        backoff_factor: float = 0.5,
        status_forcelist: Tuple[int, ...] = RETRY_STATUS_FORCELIST,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        jitter: Optional[Callable[[float, float], float]] = None,
    ):
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self.inner = inner
        self.attempts = attempts
        self.backoff_factor = backoff_factor
        self.status_forcelist = frozenset(status_forcelist)
        self._sleep = sleep or asyncio.sleep
        self._jitter = jitter or random.uniform

    def backoff_delay(self, retry_number: int) -> float:
        base = self.backoff_factor * (2 ** retry_number)
        return base + self._jitter(0, self.backoff_factor)

    async def fetch(self, url: str, headers: Dict[str, str]) -> UpstreamResponse:
        for attempt in range(1, self.attempts + 1):
            last_attempt = attempt == self.attempts
            try:
                response = await self.inner.fetch(url, headers)
            except httpx.TimeoutException:
                raise
            except httpx.TransportError as e:
                if last_attempt:
                    raise
                logger.warning(
                    f"[ImageProxy] Attempt {attempt}/{self.attempts} failed ({e!r}): {url[:80]}"
                )
            else:
                if last_attempt or response.status_code not in self.status_forcelist:
                    return response
                logger.warning(
                    f"[ImageProxy] Attempt {attempt}/{self.attempts} got {response.status_code}: {url[:80]}"
                )

            await self._sleep(self.backoff_delay(attempt - 1))

        raise AssertionError("unreachable")  # pragma: no cover

    async def aclose(self) -> None:
        await self.inner.aclose()
