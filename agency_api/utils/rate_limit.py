# agency_api/utils/rate_limit.py

"""
Per-key request throttling.

A key (e.g. ``login:203.0.113.7``) owns a window of ``window_ms`` milliseconds that
opens on its first request. Requests inside the window are counted; once the count
reaches the quota further requests are rejected until the window resets.

The counters live behind ``RateLimitStore`` so a shared cache can replace the
in-process dict without touching the call sites.
"""

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import HTTPException, Request, status

from agency_api.utils.security import get_client_ip


@dataclass
class RateLimitBucket:
    count: int
    reset_at_ms: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int


class RateLimitStore(ABC):
    """Storage of rate-limit buckets."""

    @abstractmethod
    def get(self, key: str) -> Optional[RateLimitBucket]:
        ...

    @abstractmethod
    def set(self, key: str, bucket: RateLimitBucket) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def purge_expired(self, now_ms: int) -> int:
        """Drops buckets whose window has elapsed, returns how many were dropped."""


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local store. Lost on restart, not shared between instances."""

    def __init__(self):
        self._buckets: Dict[str, RateLimitBucket] = {}

    def get(self, key: str) -> Optional[RateLimitBucket]:
        return self._buckets.get(key)

    def set(self, key: str, bucket: RateLimitBucket) -> None:
        self._buckets[key] = bucket

    def delete(self, key: str) -> None:
        self._buckets.pop(key, None)

    def purge_expired(self, now_ms: int) -> int:
        expired = [k for k, b in self._buckets.items() if now_ms >= b.reset_at_ms]
        for key in expired:
            del self._buckets[key]
        return len(expired)

    def __len__(self):
        return len(self._buckets)


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimiter:
    def __init__(self, store: RateLimitStore | None = None, clock: Callable[[], int] = _now_ms):
        self.store = store if store is not None else InMemoryRateLimitStore()
        self.clock = clock

    def check(self, key: str, max_requests: int = 10, window_ms: int = 60000) -> RateLimitResult:
        """
        Counts one request for ``key``.

        :param key: composite key, category and client address
        :param max_requests: requests allowed per window
        :param window_ms: window length in milliseconds
        :return: RateLimitResult with the decision and what is left of the quota
        """
        now = self.clock()
        bucket = self.store.get(key)

        if bucket is None or now >= bucket.reset_at_ms:
            bucket = RateLimitBucket(count=1, reset_at_ms=now + window_ms)
            self.store.set(key, bucket)
            return RateLimitResult(True, max_requests, max(max_requests - 1, 0), bucket.reset_at_ms)

        if bucket.count >= max_requests:
            return RateLimitResult(False, max_requests, 0, bucket.reset_at_ms)

        bucket.count += 1
        self.store.set(key, bucket)
        return RateLimitResult(True, max_requests, max_requests - bucket.count, bucket.reset_at_ms)

    def reset(self, key: str) -> None:
        self.store.delete(key)


def rate_limit_headers(result: RateLimitResult, now_ms: int | None = None) -> Dict[str, str]:
    """X-RateLimit-* headers; Retry-After only on rejections."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(math.ceil(result.reset_at_ms / 1000)),
    }
    if not result.allowed:
        now_ms = _now_ms() if now_ms is None else now_ms
        headers["Retry-After"] = str(max(1, math.ceil((result.reset_at_ms - now_ms) / 1000)))
    return headers


def enforce_rate_limit(request: Request, category: str, max_requests: int, window_ms: int) -> RateLimitResult:
    """
    Checks the limiter on app.state for ``<category>:<client ip>``.
    Raises 429 with the rate-limit headers when the quota is spent.
    """
    limiter: RateLimiter = request.app.state.rate_limiter
    key = f"{category}:{get_client_ip(request)}"
    result = limiter.check(key, max_requests, window_ms)
    request.state.rate_limit = result

    if not result.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Te veel aanvragen. Probeer het later opnieuw.",
            headers=rate_limit_headers(result, limiter.clock()),
        )
    return result


def rate_limit(category: str, max_requests: int, window_ms: int):
    """FastAPI dependency factory: Depends(rate_limit("login", 10, 900000))."""
    def dependency(request: Request) -> RateLimitResult:
        return enforce_rate_limit(request, category, max_requests, window_ms)
    return dependency
