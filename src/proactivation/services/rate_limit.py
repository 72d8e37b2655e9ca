"""Per-client request limits for the public token endpoints.

Activation requests cost a Stripe lookup and usually an email, so they get a
much tighter budget than redeeming a link. Windows slide: a client regains one
request as soon as its oldest counted request leaves the window.
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from fastapi import Request

from proactivation.config import settings


class RateLimitType(str, Enum):
    """Endpoint groups that share a request budget."""

    ACTIVATION = "activation"
    REDEEM = "redeem"


@dataclass(frozen=True)
class RateLimitConfig:
    requests: int
    window_seconds: int


def limit_for(limit_type: RateLimitType) -> RateLimitConfig:
    """Budget for an endpoint group, from settings."""
    if limit_type is RateLimitType.ACTIVATION:
        requests = settings.rate_limit_activation_requests
    else:
        requests = settings.rate_limit_redeem_requests
    return RateLimitConfig(requests=requests, window_seconds=settings.rate_limit_window_seconds)


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: int  # Unix timestamp in seconds

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }
        if not self.success:
            headers["Retry-After"] = str(max(0, self.reset - int(time.time())))
        return headers


class SlidingWindowLimiter:
    """Process-local sliding window counter.

    Each process counts on its own, so with N API workers a client can make
    up to N times the configured requests.
    """

    def __init__(self, clock: Callable[[], float] = time.time, sweep_every: int = 1000) -> None:
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()
        self._sweep_every = sweep_every
        self._checks = 0

    def __len__(self) -> int:
        """Number of tracked limit_type:identifier keys."""
        return len(self._hits)

    async def check(self, identifier: str, limit_type: RateLimitType) -> RateLimitResult:
        """Count a request for identifier and report whether it is allowed."""
        config = limit_for(limit_type)
        key = f"{limit_type.value}:{identifier}"
        now = self._clock()

        async with self._lock:
            self._checks += 1
            if self._checks % self._sweep_every == 0:
                self._sweep(now)

            hits = self._hits.setdefault(key, deque())
            _prune(hits, now - config.window_seconds)

            if len(hits) >= config.requests:
                return RateLimitResult(
                    success=False,
                    limit=config.requests,
                    remaining=0,
                    reset=int(hits[0] + config.window_seconds),
                )

            hits.append(now)
            return RateLimitResult(
                success=True,
                limit=config.requests,
                remaining=config.requests - len(hits),
                reset=int(now + config.window_seconds),
            )

    async def cleanup_old_entries(self) -> int:
        """Drop keys with no requests left in their window.

        Returns:
            Number of keys removed
        """
        async with self._lock:
            return self._sweep(self._clock())

    def _sweep(self, now: float) -> int:
        stale = []
        for key, hits in self._hits.items():
            window = limit_for(RateLimitType(key.split(":", 1)[0])).window_seconds
            _prune(hits, now - window)
            if not hits:
                stale.append(key)
        for key in stale:
            del self._hits[key]
        return len(stale)

    def reset(self) -> None:
        """Forget all counted requests."""
        self._hits.clear()


def _prune(hits: deque[float], cutoff: float) -> None:
    while hits and hits[0] <= cutoff:
        hits.popleft()


_limiter = SlidingWindowLimiter()


def get_rate_limiter() -> SlidingWindowLimiter:
    return _limiter


def get_client_ip(request: Request) -> str | None:
    """Best guess at the caller's address behind a proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # First hop is the original client
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else None


async def check_rate_limit(request: Request, limit_type: RateLimitType) -> RateLimitResult:
    """Count a request against the caller's IP, unless limiting is disabled."""
    if not settings.rate_limit_enabled:
        config = limit_for(limit_type)
        return RateLimitResult(
            success=True,
            limit=config.requests,
            remaining=config.requests,
            reset=int(time.time()),
        )
    ip = get_client_ip(request)
    return await get_rate_limiter().check(f"ip:{ip or 'unknown'}", limit_type)
