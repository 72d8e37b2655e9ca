"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Request

from proactivation.services.errors import RateLimited
from proactivation.services.rate_limit import RateLimitType, check_rate_limit
from proactivation.services.store import KeyValueStore
from proactivation.services.tokens import TokenEngine


def get_engine(request: Request) -> TokenEngine:
    """Get the token engine created at application startup."""
    return request.app.state.engine


def get_store(request: Request) -> KeyValueStore:
    """Get the key-value store created at application startup."""
    return request.app.state.store


EngineDep = Annotated[TokenEngine, Depends(get_engine)]
StoreDep = Annotated[KeyValueStore, Depends(get_store)]


class RateLimitDependency:
    """Dependency class for rate limiting endpoints.

    Usage:
        @router.post("/endpoint")
        async def endpoint(
            rate_limit: Annotated[None, Depends(RateLimitDependency(RateLimitType.ACTIVATION))]
        ):
            ...
    """

    def __init__(self, limit_type: RateLimitType) -> None:
        self.limit_type = limit_type

    async def __call__(self, request: Request) -> None:
        """Check rate limit and raise 429 if exceeded."""
        result = await check_rate_limit(request, self.limit_type)

        if not result.success:
            headers = result.headers
            retry_after = headers.get("Retry-After", "60")
            raise RateLimited(
                f"Rate limit exceeded. Please try again in {retry_after} seconds.",
                headers=headers,
            )


# Pre-configured rate limit dependencies
ActivationRateLimit = Annotated[None, Depends(RateLimitDependency(RateLimitType.ACTIVATION))]
RedeemRateLimit = Annotated[None, Depends(RateLimitDependency(RateLimitType.REDEEM))]
