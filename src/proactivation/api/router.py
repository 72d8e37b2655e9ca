"""Main API router that aggregates all route modules."""

from fastapi import APIRouter

from proactivation.api import activation, health, subscription, webhooks
from proactivation.schemas.common import ErrorResponse

# Documented failure shapes shared by the token endpoints
ERROR_RESPONSES: dict[int | str, dict] = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    404: {"model": ErrorResponse, "description": "Unknown customer or token"},
    429: {"model": ErrorResponse, "description": "Rate limited"},
    500: {"model": ErrorResponse, "description": "Internal or upstream error"},
    503: {"model": ErrorResponse, "description": "Upstream unavailable"},
}

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(activation.router, tags=["activation"], responses=ERROR_RESPONSES)
api_router.include_router(subscription.router, tags=["subscription"], responses=ERROR_RESPONSES)
api_router.include_router(webhooks.router, tags=["webhooks"])
