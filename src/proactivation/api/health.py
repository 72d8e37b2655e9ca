"""Health check endpoints."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from proactivation.api.deps import StoreDep
from proactivation.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check - just confirms the service is running."""
    return {"status": "ok"}


@router.get("/store")
async def health_check_store(store: StoreDep):
    """Health check for key-value store connectivity."""
    try:
        await store.ping()
        return {"status": "ok", "store": "connected", "backend": settings.store_backend}
    except Exception as e:
        logger.error(f"Store health check failed: {e!r}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "store": "disconnected"},
        )


@router.get("/ready")
async def readiness_check(store: StoreDep):
    """Readiness check - confirms all dependencies are available.

    Returns 503 if the store is unreachable.
    """
    try:
        await store.ping()
        store_status = "connected"
    except Exception as e:
        logger.error(f"Store readiness check failed: {e!r}")
        store_status = "disconnected"

    stripe_ok = bool(settings.stripe_secret_key and settings.stripe_webhook_secret)

    response = {
        "status": "ok" if store_status == "connected" and stripe_ok else "degraded",
        "store": store_status,
        "stripe_configured": stripe_ok,
    }

    if store_status != "connected":
        return JSONResponse(status_code=503, content=response)
    return response
