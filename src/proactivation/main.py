"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from proactivation.api.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from proactivation.api.router import api_router
from proactivation.api.utils import register_exception_handlers
from proactivation.config import settings
from proactivation.services.store import get_store
from proactivation.services.tokens import create_engine

logger = logging.getLogger(__name__)

# Initialize Sentry for error tracking
if settings.sentry_dsn:
    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
    )
    logger.info("Sentry initialized")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Store, Stripe oracle and email sender are created once here and shared
    by every request.
    """
    store = get_store()
    app.state.store = store
    app.state.engine = create_engine(store)
    logger.info(f"Token engine ready (store={settings.store_backend})")
    yield
    await store.close()


app = FastAPI(
    title="Pro Activation API",
    description="Activation tokens and subscription checks for Pro devices",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug_enabled else None,
    redoc_url="/api/redoc" if settings.debug_enabled else None,
    openapi_url="/api/openapi.json" if settings.debug_enabled else None,
)

register_exception_handlers(app)

app.add_middleware(RequestLoggingMiddleware)  # type: ignore[arg-type]

# Request ID middleware for distributed tracing
app.add_middleware(RequestIDMiddleware)  # type: ignore[arg-type]

# Permissive CORS; also answers preflight OPTIONS requests
app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Stripe-Signature", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

app.include_router(api_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    from proactivation.logging import get_uvicorn_log_config

    uvicorn.run(
        "proactivation.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_config=get_uvicorn_log_config(),
    )
