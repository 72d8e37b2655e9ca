"""Shared API utilities: error responses and exception handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from proactivation.services.errors import EntitlementError, SubscriptionNotActive

logger = logging.getLogger(__name__)


def error_body(error: EntitlementError) -> dict:
    """Build the JSON body for a failed request.

    Only the error's client-safe message is included, never internal detail.
    """
    body: dict = {"success": False, "message": error.message}
    if isinstance(error, SubscriptionNotActive):
        body["subscriptionStatus"] = error.status
    return body


def error_response(error: EntitlementError, **extra: object) -> JSONResponse:
    """Render an EntitlementError with optional extra top-level fields."""
    return JSONResponse(
        status_code=error.status_code,
        content={**error_body(error), **extra},
        headers=error.headers,
    )


async def entitlement_error_handler(_request: Request, exc: EntitlementError) -> JSONResponse:
    return error_response(exc)


async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug(f"Request validation failed: {exc}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request body"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure with the same {success, message} shape."""
    app.add_exception_handler(EntitlementError, entitlement_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
