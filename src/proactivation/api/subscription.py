"""Subscription status endpoints used by client devices."""

import json
import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from proactivation.api.deps import EngineDep
from proactivation.api.utils import error_response
from proactivation.logging import redact_token
from proactivation.schemas.activation import (
    ProbeResponse,
    ValidationDetails,
    ValidationResponse,
)
from proactivation.services.errors import classify_error

logger = logging.getLogger(__name__)

router = APIRouter()


async def _body_token(request: Request) -> str | None:
    """Token from a JSON body. A body that can't be read counts as no token."""
    body = await request.body()
    if not body:
        return None
    try:
        data = json.loads(body)
    except ValueError:
        return None
    token = data.get("token") if isinstance(data, dict) else None
    return token if isinstance(token, str) else None


@router.api_route(
    "/validate-subscription",
    methods=["GET", "POST"],
    response_model=ValidationResponse,
)
async def validate_subscription(
    request: Request,
    engine: EngineDep,
    token: str | None = Query(default=None),
):
    """
    Re-check a token's subscription with Stripe.

    Every response carries ``shouldDowngrade`` so the client can decide on
    access without interpreting status codes. Rate limits and connection
    problems never ask for a downgrade.
    """
    if not token and request.method == "POST":
        token = await _body_token(request)

    try:
        result = await engine.revalidate(token)
    except Exception as e:
        error = classify_error(e)
        logger.info(
            f"Validation of {redact_token(token)} failed: {error.code} "
            f"(downgrade={error.should_downgrade})"
        )
        return error_response(error, active=False, shouldDowngrade=error.should_downgrade)

    subscription = result.subscription
    if not result.active or subscription is None:
        return JSONResponse(
            status_code=200,
            content={
                "success": False,
                "message": result.message,
                "active": False,
                "subscriptionStatus": result.status,
                "shouldDowngrade": result.should_downgrade,
                "details": result.details,
            },
        )

    return ValidationResponse(
        message=result.message,
        details=ValidationDetails(
            subscription_id=subscription.id,
            status=subscription.status,
            current_period_end=subscription.current_period_end,
            plan_name=subscription.plan_name,
            last_validated=result.last_validated,
        ),
    )


@router.get("/check-subscription", response_model=ProbeResponse)
async def check_subscription(
    engine: EngineDep,
    token: str | None = Query(default=None),
):
    """Fast entitlement check from the cached flag; never calls Stripe."""
    try:
        result = await engine.probe(token)
    except Exception as e:
        raise classify_error(e) from e

    return ProbeResponse(active=result.active)
