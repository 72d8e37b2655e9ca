"""Activation endpoints: emailed links, direct activation and link redemption."""

import logging

from fastapi import APIRouter

from proactivation.api.deps import ActivationRateLimit, EngineDep, RedeemRateLimit
from proactivation.models.token import TokenOrigin
from proactivation.schemas.activation import (
    ActivationDetails,
    DirectActivationResponse,
    EmailRequest,
    RedeemResponse,
    ResendResponse,
    TokenRequest,
)
from proactivation.services.errors import classify_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/resend-activation", response_model=ResendResponse)
async def resend_activation(
    request: EmailRequest,
    engine: EngineDep,
    _rate_limit: ActivationRateLimit,
):
    """
    Email a fresh activation link to an existing subscriber.

    Used to activate Pro on a new device or browser.
    """
    try:
        result = await engine.mint(request.email, TokenOrigin.RESEND)
    except Exception as e:
        raise classify_error(e) from e

    return ResendResponse(
        message=(
            "Activation email sent! Please check your inbox and click the link "
            "to activate your subscription."
        ),
        details=ActivationDetails(
            email=result.email,
            subscription_status=result.subscription.status,
            plan_name=result.subscription.plan_name,
        ),
    )


@router.post("/verify-and-activate", response_model=DirectActivationResponse)
async def verify_and_activate(
    request: EmailRequest,
    engine: EngineDep,
    _rate_limit: ActivationRateLimit,
):
    """
    Verify a subscription by email and activate this device immediately.

    No email round-trip: the token is returned to the caller and is already
    marked as subscribed.
    """
    try:
        result = await engine.mint(request.email, TokenOrigin.DIRECT_VERIFY)
    except Exception as e:
        raise classify_error(e) from e

    return DirectActivationResponse(
        message="Subscription verified and activated successfully!",
        token=result.token,
        details=ActivationDetails(
            email=result.email,
            subscription_status=result.subscription.status,
            plan_name=result.subscription.plan_name,
            activated_at=result.created_at,
        ),
    )


@router.post("/verify-token", response_model=RedeemResponse)
async def verify_token(
    request: TokenRequest,
    engine: EngineDep,
    _rate_limit: RedeemRateLimit,
):
    """
    Check an activation link's token.

    Links are not consumed, so the same link works on every device it is
    opened on until it expires.
    """
    try:
        await engine.redeem(request.token)
    except Exception as e:
        raise classify_error(e) from e

    return RedeemResponse(message="Activation link verified!")
