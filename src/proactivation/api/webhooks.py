"""Stripe webhook endpoint."""

import logging
from typing import Annotated

import stripe
from fastapi import APIRouter, Header, Request

from proactivation.api.deps import EngineDep, StoreDep
from proactivation.config import settings
from proactivation.models.token import TokenOrigin
from proactivation.schemas.activation import WebhookResponse
from proactivation.services.errors import InternalFault, InvalidInput, classify_error
from proactivation.services.oracle import stripe_field

logger = logging.getLogger(__name__)

router = APIRouter()

CHECKOUT_COMPLETED = "checkout.session.completed"


def webhook_event_key(event_id: str) -> str:
    return f"webhook:{event_id}"


def checkout_email(session: object) -> str | None:
    """Email the customer entered at checkout."""
    details = stripe_field(session, "customer_details")
    return stripe_field(details, "email") or stripe_field(session, "customer_email")


@router.post("/stripe-webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    engine: EngineDep,
    store: StoreDep,
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
):
    """
    Mint and email an activation token when a checkout completes.

    The signature is verified over the raw body before anything is written.
    Failures that may succeed on redelivery are answered with an error status
    so Stripe retries; anything else is acknowledged.
    """
    if not settings.stripe_webhook_secret:
        logger.error("Stripe webhook received but STRIPE_WEBHOOK_SECRET is not set")
        raise InternalFault("Webhook not configured")

    if not stripe_signature:
        raise InvalidInput("Missing Stripe-Signature header")

    body = await request.body()

    try:
        event = stripe.Webhook.construct_event(body, stripe_signature, settings.stripe_webhook_secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise InvalidInput("Webhook signature verification failed") from e

    event_id = stripe_field(event, "id")
    event_type = stripe_field(event, "type")

    if event_id:
        try:
            seen = await store.get(webhook_event_key(event_id))
        except Exception as e:
            raise classify_error(e) from e
        if seen:
            logger.info(f"Skipping duplicate Stripe webhook {event_id}")
            return WebhookResponse()

    if event_type == CHECKOUT_COMPLETED:
        session = stripe_field(stripe_field(event, "data"), "object")
        email = checkout_email(session)
        if not email:
            logger.error(f"No customer email in checkout session for event {event_id}")
            raise InvalidInput("Customer email is missing.")

        try:
            await engine.mint(email, TokenOrigin.WEBHOOK)
        except Exception as e:
            error = classify_error(e)
            if error.retryable:
                raise error from e
            logger.warning(f"Not minting token for webhook {event_id}: {error.code} {error.message}")
    else:
        logger.debug(f"Ignoring Stripe event type {event_type}")

    if event_id:
        try:
            await store.set(
                webhook_event_key(event_id),
                event_type or "processed",
                ttl_seconds=settings.webhook_event_ttl_seconds,
            )
        except Exception as e:
            # A redelivery would mint and email a second token
            logger.error(f"Could not record Stripe webhook {event_id} as processed: {e!r}")

    return WebhookResponse()
