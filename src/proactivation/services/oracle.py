"""Subscription oracle backed by the Stripe API."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

import stripe

from proactivation.config import settings
from proactivation.models.subscription import Customer, Subscription

logger = logging.getLogger(__name__)

SUBSCRIPTION_LIST_LIMIT = 10


class SubscriptionOracle(ABC):
    """Source of truth for a customer's subscription state."""

    @abstractmethod
    async def find_customer_by_email(self, email: str) -> Customer | None:
        """Find the customer registered with this email, if any."""
        pass

    @abstractmethod
    async def list_subscriptions(
        self,
        customer_id: str,
        status: str | None = None,
    ) -> list[Subscription]:
        """List the customer's subscriptions, newest first.

        Args:
            customer_id: Provider customer identifier
            status: Optional status filter (e.g. "active")
        """
        pass


def stripe_field(obj: Any, name: str) -> Any:
    """Read a field from a Stripe object or a plain dict."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=UTC)


def subscription_from_stripe(subscription: Any, default_plan_name: str) -> Subscription:
    """Convert a Stripe subscription object into a Subscription snapshot."""
    items = stripe_field(stripe_field(subscription, "items"), "data") or []
    item = items[0] if items else None

    # Newer API versions report the billing period on the subscription item
    period_end = stripe_field(subscription, "current_period_end")
    if period_end is None:
        period_end = stripe_field(item, "current_period_end")

    plan_name = stripe_field(stripe_field(item, "price"), "nickname")

    return Subscription(
        id=stripe_field(subscription, "id"),
        status=stripe_field(subscription, "status"),
        current_period_end=_timestamp(period_end),
        plan_name=plan_name or default_plan_name,
        created=_timestamp(stripe_field(subscription, "created")),
    )


class StripeSubscriptionOracle(SubscriptionOracle):
    """Oracle that queries Stripe customers and subscriptions.

    The Stripe SDK is synchronous, so calls run in a worker thread to keep the
    event loop free. Stripe exceptions propagate unchanged and are classified
    at the request boundary.
    """

    def __init__(self, api_key: str, default_plan_name: str = "Pro Plan"):
        self.api_key = api_key
        self.default_plan_name = default_plan_name

    async def find_customer_by_email(self, email: str) -> Customer | None:
        customers = await asyncio.to_thread(
            stripe.Customer.list,
            email=email,
            limit=1,
            api_key=self.api_key,
        )
        if not customers.data:
            logger.info(f"No Stripe customer for {email}")
            return None

        customer = customers.data[0]
        return Customer(id=stripe_field(customer, "id"), email=stripe_field(customer, "email"))

    async def list_subscriptions(
        self,
        customer_id: str,
        status: str | None = None,
    ) -> list[Subscription]:
        params: dict[str, Any] = {
            "customer": customer_id,
            "limit": SUBSCRIPTION_LIST_LIMIT,
            # Stripe omits canceled subscriptions unless asked for all of them
            "status": status or "all",
            "api_key": self.api_key,
        }

        result = await asyncio.to_thread(stripe.Subscription.list, **params)
        return [subscription_from_stripe(s, self.default_plan_name) for s in result.data]


def get_oracle() -> SubscriptionOracle:
    """Get the configured subscription oracle."""
    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; subscription lookups will fail")

    # Retries stay with the caller; the SDK only retries when configured to
    stripe.max_network_retries = settings.stripe_max_network_retries

    return StripeSubscriptionOracle(
        api_key=settings.stripe_secret_key,
        default_plan_name=settings.default_plan_name,
    )
