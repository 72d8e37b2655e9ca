"""Customer and subscription snapshots returned by the subscription oracle."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


class SubscriptionStatus(str, Enum):
    """Stripe subscription statuses the service distinguishes."""

    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"


# Human-readable explanations for inactive subscriptions
STATUS_MESSAGES: dict[str, str] = {
    SubscriptionStatus.CANCELED.value: "Subscription has been cancelled",
    SubscriptionStatus.PAST_DUE.value: "Subscription payment is past due",
    SubscriptionStatus.UNPAID.value: "Subscription payment failed",
    SubscriptionStatus.INCOMPLETE.value: "Subscription setup is incomplete",
    # Status still says active but the paid period is over
    SubscriptionStatus.ACTIVE.value: "Subscription has expired",
}
DEFAULT_STATUS_MESSAGE = "Subscription is not active"


def describe_status(status: str) -> str:
    """Explain why a subscription with this status grants no entitlement."""
    return STATUS_MESSAGES.get(status, DEFAULT_STATUS_MESSAGE)


@dataclass(frozen=True)
class Customer:
    """A payment provider customer."""

    id: str
    email: str | None = None


@dataclass(frozen=True)
class Subscription:
    """A customer's subscription as seen by the payment provider."""

    id: str
    status: str
    current_period_end: datetime | None
    plan_name: str
    created: datetime | None = None

    def is_entitling(self, now: datetime | None = None) -> bool:
        """Active and paid up through a period that has not ended yet."""
        if self.status != SubscriptionStatus.ACTIVE.value or self.current_period_end is None:
            return False
        return self.current_period_end > (now or datetime.now(UTC))


def pick_active(subscriptions: list[Subscription], now: datetime | None = None) -> Subscription | None:
    """Return the first subscription that currently grants entitlement."""
    now = now or datetime.now(UTC)
    for subscription in subscriptions:
        if subscription.is_entitling(now):
            return subscription
    return None


def most_recent(subscriptions: list[Subscription]) -> Subscription:
    """Return the newest subscription, falling back to list order."""
    dated = [s for s in subscriptions if s.created is not None]
    if dated:
        return max(dated, key=lambda s: s.created)  # type: ignore[arg-type, return-value]
    return subscriptions[0]
