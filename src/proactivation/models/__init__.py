"""Domain models for tokens and subscriptions."""

from proactivation.models.subscription import (
    Customer,
    Subscription,
    SubscriptionStatus,
    describe_status,
    most_recent,
    pick_active,
)
from proactivation.models.token import (
    TokenOrigin,
    TokenRecord,
    decode_token_record,
    entitlement_key,
    last_validated_key,
    token_key,
)

__all__ = [
    "Customer",
    "Subscription",
    "SubscriptionStatus",
    "TokenOrigin",
    "TokenRecord",
    "decode_token_record",
    "describe_status",
    "entitlement_key",
    "last_validated_key",
    "most_recent",
    "pick_active",
    "token_key",
]
