"""Activation token lifecycle: mint, redeem, revalidate and probe.

Two kinds of records live in the key-value store:

- ``token:<token>`` holds the immutable token record and expires after the
  configured TTL (7 days by default).
- ``user:<token>:isSubscribed`` / ``user:<token>:lastValidated`` form the
  device entitlement cache. They carry no TTL and are only changed by an
  explicit activation or revalidation.

Redemption never consumes a token. The same activation link may be opened on
several devices and every one of them shares the entitlement keyed by the
token string.
"""

import logging
import re
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from proactivation.logging import redact_token
from proactivation.models.subscription import (
    Customer,
    Subscription,
    describe_status,
    most_recent,
    pick_active,
)
from proactivation.models.token import (
    SUBSCRIBED_VALUE,
    TOKEN_BYTES,
    TokenOrigin,
    TokenRecord,
    decode_token_record,
    entitlement_key,
    last_validated_key,
    now_ms,
    token_key,
)
from proactivation.services.errors import (
    CustomerNotFound,
    InvalidInput,
    MissingToken,
    NoSubscription,
    NotificationFailed,
    SubscriptionNotActive,
    TokenNotFound,
)
from proactivation.services.oracle import SubscriptionOracle
from proactivation.services.store import KeyValueStore

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DEFAULT_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60

# Template used for each origin that delivers its token by email
EMAIL_TEMPLATES = {
    TokenOrigin.WEBHOOK: "webhook",
    TokenOrigin.RESEND: "activation",
}


class NotificationSender(Protocol):
    async def send(self, to: str, token: str, template_kind: str = "activation") -> bool: ...


def normalize_email(email: str | None) -> str:
    """Trim, lower-case and syntactically validate an email address.

    Raises:
        InvalidInput: If the address is empty or malformed
    """
    if not email or not email.strip():
        raise InvalidInput("Email address is required")

    normalized = email.strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise InvalidInput("Please enter a valid email address")
    return normalized


def require_token(token: str | None) -> str:
    if not token or not token.strip():
        raise MissingToken()
    return token.strip()


def generate_token() -> str:
    """Generate a new activation token (48 hex characters)."""
    return secrets.token_hex(TOKEN_BYTES)


@dataclass
class MintResult:
    """A freshly minted activation token."""

    token: str
    email: str
    origin: TokenOrigin
    customer: Customer
    subscription: Subscription
    created_at: datetime


@dataclass
class RedeemResult:
    """Outcome of opening an activation link."""

    token: str
    record: TokenRecord


@dataclass
class RevalidationResult:
    """Outcome of re-checking a token against the subscription oracle."""

    active: bool
    should_downgrade: bool
    message: str
    status: str | None = None
    subscription: Subscription | None = None
    last_validated: datetime | None = None
    details: dict = field(default_factory=dict)


@dataclass
class ProbeResult:
    token: str
    active: bool


class TokenEngine:
    """Mints and validates activation tokens.

    The store, oracle and sender are created once per process and injected
    here; the engine holds no other state and is safe to share across
    concurrent requests.
    """

    def __init__(
        self,
        store: KeyValueStore,
        oracle: SubscriptionOracle,
        sender: NotificationSender,
        token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
        clear_entitlement_on_downgrade: bool = True,
    ):
        self.store = store
        self.oracle = oracle
        self.sender = sender
        self.token_ttl_seconds = token_ttl_seconds
        self.clear_entitlement_on_downgrade = clear_entitlement_on_downgrade

    async def resolve_subscription(self, email: str) -> tuple[Customer, Subscription]:
        """Find the customer for an email and their currently entitling subscription.

        Raises:
            CustomerNotFound: No customer uses this email
            NoSubscription: The customer never had a subscription
            SubscriptionNotActive: Subscriptions exist but none is active and paid up
        """
        customer = await self.oracle.find_customer_by_email(email)
        if customer is None:
            raise CustomerNotFound()

        subscriptions = await self.oracle.list_subscriptions(customer.id)
        if not subscriptions:
            raise NoSubscription()

        active = pick_active(subscriptions)
        if active is None:
            latest = most_recent(subscriptions)
            logger.info(f"No active subscription for {customer.id}, latest is {latest.status}")
            period_end = latest.current_period_end.isoformat() if latest.current_period_end else None
            raise SubscriptionNotActive(
                status=latest.status,
                message=describe_status(latest.status),
                period_end=period_end,
            )

        return customer, active

    async def mint(self, email: str | None, origin: TokenOrigin) -> MintResult:
        """Mint an activation token for a paying customer.

        Tokens sent by email are deleted again if the email cannot be
        delivered. Direct-verify tokens skip the email and mark the token as
        subscribed right away.
        """
        normalized = normalize_email(email)
        customer, subscription = await self.resolve_subscription(normalized)

        token = generate_token()
        created = now_ms()
        record = TokenRecord(
            email=normalized,
            used=False,
            subscription_id=subscription.id,
            customer_id=customer.id,
            origin=origin,
            timestamp=created,
        )
        await self.store.set(token_key(token), record.to_storage(), ttl_seconds=self.token_ttl_seconds)
        logger.info(f"Minted {origin.value} token {redact_token(token)} for {customer.id}")

        if origin.sends_email:
            sent = await self.sender.send(normalized, token, EMAIL_TEMPLATES[origin])
            if not sent:
                # The link never reached anyone, so don't leave the token behind
                await self.store.delete(token_key(token))
                logger.warning(f"Activation email to {normalized} failed, token discarded")
                raise NotificationFailed()
        else:
            await self.store.set(entitlement_key(token), SUBSCRIBED_VALUE)
            logger.info(f"Activated token {redact_token(token)} immediately")

        return MintResult(
            token=token,
            email=normalized,
            origin=origin,
            customer=customer,
            subscription=subscription,
            created_at=datetime.fromtimestamp(created / 1000, tz=UTC),
        )

    async def load_record(self, token: str) -> TokenRecord:
        """Fetch and decode the stored record for a token.

        Raises:
            TokenNotFound: Never minted, expired or discarded
            CorruptRecord: The stored value cannot be decoded
        """
        raw = await self.store.get(token_key(token))
        if raw is None:
            raise TokenNotFound()
        return decode_token_record(raw)

    async def redeem(self, token: str | None) -> RedeemResult:
        """Check that an activation link is still valid.

        Read-only and repeatable: the ``used`` flag is neither checked nor set,
        and no entitlement is written here.
        """
        token = require_token(token)
        record = await self.load_record(token)
        logger.info(f"Redeemed token {redact_token(token)}")
        return RedeemResult(token=token, record=record)

    async def revalidate(self, token: str | None) -> RevalidationResult:
        """Re-check a token's subscription with the oracle and refresh its entitlement.

        Confirmed inactivity is returned as a result. Missing tokens, corrupt
        records and unknown customers raise; upstream faults propagate
        unchanged for the caller to classify.
        """
        token = require_token(token)
        record = await self.load_record(token)

        try:
            _, subscription = await self.resolve_subscription(record.email)
        except SubscriptionNotActive as e:
            await self._clear_entitlement(token)
            return RevalidationResult(
                active=False,
                should_downgrade=True,
                message=e.message,
                status=e.status,
                details={"status": e.status, "endDate": e.period_end},
            )
        except CustomerNotFound:
            await self._clear_entitlement(token)
            raise

        validated = now_ms()
        await self.store.set(entitlement_key(token), SUBSCRIBED_VALUE)
        await self.store.set(last_validated_key(token), str(validated))
        logger.info(f"Revalidated token {redact_token(token)}: {subscription.id} active")

        return RevalidationResult(
            active=True,
            should_downgrade=False,
            message="Subscription is active",
            status=subscription.status,
            subscription=subscription,
            last_validated=datetime.fromtimestamp(validated / 1000, tz=UTC),
        )

    async def probe(self, token: str | None) -> ProbeResult:
        """Read the cached entitlement flag without contacting the oracle."""
        token = require_token(token)
        value = await self.store.get(entitlement_key(token))
        return ProbeResult(token=token, active=value == SUBSCRIBED_VALUE)

    async def _clear_entitlement(self, token: str) -> None:
        if not self.clear_entitlement_on_downgrade:
            return
        removed = await self.store.delete(entitlement_key(token))
        if removed:
            logger.info(f"Cleared entitlement for token {redact_token(token)}")


def create_engine(store: KeyValueStore) -> TokenEngine:
    """Build the engine from settings around an already-open store."""
    from proactivation.config import settings
    from proactivation.services.email import EmailService
    from proactivation.services.oracle import get_oracle

    return TokenEngine(
        store=store,
        oracle=get_oracle(),
        sender=EmailService(),
        token_ttl_seconds=settings.token_ttl_seconds,
        clear_entitlement_on_downgrade=settings.clear_entitlement_on_downgrade,
    )
