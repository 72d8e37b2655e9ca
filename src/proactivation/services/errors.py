"""Entitlement error taxonomy and upstream error classification.

Every failure the token engine reports is an ``EntitlementError``. Each
subclass fixes its HTTP status and whether a client holding the token should
drop Pro access. Transient infrastructure faults never ask for a downgrade.
"""

import logging

import redis.exceptions
import stripe

logger = logging.getLogger(__name__)


class EntitlementError(Exception):
    """Base class for token and entitlement failures.

    Attributes:
        code: Machine-readable error code
        message: Human-readable message safe to return to clients
        status_code: HTTP status to respond with
        should_downgrade: Whether the caller should revoke local Pro access
    """

    code = "INTERNAL_FAULT"
    default_message = "Unable to process request. Please try again or contact support."
    status_code = 500
    should_downgrade = False

    def __init__(self, message: str | None = None, headers: dict[str, str] | None = None) -> None:
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        """Whether the same request may succeed later without any change."""
        return self.status_code >= 500 or self.status_code == 429


class InvalidInput(EntitlementError):
    code = "INVALID_INPUT"
    default_message = "Please enter a valid email address"
    status_code = 400
    should_downgrade = True


class MissingToken(InvalidInput):
    code = "MISSING_TOKEN"
    default_message = "Token is required"


class CustomerNotFound(EntitlementError):
    code = "CUSTOMER_NOT_FOUND"
    default_message = (
        "No subscription found for this email address. "
        "Please check your email or contact support."
    )
    status_code = 404
    should_downgrade = True


class NoSubscription(CustomerNotFound):
    code = "NO_SUBSCRIPTION"
    default_message = (
        "No active subscription found for this email address. "
        "Please check your email or contact support."
    )


class SubscriptionNotActive(EntitlementError):
    """The customer has subscriptions but none grants entitlement right now.

    Reported with HTTP 200 so callers branch on the embedded status.
    """

    code = "SUBSCRIPTION_NOT_ACTIVE"
    status_code = 200
    should_downgrade = True

    def __init__(self, status: str, message: str, period_end: str | None = None) -> None:
        self.status = status
        self.period_end = period_end
        super().__init__(message)


class TokenNotFound(EntitlementError):
    code = "TOKEN_NOT_FOUND"
    default_message = "Invalid or expired activation link."
    status_code = 404
    should_downgrade = True


class CorruptRecord(EntitlementError):
    code = "CORRUPT_RECORD"
    default_message = "Invalid token data"
    status_code = 500
    should_downgrade = True


class NotificationFailed(EntitlementError):
    code = "NOTIFICATION_FAILED"
    default_message = "Failed to send activation email. Please try again or contact support."
    status_code = 500


class PaymentIssue(EntitlementError):
    code = "PAYMENT_ISSUE"
    default_message = (
        "Payment issue detected with your subscription. Please update your payment method."
    )
    status_code = 400
    should_downgrade = True


class RateLimited(EntitlementError):
    code = "RATE_LIMITED"
    default_message = "Too many requests. Please try again in a moment."
    status_code = 429


class UpstreamConnectionError(EntitlementError):
    code = "UPSTREAM_CONNECTION_ERROR"
    default_message = "Connection error. Please try again."
    status_code = 503


class UnclassifiedUpstreamError(EntitlementError):
    code = "UPSTREAM_ERROR"


class InternalFault(EntitlementError):
    code = "INTERNAL_FAULT"


def classify_error(exc: BaseException) -> EntitlementError:
    """Map any exception raised while serving a request onto the taxonomy.

    This is the only place upstream exceptions are interpreted, so every
    endpoint reports the same status and downgrade decision for the same fault.
    """
    if isinstance(exc, EntitlementError):
        return exc
    if isinstance(exc, stripe.CardError):
        return PaymentIssue()
    if isinstance(exc, stripe.RateLimitError):
        return RateLimited()
    if isinstance(exc, stripe.APIConnectionError):
        return UpstreamConnectionError()
    if isinstance(exc, stripe.StripeError):
        logger.error(f"Unclassified Stripe error: {exc!r}")
        return UnclassifiedUpstreamError()
    if isinstance(exc, redis.exceptions.ConnectionError | redis.exceptions.TimeoutError):
        return UpstreamConnectionError()
    logger.error(f"Unexpected error: {exc!r}", exc_info=exc)
    return InternalFault()
