"""Stripe subscription oracle tests."""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import stripe

from proactivation.services.oracle import (
    StripeSubscriptionOracle,
    get_oracle,
    subscription_from_stripe,
)

PERIOD_END = 1_900_000_000
CREATED = 1_700_000_000


def stripe_subscription(**overrides) -> dict:
    """Subscription payload shaped like the Stripe API response."""
    data = {
        "id": "sub_123",
        "status": "active",
        "current_period_end": PERIOD_END,
        "created": CREATED,
        "items": {"data": [{"price": {"nickname": "Pro Monthly"}}]},
    }
    data.update(overrides)
    return data


class TestSubscriptionFromStripe:
    def test_full_payload(self):
        sub = subscription_from_stripe(stripe_subscription(), "Pro Plan")

        assert sub.id == "sub_123"
        assert sub.status == "active"
        assert sub.current_period_end == datetime.fromtimestamp(PERIOD_END, tz=UTC)
        assert sub.created == datetime.fromtimestamp(CREATED, tz=UTC)
        assert sub.plan_name == "Pro Monthly"

    def test_plan_name_defaults(self):
        payload = stripe_subscription(items={"data": [{"price": {"nickname": None}}]})
        assert subscription_from_stripe(payload, "Pro Plan").plan_name == "Pro Plan"

    def test_period_end_from_item(self):
        payload = stripe_subscription(
            current_period_end=None,
            items={"data": [{"current_period_end": PERIOD_END, "price": {}}]},
        )

        sub = subscription_from_stripe(payload, "Pro Plan")

        assert sub.current_period_end == datetime.fromtimestamp(PERIOD_END, tz=UTC)

    def test_attribute_style_objects(self):
        price = SimpleNamespace(nickname="Annual")
        item = SimpleNamespace(price=price)
        payload = SimpleNamespace(
            id="sub_obj",
            status="past_due",
            current_period_end=PERIOD_END,
            created=None,
            items=SimpleNamespace(data=[item]),
        )

        sub = subscription_from_stripe(payload, "Pro Plan")

        assert sub.id == "sub_obj"
        assert sub.plan_name == "Annual"
        assert sub.created is None


class TestStripeSubscriptionOracle:
    @pytest.mark.asyncio
    async def test_find_customer(self):
        oracle = StripeSubscriptionOracle(api_key="sk_test")
        result = MagicMock(data=[{"id": "cus_1", "email": "driver@example.com"}])

        with patch("stripe.Customer.list", return_value=result) as mock_list:
            customer = await oracle.find_customer_by_email("driver@example.com")

        assert customer is not None
        assert customer.id == "cus_1"
        mock_list.assert_called_once_with(email="driver@example.com", limit=1, api_key="sk_test")

    @pytest.mark.asyncio
    async def test_find_customer_missing(self):
        oracle = StripeSubscriptionOracle(api_key="sk_test")

        with patch("stripe.Customer.list", return_value=MagicMock(data=[])):
            assert await oracle.find_customer_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_list_subscriptions_includes_all_statuses(self):
        oracle = StripeSubscriptionOracle(api_key="sk_test", default_plan_name="Pro")
        result = MagicMock(data=[stripe_subscription(), stripe_subscription(id="sub_2")])

        with patch("stripe.Subscription.list", return_value=result) as mock_list:
            subs = await oracle.list_subscriptions("cus_1")

        assert [s.id for s in subs] == ["sub_123", "sub_2"]
        kwargs = mock_list.call_args.kwargs
        assert kwargs["customer"] == "cus_1"
        assert kwargs["status"] == "all"
        assert kwargs["limit"] == 10

    @pytest.mark.asyncio
    async def test_list_subscriptions_status_filter(self):
        oracle = StripeSubscriptionOracle(api_key="sk_test")

        with patch("stripe.Subscription.list", return_value=MagicMock(data=[])) as mock_list:
            assert await oracle.list_subscriptions("cus_1", status="active") == []

        assert mock_list.call_args.kwargs["status"] == "active"

    @pytest.mark.asyncio
    async def test_stripe_errors_propagate(self):
        oracle = StripeSubscriptionOracle(api_key="sk_test")

        with patch("stripe.Customer.list", side_effect=stripe.RateLimitError("slow down")):
            with pytest.raises(stripe.RateLimitError):
                await oracle.find_customer_by_email("driver@example.com")


def test_get_oracle_uses_settings():
    with patch("proactivation.services.oracle.settings") as mock_settings:
        mock_settings.stripe_secret_key = "sk_test_abc"
        mock_settings.default_plan_name = "Pro Plan"
        mock_settings.stripe_max_network_retries = 0

        oracle = get_oracle()

    assert isinstance(oracle, StripeSubscriptionOracle)
    assert oracle.api_key == "sk_test_abc"
    assert stripe.max_network_retries == 0
