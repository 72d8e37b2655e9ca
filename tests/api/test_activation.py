"""Activation endpoint tests."""

import pytest
import stripe
from httpx import AsyncClient

from proactivation.models.token import entitlement_key, token_key
from tests.conftest import DRIVER_EMAIL, make_subscription


@pytest.mark.asyncio
async def test_resend_activation(client: AsyncClient, store, sender):
    """Test that a subscriber gets an activation email."""
    response = await client.post("/api/resend-activation", json={"email": "Driver@Example.com"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"].startswith("Activation email sent!")
    assert data["details"]["email"] == DRIVER_EMAIL
    assert data["details"]["subscriptionStatus"] == "active"
    assert data["details"]["planName"] == "Pro Plan"
    # The token only travels by email
    assert "token" not in data

    sender.send.assert_awaited_once()
    token = sender.send.call_args[0][1]
    assert await store.get(token_key(token)) is not None


@pytest.mark.asyncio
async def test_resend_activation_unknown_email(client: AsyncClient):
    response = await client.post("/api/resend-activation", json={"email": "nobody@example.com"})

    assert response.status_code == 404
    data = response.json()
    assert data["success"] is False
    assert "No subscription found" in data["message"]


@pytest.mark.asyncio
async def test_resend_activation_canceled(client: AsyncClient, oracle, sender):
    oracle.set_subscriptions(DRIVER_EMAIL, make_subscription(status="canceled"))

    response = await client.post("/api/resend-activation", json={"email": DRIVER_EMAIL})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["subscriptionStatus"] == "canceled"
    assert "cancelled" in data["message"]
    sender.send.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body,message",
    [
        ({}, "Email address is required"),
        ({"email": "   "}, "Email address is required"),
        ({"email": "not-an-email"}, "Please enter a valid email address"),
    ],
)
async def test_resend_activation_invalid_email(client: AsyncClient, body, message):
    response = await client.post("/api/resend-activation", json=body)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": message}


@pytest.mark.asyncio
async def test_resend_activation_email_failure(client: AsyncClient, store, sender):
    sender.send.return_value = False

    response = await client.post("/api/resend-activation", json={"email": DRIVER_EMAIL})

    assert response.status_code == 500
    assert "Failed to send activation email" in response.json()["message"]
    assert await store.keys("token:*") == []


@pytest.mark.asyncio
async def test_resend_activation_stripe_unavailable(client: AsyncClient, oracle):
    oracle.error = stripe.APIConnectionError("connection reset")

    response = await client.post("/api/resend-activation", json={"email": DRIVER_EMAIL})

    assert response.status_code == 503
    assert response.json() == {"success": False, "message": "Connection error. Please try again."}


@pytest.mark.asyncio
async def test_resend_activation_card_error(client: AsyncClient, oracle):
    oracle.error = stripe.CardError("declined", param=None, code="card_declined")

    response = await client.post("/api/resend-activation", json={"email": DRIVER_EMAIL})

    assert response.status_code == 400
    assert "Payment issue" in response.json()["message"]


@pytest.mark.asyncio
async def test_resend_activation_rate_limited(client: AsyncClient):
    for _ in range(5):
        response = await client.post("/api/resend-activation", json={"email": DRIVER_EMAIL})
        assert response.status_code == 200

    response = await client.post("/api/resend-activation", json={"email": DRIVER_EMAIL})

    assert response.status_code == 429
    assert response.json()["success"] is False
    assert "Retry-After" in response.headers
    assert response.headers["X-RateLimit-Remaining"] == "0"


@pytest.mark.asyncio
async def test_verify_and_activate(client: AsyncClient, store, sender):
    """Test direct activation returns a token that is already subscribed."""
    response = await client.post("/api/verify-and-activate", json={"email": DRIVER_EMAIL})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Subscription verified and activated successfully!"
    assert len(data["token"]) == 48
    assert data["details"]["activatedAt"] is not None
    assert await store.get(entitlement_key(data["token"])) == "true"
    sender.send.assert_not_awaited()

    probe = await client.get("/api/check-subscription", params={"token": data["token"]})
    assert probe.json() == {"success": True, "active": True}


@pytest.mark.asyncio
async def test_verify_and_activate_no_subscription(client: AsyncClient, oracle):
    oracle.add_customer("lapsed@example.com")

    response = await client.post("/api/verify-and-activate", json={"email": "lapsed@example.com"})

    assert response.status_code == 404
    assert "No active subscription found" in response.json()["message"]


@pytest.mark.asyncio
async def test_verify_token_is_repeatable(client: AsyncClient, sender):
    """Test that the same activation link works on several devices."""
    await client.post("/api/resend-activation", json={"email": DRIVER_EMAIL})
    token = sender.send.call_args[0][1]

    for _ in range(3):
        response = await client.post("/api/verify-token", json={"token": token})
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Activation link verified!"}


@pytest.mark.asyncio
async def test_verify_token_unknown(client: AsyncClient):
    response = await client.post("/api/verify-token", json={"token": "f" * 48})

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "message": "Invalid or expired activation link.",
    }


@pytest.mark.asyncio
async def test_verify_token_missing(client: AsyncClient):
    response = await client.post("/api/verify-token", json={})

    assert response.status_code == 400
    assert response.json()["message"] == "Token is required"


@pytest.mark.asyncio
async def test_verify_token_corrupt_record(client: AsyncClient, store):
    await store.set(token_key("bad"), "not json")

    response = await client.post("/api/verify-token", json={"token": "bad"})

    assert response.status_code == 500
    assert response.json()["message"] == "Invalid token data"


@pytest.mark.asyncio
async def test_malformed_body(client: AsyncClient):
    response = await client.post(
        "/api/verify-token",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid request body"}


@pytest.mark.asyncio
async def test_wrong_method(client: AsyncClient):
    response = await client.get("/api/resend-activation")

    assert response.status_code == 405
    assert response.json() == {"success": False, "message": "Method not allowed"}


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient):
    response = await client.options(
        "/api/resend-activation",
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/api/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
