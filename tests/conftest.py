"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"
os.environ["STORE_BACKEND"] = "memory"
os.environ["EMAIL_BACKEND"] = "console"

import pytest
from httpx import ASGITransport, AsyncClient

from proactivation.api.deps import get_engine, get_store
from proactivation.main import app
from proactivation.models.subscription import Customer, Subscription
from proactivation.services.oracle import SubscriptionOracle
from proactivation.services.rate_limit import get_rate_limiter
from proactivation.services.store import InMemoryKeyValueStore
from proactivation.services.tokens import TokenEngine

DRIVER_EMAIL = "driver@example.com"


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeOracle(SubscriptionOracle):
    """In-memory subscription oracle.

    Set ``error`` to make every lookup raise it, e.g. a Stripe exception.
    """

    def __init__(self) -> None:
        self.customers: dict[str, Customer] = {}
        self.subscriptions: dict[str, list[Subscription]] = {}
        self.error: Exception | None = None
        self.calls = 0

    def add_customer(self, email: str, *subscriptions: Subscription) -> Customer:
        customer = Customer(id=f"cus_{len(self.customers) + 1}", email=email)
        self.customers[email] = customer
        self.subscriptions[customer.id] = list(subscriptions)
        return customer

    def set_subscriptions(self, email: str, *subscriptions: Subscription) -> None:
        self.subscriptions[self.customers[email].id] = list(subscriptions)

    async def find_customer_by_email(self, email: str) -> Customer | None:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.customers.get(email)

    async def list_subscriptions(
        self,
        customer_id: str,
        status: str | None = None,
    ) -> list[Subscription]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        subs = self.subscriptions.get(customer_id, [])
        if status:
            subs = [s for s in subs if s.status == status]
        return subs


def make_subscription(
    status: str = "active",
    days_left: int = 30,
    sub_id: str = "sub_1",
    plan_name: str = "Pro Plan",
    created_days_ago: int = 10,
) -> Subscription:
    """Create a subscription snapshot relative to now."""
    now = datetime.now(UTC)
    return Subscription(
        id=sub_id,
        status=status,
        current_period_end=now + timedelta(days=days_left),
        plan_name=plan_name,
        created=now - timedelta(days=created_days_ago),
    )


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Start every test with empty rate limit windows."""
    get_rate_limiter().reset()
    yield
    get_rate_limiter().reset()


@pytest.fixture(autouse=True)
def mock_queue():
    """Mock the SAQ queue to avoid Redis connections in tests."""
    mock_job = MagicMock()
    mock_job.id = "test-job-id"
    mock_job.key = "test-job-key"

    with patch("proactivation.tasks.queue.queue.enqueue", new_callable=AsyncMock) as mock_enqueue:
        mock_enqueue.return_value = mock_job
        yield mock_enqueue


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryKeyValueStore:
    """Create an in-memory store driven by the fake clock."""
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def oracle() -> FakeOracle:
    """Create an oracle with one paying driver."""
    oracle = FakeOracle()
    oracle.add_customer(DRIVER_EMAIL, make_subscription())
    return oracle


@pytest.fixture
def sender() -> AsyncMock:
    """Create a notification sender that always succeeds."""
    sender = AsyncMock()
    sender.send.return_value = True
    return sender


@pytest.fixture
def engine(store: InMemoryKeyValueStore, oracle: FakeOracle, sender: AsyncMock) -> TokenEngine:
    return TokenEngine(store=store, oracle=oracle, sender=sender)


@pytest.fixture
async def client(
    engine: TokenEngine,
    store: InMemoryKeyValueStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client wired to the test engine and store."""
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_store] = lambda: store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
