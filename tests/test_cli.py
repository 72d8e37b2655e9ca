"""CLI command tests."""

import asyncio
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from proactivation import __version__
from proactivation.cli import app
from proactivation.models.token import TokenOrigin, entitlement_key
from proactivation.services.store import InMemoryKeyValueStore
from proactivation.services.tokens import TokenEngine
from tests.conftest import DRIVER_EMAIL, make_subscription

runner = CliRunner()


def _engine(store, oracle) -> TokenEngine:
    sender = AsyncMock()
    sender.send.return_value = True
    return TokenEngine(store=store, oracle=oracle, sender=sender)


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_activate_and_inspect(oracle):
    store = InMemoryKeyValueStore()
    store.close = AsyncMock()
    engine = _engine(store, oracle)

    with (
        patch("proactivation.cli.tokens.get_store", return_value=store),
        patch("proactivation.cli.tokens.create_engine", return_value=engine),
    ):
        result = runner.invoke(app, ["tokens", "activate", DRIVER_EMAIL])
        assert result.exit_code == 0
        token = result.output.split()[-1]
        assert asyncio.run(store.get(entitlement_key(token))) == "true"

        result = runner.invoke(app, ["tokens", "inspect", token])
        assert result.exit_code == 0
        assert DRIVER_EMAIL in result.output
        assert "direct-verify" in result.output


def test_inspect_unknown_token(oracle):
    store = InMemoryKeyValueStore()
    with (
        patch("proactivation.cli.tokens.get_store", return_value=store),
        patch("proactivation.cli.tokens.create_engine", return_value=_engine(store, oracle)),
    ):
        result = runner.invoke(app, ["tokens", "inspect", "f" * 48])

    assert result.exit_code == 1
    assert "Invalid or expired activation link." in result.output


def test_revalidate_inactive(oracle):
    store = InMemoryKeyValueStore()
    engine = _engine(store, oracle)
    token = asyncio.run(engine.mint(DRIVER_EMAIL, TokenOrigin.DIRECT_VERIFY)).token
    oracle.set_subscriptions(DRIVER_EMAIL, make_subscription(status="past_due"))

    with (
        patch("proactivation.cli.tokens.get_store", return_value=store),
        patch("proactivation.cli.tokens.create_engine", return_value=engine),
    ):
        result = runner.invoke(app, ["tokens", "revalidate", token])

    assert result.exit_code == 0
    assert "Inactive" in result.output
    assert "past_due" in result.output


def test_keepalive_background(mock_queue):
    result = runner.invoke(app, ["maintenance", "keepalive", "--background"])

    assert result.exit_code == 0
    assert "test-job-id" in result.output
    mock_queue.assert_awaited_once()


def test_store_stats():
    store = InMemoryKeyValueStore()
    asyncio.run(store.set("token:abc", "{}"))
    asyncio.run(store.set("user:abc:isSubscribed", "true"))

    with patch("proactivation.cli.maintenance.get_store", return_value=store):
        result = runner.invoke(app, ["maintenance", "store-stats"])

    assert result.exit_code == 0
    assert "Activation tokens" in result.output
