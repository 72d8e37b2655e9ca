"""Activation token CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from proactivation.models.token import TokenOrigin, entitlement_key, last_validated_key
from proactivation.services.errors import EntitlementError, classify_error
from proactivation.services.store import get_store
from proactivation.services.tokens import create_engine

console = Console()
app = typer.Typer(help="Inspect and manage activation tokens")


@app.command("inspect")
def inspect(token: str = typer.Argument(..., help="Activation token")):
    """Show a token's stored record and cached entitlement."""

    async def _inspect():
        store = get_store()
        try:
            engine = create_engine(store)
            try:
                record = (await engine.redeem(token)).record
            except EntitlementError as e:
                console.print(f"[red]Error:[/red] {e.message}")
                raise typer.Exit(1) from e

            table = Table(title="Activation Token")
            table.add_column("Field", style="cyan")
            table.add_column("Value")

            table.add_row("Email", record.email)
            table.add_row("Origin", record.origin.value)
            table.add_row("Customer", record.customer_id or "-")
            table.add_row("Subscription", record.subscription_id or "-")
            table.add_row("Created", record.created_at.isoformat() if record.created_at else "-")
            table.add_row("Subscribed", await store.get(entitlement_key(token)) or "-")
            table.add_row("Last Validated", await store.get(last_validated_key(token)) or "-")

            console.print(table)
        finally:
            await store.close()

    asyncio.run(_inspect())


@app.command("revalidate")
def revalidate(token: str = typer.Argument(..., help="Activation token")):
    """Re-check a token's subscription with Stripe and refresh its entitlement."""

    async def _revalidate():
        store = get_store()
        try:
            engine = create_engine(store)
            try:
                result = await engine.revalidate(token)
            except Exception as e:
                error = classify_error(e)
                console.print(
                    f"[red]Error:[/red] {error.message} "
                    f"(downgrade: {'yes' if error.should_downgrade else 'no'})"
                )
                raise typer.Exit(1) from e

            if result.active:
                console.print(f"[green]Active:[/green] {result.message}")
                if result.subscription:
                    console.print(
                        f"[dim]{result.subscription.id} · {result.subscription.plan_name}[/dim]"
                    )
            else:
                console.print(f"[yellow]Inactive:[/yellow] {result.message} ({result.status})")
        finally:
            await store.close()

    asyncio.run(_revalidate())


@app.command("activate")
def activate(
    email: str = typer.Argument(..., help="Subscriber email"),
    send_email: bool = typer.Option(
        False, "--send-email/--direct", help="Email an activation link instead of printing a token"
    ),
):
    """Mint a token for a subscriber, as support would on their behalf."""

    async def _activate():
        store = get_store()
        try:
            engine = create_engine(store)
            origin = TokenOrigin.RESEND if send_email else TokenOrigin.DIRECT_VERIFY
            try:
                result = await engine.mint(email, origin)
            except Exception as e:
                error = classify_error(e)
                console.print(f"[red]Error:[/red] {error.message}")
                raise typer.Exit(1) from e

            if send_email:
                console.print(f"[green]Activation email sent to[/green] {result.email}")
            else:
                console.print(f"[green]Activated token:[/green] {result.token}")
        finally:
            await store.close()

    asyncio.run(_activate())
