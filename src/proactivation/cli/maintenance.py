"""Maintenance CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from proactivation.services.store import get_store
from proactivation.tasks import queue
from proactivation.tasks.maintenance import MAINTENANCE_TIMEOUT_SECONDS

console = Console()
app = typer.Typer(help="Maintenance and housekeeping commands")


@app.command("keepalive")
def keepalive(
    background: bool = typer.Option(False, "--background", "-b", help="Run in background worker"),
):
    """Touch the key-value store and prune old keepalive markers."""

    async def _keepalive():
        if background:
            job = await queue.enqueue("store_keepalive", timeout=MAINTENANCE_TIMEOUT_SECONDS)
            console.print(f"[green]Queued keepalive job:[/green] {job.id if job else 'unknown'}")
            return

        from proactivation.tasks.maintenance import store_keepalive

        result = await store_keepalive(ctx={})
        if not result.get("success"):
            console.print(f"[red]Error:[/red] {result.get('error')}")
            raise typer.Exit(1)

        console.print(
            f"[green]Keepalive OK[/green] at {result['timestamp']} "
            f"({result['keysProcessed']} markers, {result['keysDeleted']} pruned)"
        )

    asyncio.run(_keepalive())


@app.command("store-stats")
def store_stats():
    """Count stored tokens and entitlement flags."""

    async def _stats():
        store = get_store()
        try:
            counts = {
                "Activation tokens": len(await store.keys("token:*")),
                "Subscribed devices": len(await store.keys("user:*:isSubscribed")),
                "Validated devices": len(await store.keys("user:*:lastValidated")),
                "Webhook events": len(await store.keys("webhook:*")),
            }
        finally:
            await store.close()

        table = Table(title="Store Statistics")
        table.add_column("Category", style="cyan")
        table.add_column("Keys", justify="right")
        for label, count in counts.items():
            table.add_row(label, str(count))

        console.print(table)

    asyncio.run(_stats())
