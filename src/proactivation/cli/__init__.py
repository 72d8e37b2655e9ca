"""CLI commands using Typer."""

import typer

from proactivation.cli.maintenance import app as maintenance_app
from proactivation.cli.tokens import app as tokens_app

app = typer.Typer(name="proactivation", help="Pro activation service CLI")

# Register sub-apps
app.add_typer(tokens_app, name="tokens")
app.add_typer(maintenance_app, name="maintenance")


@app.command()
def version():
    """Show version information."""
    from proactivation import __version__

    typer.echo(f"proactivation v{__version__}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
):
    """Run the API server."""
    import uvicorn

    from proactivation.logging import get_uvicorn_log_config

    uvicorn.run(
        "proactivation.main:app",
        host=host,
        port=port,
        reload=reload,
        log_config=get_uvicorn_log_config(),
    )


@app.command()
def worker():
    """Run the background task worker."""
    from proactivation.worker import main

    typer.echo("Starting worker")
    main()


if __name__ == "__main__":
    app()
