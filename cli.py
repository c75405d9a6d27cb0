"""
CLI tool for running and inspecting the line relay.

Provides commands for serving the relay with its HTTP side channel,
running the bare TCP listener, and printing the effective settings.
"""

import asyncio

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from relay.api.tcp.server import RelayServer, run_relay
from relay.exceptions import ListenerBindFailure
from relay.settings import app_settings

# Initialize Typer app with help text
typer_app = typer.Typer(
    name="relay-cli",
    help="Line Relay CLI - Run the newline-delimited broadcast relay",
    add_completion=False,
)
console = Console()


@typer_app.command(name="serve")
def serve(
    reload: bool = typer.Option(
        False, "--reload", help="Restart on code changes"
    ),
):
    """
    Run the HTTP side channel (/health, /metrics) together with the TCP
    relay listener.

    Example:
        python cli.py serve
    """
    console.print(
        Panel.fit(
            f"[bold cyan]Line relay[/bold cyan]\n\n"
            f"TCP  {app_settings.RELAY_HOST}:{app_settings.RELAY_PORT}\n"
            f"HTTP {app_settings.HTTP_HOST}:{app_settings.HTTP_PORT}",
            border_style="cyan",
        )
    )
    uvicorn.run(
        "relay:application",
        factory=True,
        host=app_settings.HTTP_HOST,
        port=app_settings.HTTP_PORT,
        reload=reload,
    )


@typer_app.command(name="listen")
def listen(
    host: str = typer.Option(
        app_settings.RELAY_HOST, "--host", help="Address to bind"
    ),
    port: int = typer.Option(
        app_settings.RELAY_PORT, "--port", help="Port to bind"
    ),
):
    """
    Run only the TCP relay listener in the foreground.

    Example:
        python cli.py listen --port 8888
    """
    try:
        asyncio.run(run_relay(RelayServer(host=host, port=port)))
    except ListenerBindFailure as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        console.print("[yellow]Relay stopped[/yellow]")


@typer_app.command(name="settings")
def show_settings():
    """
    Display the effective relay configuration.

    Values come from environment variables, falling back to defaults.

    Example:
        python cli.py settings
    """
    table = Table("Setting", "Value", title="Relay Settings")

    for name, value in app_settings.model_dump().items():
        table.add_row(f"[cyan]{name}[/cyan]", str(value))

    console.print()
    console.print(table)
    console.print()


if __name__ == "__main__":
    typer_app()
