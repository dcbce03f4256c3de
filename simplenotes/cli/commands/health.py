"""
Health Check Commands.

Commands for checking backend and database health.
"""

import asyncio

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from simplenotes.cli.client import APIError, NotesClient

app = typer.Typer(help="Health check commands")
console = Console()


@app.command()
def status() -> None:
    """
    Check backend and database health (requires running server).

    Exits with status 1 when the database is disconnected.

    Examples:
        cli.py health status
    """
    asyncio.run(_status())


async def _status() -> None:
    """Async implementation of status command."""
    try:
        async with NotesClient() as client:
            data = await client.health()
    except httpx.TransportError as e:
        console.print("[red]Error: Cannot connect to backend[/red]")
        console.print("[dim]Is the server running? Start with: cli.py server start[/dim]")
        console.print(f"[dim]{e}[/dim]")
        raise typer.Exit(1)
    except APIError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    _display_health(data)

    if data.get("status") != "OK":
        raise typer.Exit(1)


def _display_health(data: dict) -> None:
    """Display health check results."""
    healthy = data.get("status") == "OK"
    color = "green" if healthy else "red"

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Database", f"[{color}]{data.get('database', 'unknown')}[/{color}]")
    if "dbTime" in data:
        table.add_row("DB time", str(data["dbTime"]))
    if "environment" in data:
        table.add_row("Environment", data["environment"])
    if "error" in data:
        table.add_row("Error", f"[red]{data['error']}[/red]")
    table.add_row("Checked at", str(data.get("timestamp", "-")))

    console.print(Panel(table, title=f"[{color}]{data.get('status', 'UNKNOWN')}[/{color}]"))


@app.command()
def ping() -> None:
    """
    Simple ping to check if backend is reachable.

    Uses the service banner, which answers without touching the database.

    Examples:
        cli.py health ping
    """
    asyncio.run(_ping())


async def _ping() -> None:
    """Async implementation of ping command."""
    try:
        async with NotesClient(max_attempts=1) as client:
            response = await client.get(client.base_url)
    except httpx.TransportError:
        console.print("[red]✗ Backend is not reachable[/red]")
        raise typer.Exit(1)

    if response.status_code == 200:
        data = response.json()
        console.print(
            f"[green]✓ Backend is reachable[/green] "
            f"[dim](v{data.get('version', '?')}, database {data.get('databaseStatus', 'unknown')})[/dim]"
        )
    else:
        console.print(f"[yellow]Backend responded with status {response.status_code}[/yellow]")
        raise typer.Exit(1)
