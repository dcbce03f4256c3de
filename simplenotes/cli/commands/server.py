"""
Server Commands.

Runs the API in this process with uvicorn.
"""

import typer
import uvicorn
from rich.console import Console

app = typer.Typer(help="Run the SimpleNotes API server")
console = Console()

APP_PATH = "simplenotes.backend.main:app"


@app.command()
def start(
    host: str = typer.Option(None, "--host", "-h", help="Bind address (default: server.host)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default: PORT or server.port)"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Restart on code changes"),
) -> None:
    """
    Start the API server.

    Examples:
        cli.py server start
        cli.py server start --reload --port 8080
    """
    from simplenotes.backend.core.config import get_app_config, get_server_port

    try:
        host = host or get_app_config().application.server.host
        port = port or get_server_port()
    except (FileNotFoundError, RuntimeError, ValueError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold]Serving on http://{host}:{port}[/bold]" + (" [dim](reload)[/dim]" if reload else ""))
    uvicorn.run(APP_PATH, host=host, port=port, reload=reload, log_config=None)
