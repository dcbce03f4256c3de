#!/usr/bin/env python3
"""
SimpleNotes CLI.

    python cli.py server start [--reload] [--host H] [--port P]
    python cli.py health status | ping
    python cli.py notes list | archived
    python cli.py notes add -t "Title" -c "Body" -l label --pin
    python cli.py notes update 3 -t "New title"
    python cli.py notes archive 3 | unarchive 3 | pin 3 | unpin 3 | delete 3

Global flags: -v (INFO logs), -d (DEBUG logs). Quiet (WARNING) otherwise.
SIMPLENOTES_API_URL points the note and health commands at another server.
Run from the repository root: configuration is found via .project_root.
"""

import sys
from pathlib import Path

import typer
from rich.console import Console

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from simplenotes.cli.commands import health_app, notes_app, server_app  # noqa: E402

app = typer.Typer(
    name="cli",
    help="SimpleNotes: run the API server, check its health, manage notes.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(server_app, name="server")
app.add_typer(health_app, name="health")
app.add_typer(notes_app, name="notes")

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at INFO"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Log at DEBUG"),
) -> None:
    from simplenotes.backend.core.config import find_project_root
    from simplenotes.backend.core.logging import setup_logging

    try:
        find_project_root()
    except RuntimeError as e:
        console.print(f"[red]{e}. Run from the repository root.[/red]")
        raise typer.Exit(1)

    level = "DEBUG" if debug else "INFO" if verbose else "WARNING"
    setup_logging(level=level, format_type="console")


if __name__ == "__main__":
    app()
