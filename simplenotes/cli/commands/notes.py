"""
Notes Commands.

Commands for listing and managing notes through the API (requires running server).
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
import typer
from rich.console import Console
from rich.table import Table

from simplenotes.cli.client import APIError, NotesClient, ServiceUnavailableError

app = typer.Typer(help="Note management commands")
console = Console()

T = TypeVar("T")


def _run(action: Callable[[NotesClient], Awaitable[T]]) -> T:
    """Run one client action, turning API failures into a clean exit."""

    async def runner() -> T:
        async with NotesClient() as client:
            return await action(client)

    try:
        return asyncio.run(runner())
    except ServiceUnavailableError as e:
        console.print(f"[yellow]{e.message}[/yellow]")
        raise typer.Exit(1)
    except APIError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    except httpx.TransportError as e:
        console.print("[red]Error: Cannot connect to backend[/red]")
        console.print("[dim]Is the server running? Start with: cli.py server start[/dim]")
        console.print(f"[dim]{e}[/dim]")
        raise typer.Exit(1)


def _truncate(text: str, width: int = 40) -> str:
    text = text.replace("\n", " ")
    return text if len(text) <= width else text[: width - 1] + "…"


def _display_notes(notes: list[dict[str, Any]], title: str) -> None:
    """Render notes as a table."""
    if not notes:
        console.print(f"[dim]No {title.lower()}[/dim]")
        return

    table = Table(title=title, show_header=True)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("", width=1)
    table.add_column("Title", style="bold")
    table.add_column("Content")
    table.add_column("Labels", style="magenta")
    table.add_column("Color")
    table.add_column("Updated", style="dim")

    for note in notes:
        table.add_row(
            str(note["id"]),
            "📌" if note.get("is_pinned") else "",
            _truncate(note.get("title") or ""),
            _truncate(note.get("content") or ""),
            ", ".join(note.get("labels") or []),
            f"[{note['color']}]■[/] {note['color']}",
            str(note.get("updated_at", "")),
        )

    console.print(table)


def _display_note(note: dict[str, Any], action: str) -> None:
    flags = []
    if note.get("is_pinned"):
        flags.append("pinned")
    if note.get("archived"):
        flags.append("archived")
    suffix = f" [dim]({', '.join(flags)})[/dim]" if flags else ""
    console.print(f"[green]✓ {action} note {note['id']}[/green]: {note.get('title') or '(untitled)'}{suffix}")


@app.command("list")
def list_notes() -> None:
    """
    List active notes, pinned first.

    Examples:
        cli.py notes list
    """
    notes = _run(lambda client: client.fetch_notes())
    _display_notes(notes, "Notes")


@app.command()
def archived() -> None:
    """
    List archived notes.

    Examples:
        cli.py notes archived
    """
    notes = _run(lambda client: client.fetch_archived_notes())
    _display_notes(notes, "Archived notes")


@app.command()
def add(
    title: str = typer.Option("", "--title", "-t", help="Note title"),
    content: str = typer.Option("", "--content", "-c", help="Note content"),
    color: str = typer.Option(None, "--color", help="Background color (#rgb or #rrggbb)"),
    label: list[str] = typer.Option(None, "--label", "-l", help="Label (repeatable)"),
    pin: bool = typer.Option(False, "--pin", help="Pin the note"),
) -> None:
    """
    Create a note.

    Examples:
        cli.py notes add -t "Groceries" -c "Milk, eggs" -l shopping
        cli.py notes add -t "Ideas" --color "#fff475" --pin
    """
    body: dict[str, Any] = {
        "title": title,
        "content": content,
        "labels": label or [],
        "isPinned": pin,
    }
    if color:
        body["color"] = color

    note = _run(lambda client: client.create_note(body))
    _display_note(note, "Created")


async def _find_note(client: NotesClient, note_id: int) -> dict[str, Any]:
    """Look a note up in the active and archived lists."""
    for notes in (await client.fetch_notes(), await client.fetch_archived_notes()):
        for note in notes:
            if note["id"] == note_id:
                return note
    raise APIError("Note not found", status_code=404)


@app.command()
def update(
    note_id: int = typer.Argument(..., help="Note ID"),
    title: str = typer.Option(None, "--title", "-t", help="New title"),
    content: str = typer.Option(None, "--content", "-c", help="New content"),
    color: str = typer.Option(None, "--color", help="New color (#rgb or #rrggbb)"),
    label: list[str] = typer.Option(None, "--label", "-l", help="Replace labels (repeatable)"),
) -> None:
    """
    Update a note. Fields not given keep their current value.

    Examples:
        cli.py notes update 3 -t "New title"
        cli.py notes update 3 -l work -l urgent
    """

    async def action(client: NotesClient) -> dict[str, Any]:
        current = await _find_note(client, note_id)
        body = {
            "title": current["title"] if title is None else title,
            "content": current["content"] if content is None else content,
            "color": color or current["color"],
            "labels": label if label else current["labels"],
            "isPinned": current["is_pinned"],
            "archived": current["archived"],
        }
        return await client.update_note(note_id, body)

    note = _run(action)
    _display_note(note, "Updated")


@app.command()
def archive(note_id: int = typer.Argument(..., help="Note ID")) -> None:
    """Archive a note."""
    note = _run(lambda client: client.set_archived(note_id, True))
    _display_note(note, "Archived")


@app.command()
def unarchive(note_id: int = typer.Argument(..., help="Note ID")) -> None:
    """Restore an archived note."""
    note = _run(lambda client: client.set_archived(note_id, False))
    _display_note(note, "Unarchived")


@app.command()
def pin(note_id: int = typer.Argument(..., help="Note ID")) -> None:
    """Pin a note."""
    note = _run(lambda client: client.set_pinned(note_id, True))
    _display_note(note, "Pinned")


@app.command()
def unpin(note_id: int = typer.Argument(..., help="Note ID")) -> None:
    """Unpin a note."""
    note = _run(lambda client: client.set_pinned(note_id, False))
    _display_note(note, "Unpinned")


@app.command()
def delete(
    note_id: int = typer.Argument(..., help="Note ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """
    Permanently delete a note.

    Examples:
        cli.py notes delete 3
        cli.py notes delete 3 --yes
    """
    if not yes:
        typer.confirm(f"Delete note {note_id}?", abort=True)

    result = _run(lambda client: client.delete_note(note_id))
    console.print(f"[green]✓ {result.get('message', 'Note deleted')}[/green] (id {result.get('id', note_id)})")
