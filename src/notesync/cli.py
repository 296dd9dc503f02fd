"""CLI interface for Notesync."""

import asyncio
import logging
from typing import Any, Coroutine, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from notesync import __version__
from notesync.config import Settings, get_settings
from notesync.errors import NoteSyncError, NotFound
from notesync.models.ai import AIAction
from notesync.models.note import Note
from notesync.services.crypto_codec import CryptoCodec
from notesync.services.document_model import DocumentModel
from notesync.services.editor_surface import EditorSurface
from notesync.services.notes_api import NotesApiClient
from notesync.services.sync_controller import SyncController

app = typer.Typer(
    name="notesync",
    help="Rich-text notes with encrypted bodies, autosave and AI-assisted content tools.",
    no_args_is_help=True,
)
console = Console()

T = TypeVar("T")


def setup_logging(level: str) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def get_controller(settings: Settings) -> SyncController:
    """Build a controller talking to the configured notes API."""
    store = NotesApiClient(base_url=settings.api_url, timeout=settings.request_timeout)
    documents = DocumentModel(
        codec=CryptoCodec(iterations=settings.kdf_iterations),
        temp_id_prefix=settings.temp_id_prefix,
    )
    return SyncController(
        store,
        document_model=documents,
        confirm_discard=lambda: typer.confirm("You have unsaved changes. Discard them?"),
        autosave_delay=settings.autosave_delay,
        force_save_interval=settings.force_save_interval,
        temp_id_prefix=settings.temp_id_prefix,
    )


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning Notesync errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except NoteSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _settings() -> Settings:
    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)
    setup_logging(settings.log_level)
    return settings


async def _open_note(controller: SyncController, note_id: str) -> Note:
    """Load the list and select one note for editing."""
    await controller.load()
    note = controller.notes.get(note_id)
    if note is None:
        raise NotFound(f"Note {note_id} not found")
    controller.select(note)
    return note


def _print_notes(notes: list[Note], title: str) -> None:
    if not notes:
        console.print("[yellow]No notes found.[/yellow]")
        return

    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Pinned", justify="center")
    table.add_column("Tags")
    table.add_column("Updated")

    for note in notes:
        table.add_row(
            note.id,
            note.title,
            "📌" if note.is_pinned else "",
            ", ".join(note.tags),
            note.updated_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command("list")
def list_notes(
    pinned: bool = typer.Option(False, "--pinned", "-p", help="Only show pinned notes"),
    filter_text: str = typer.Option("", "--filter", "-f", help="Filter by title or body text"),
):
    """List notes, pinned first."""
    controller = get_controller(_settings())
    run(controller.load())
    _print_notes(controller.notes.filter(filter_text, pinned_only=pinned), "Notes")


@app.command()
def search(
    queries: List[str] = typer.Argument(..., help="Text to look for in titles and bodies"),
):
    """Search notes on the server, one search per query."""
    controller = get_controller(_settings())

    for query in queries:
        results = run(controller.search(query))
        _print_notes(results, f"Results for '{query}'")

    if len(controller.recent_searches) > 1:
        console.print(f"[dim]Recent searches: {', '.join(controller.recent_searches)}[/dim]")


@app.command()
def show(note_id: str = typer.Argument(..., help="Note ID")):
    """Show one note."""
    controller = get_controller(_settings())
    note = run(_open_note(controller, note_id))

    console.print(f"[bold]Title:[/bold] {note.title}")
    console.print(f"[bold]Pinned:[/bold] {'yes' if note.is_pinned else 'no'}")
    console.print(f"[bold]Tags:[/bold] {', '.join(note.tags) or '(none)'}")
    if note.summary:
        console.print(f"[bold]Summary:[/bold] {note.summary}")
    console.print(f"[bold]Updated:[/bold] {note.updated_at}")
    if note.is_encrypted:
        console.print("\n[yellow]This note is protected with encryption.[/yellow]")
    else:
        console.print(f"\n{note.content}", markup=False)


async def _save(controller: SyncController) -> Optional[Note]:
    with console.status("[yellow]Saving...[/yellow]"):
        saved = await controller.save()
    if saved is not None:
        console.print(f"[green]✓ Saved[/green] {saved.title} [dim]({saved.id})[/dim]")
    return saved


@app.command()
def new(
    title: str = typer.Option("Untitled Note", "--title", "-t", help="Note title"),
    content: str = typer.Option("", "--content", "-c", help="Note body markup"),
):
    """Create a note."""
    controller = get_controller(_settings())

    async def _new() -> None:
        controller.create_note()
        editor = EditorSurface(controller)
        editor.set_title(title)
        if content:
            editor.input(content)
        await _save(controller)

    run(_new())


@app.command()
def edit(
    note_id: str = typer.Argument(..., help="Note ID"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    content: Optional[str] = typer.Option(None, "--content", "-c", help="New body markup"),
    append: Optional[str] = typer.Option(None, "--append", "-a", help="Plain text to append"),
):
    """Edit a note's title or body."""
    controller = get_controller(_settings())

    async def _edit() -> None:
        await _open_note(controller, note_id)
        editor = EditorSurface(controller)
        if title is not None:
            editor.set_title(title)
        if content is not None:
            editor.input(content)
        if append:
            editor.paste(append)
        if not controller.has_unsaved_changes:
            console.print("[yellow]Nothing to change.[/yellow]")
            return
        await _save(controller)

    run(_edit())


@app.command()
def pin(note_id: str = typer.Argument(..., help="Note ID")):
    """Pin or unpin a note."""
    controller = get_controller(_settings())

    async def _pin() -> Note:
        await controller.load()
        return await controller.toggle_pin(note_id)

    note = run(_pin())
    state = "Pinned" if note.is_pinned else "Unpinned"
    console.print(f"[green]✓ {state}[/green] {note.title}")


@app.command()
def delete(
    note_id: str = typer.Argument(..., help="Note ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a note."""
    if not yes and not typer.confirm(f"Delete note {note_id}?"):
        raise typer.Exit(0)

    controller = get_controller(_settings())

    async def _delete() -> None:
        await controller.load()
        await controller.delete(note_id)

    run(_delete())
    console.print(f"[green]✓ Deleted[/green] {note_id}")


@app.command()
def encrypt(note_id: str = typer.Argument(..., help="Note ID")):
    """Encrypt a note's body with a passphrase."""
    passphrase = typer.prompt("Passphrase", hide_input=True, confirmation_prompt=True)
    controller = get_controller(_settings())

    async def _encrypt() -> None:
        await _open_note(controller, note_id)
        EditorSurface(controller).encrypt(passphrase)
        await _save(controller)

    run(_encrypt())


@app.command()
def decrypt(note_id: str = typer.Argument(..., help="Note ID")):
    """Decrypt a note's body with its passphrase."""
    passphrase = typer.prompt("Passphrase", hide_input=True)
    controller = get_controller(_settings())

    async def _decrypt() -> None:
        await _open_note(controller, note_id)
        EditorSurface(controller).decrypt(passphrase)
        await _save(controller)

    run(_decrypt())


@app.command()
def ai(
    action: AIAction = typer.Argument(..., help="AI action to run"),
    note_id: str = typer.Argument(..., help="Note ID"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Target language"),
    apply: bool = typer.Option(
        False, "--apply", help="Store the result on the note (summary, tags, glossary)"
    ),
):
    """Run an AI content operation on a note."""
    settings = _settings()
    controller = get_controller(settings)

    from notesync.services.ai_assistant import AIAssistant, result_to_fields
    from notesync.services.ollama_service import OllamaService

    ollama = OllamaService(
        model_name=settings.ollama_model,
        host=settings.ollama_host,
        api_key=settings.ollama_api_key or None,
        temperature=settings.ai_temperature,
    )

    # Check Ollama connection
    if not ollama.check_connection():
        console.print(
            f"[red]Cannot connect to Ollama at {settings.ollama_host}. "
            "Check your API key and connection.[/red]"
        )
        raise typer.Exit(1)

    assistant = AIAssistant(ollama, default_target_language=settings.default_target_language)

    async def _ai() -> None:
        note = await _open_note(controller, note_id)
        if note.is_encrypted:
            console.print("[yellow]Decrypt the note before using AI tools.[/yellow]")
            return

        with console.status(f"[yellow]Running {action.value}...[/yellow]"):
            result = await asyncio.to_thread(assistant.run, action, note.content, language)

        _print_ai_result(action, result)

        if apply:
            fields = result_to_fields(action, result, note.content)
            if fields:
                controller.edit(fields)
                await _save(controller)

    run(_ai())


def _print_ai_result(action: AIAction, result: Any) -> None:
    if not result:
        console.print("[yellow]No results.[/yellow]")
        return

    if action == AIAction.GLOSSARY:
        table = Table(title="Glossary")
        table.add_column("Term", style="cyan")
        table.add_column("Definition")
        for entry in result:
            table.add_row(entry.term, entry.definition)
        console.print(table)
    elif action == AIAction.GRAMMAR:
        for issue in result:
            console.print(f"  [red]{issue.text}[/red] → [green]{issue.suggestion}[/green]")
            if issue.explanation:
                console.print(f"    [dim]{issue.explanation}[/dim]")
    elif action == AIAction.TAGS:
        console.print("[bold]Tags:[/bold] " + ", ".join(result))
    else:
        console.print(result, markup=False)


@app.command()
def config():
    """Show current configuration."""
    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Notesync Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("API URL", settings.api_url)
    table.add_row("Request Timeout", f"{settings.request_timeout}s")
    table.add_row("Autosave Delay", f"{settings.autosave_delay}s")
    table.add_row("Force Save Interval", f"{settings.force_save_interval}s")
    table.add_row("Ollama Host", settings.ollama_host)
    table.add_row("Ollama Model", settings.ollama_model)
    table.add_row("Ollama API Key", "***" if settings.ollama_api_key else "(env)")
    table.add_row("Default Language", settings.default_target_language)
    table.add_row("KDF Iterations", str(settings.kdf_iterations))

    console.print(table)


@app.command()
def version():
    """Show version information."""
    console.print(f"Notesync v{__version__}")


@app.callback()
def main():
    """
    Notesync - rich-text notes with encryption and AI tools.

    Edits notes against a notes API, encrypts bodies with a passphrase,
    and runs AI summaries, tags, glossaries, grammar checks and translations.
    """
    pass


if __name__ == "__main__":
    app()
