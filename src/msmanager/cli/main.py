"""Main CLI entry point for msmanager."""

import json
import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from msmanager.constants import (
    DATA_DIR,
    DEFAULT_INITIALS,
    ENV_AUTHOR,
    ENV_INITIALS,
    EXIT_DATA_ERROR,
    EXIT_SYSTEM_ERROR,
    EXIT_USER_ERROR,
    LABELS_HEADER,
    SENTINEL,
    VERSIONS_HEADER,
)
from msmanager.core import (
    PendingUpdate,
    UndoOperation,
    VersionEngine,
    WorkingFileState,
    init_repository,
)
from msmanager.errors import (
    DataError,
    IOFailureError,
    MsManagerError,
    RepositoryNotFoundError,
)

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    name="msmanager",
    help="Track successive versions of documents under labels",
    add_completion=False,
)

SHORT_DIGEST = 12

_STATE_STYLES = {
    WorkingFileState.NO_VERSIONS: "dim",
    WorkingFileState.CLEAN: "green",
    WorkingFileState.MODIFIED: "yellow",
    WorkingFileState.MISSING: "red",
}


def _configure_logging(level: int) -> None:
    logger = logging.getLogger("msmanager")
    logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(
            RichHandler(console=err_console, show_time=False, show_path=False)
        )


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every archive, rename and removal step",
    ),
) -> None:
    """Track successive versions of documents under labels."""
    _configure_logging(logging.INFO if verbose else logging.WARNING)


def _exit_code_for(error: MsManagerError) -> int:
    if isinstance(error, IOFailureError):
        return EXIT_SYSTEM_ERROR
    if isinstance(error, DataError):
        return EXIT_DATA_ERROR
    return EXIT_USER_ERROR


def _fail(error: MsManagerError) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {error}", style="red")
    raise typer.Exit(_exit_code_for(error))


def _open_engine(initials: str = DEFAULT_INITIALS) -> VersionEngine:
    workspace_root = Path.cwd()
    try:
        return VersionEngine(workspace_root, initials=initials)
    except RepositoryNotFoundError:
        console.print(
            "[bold red]Error:[/bold red] No repository in current directory",
            style="red",
        )
        console.print(
            f"  No {DATA_DIR}/ directory found in {workspace_root}",
            style="dim",
        )
        console.print(
            "\nRun [bold]msmanager init[/bold] to initialize a repository",
            style="yellow",
        )
        raise typer.Exit(EXIT_USER_ERROR)
    except MsManagerError as e:
        _fail(e)


@app.command()
def version() -> None:
    """Show msmanager version."""
    from msmanager import __version__
    typer.echo(f"msmanager version {__version__}")


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite existing msmanager-data/ directory (dangerous!)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress output except errors",
    ),
) -> None:
    """Initialize a new repository in the current directory."""
    workspace_root = Path.cwd()

    try:
        data_dir = init_repository(workspace_root, force=force)
    except MsManagerError as e:
        console.print(f"[bold red]Error:[/bold red] {e}", style="red")
        console.print(
            "\nUse [bold]--force[/bold] to reinitialize (will delete existing data!)",
            style="yellow",
        )
        raise typer.Exit(EXIT_USER_ERROR)
    except OSError as e:
        console.print(
            f"[bold red]Error:[/bold red] Failed to initialize repository: {e}",
            style="red",
        )
        raise typer.Exit(EXIT_SYSTEM_ERROR)

    if not quiet:
        success_message = f"""[bold green]✓[/bold green] Repository initialized.

[dim]Workspace:[/dim] {workspace_root}
[dim]Storage location:[/dim] {data_dir}

[bold]Next steps:[/bold]
  1. Track a document: [cyan]msmanager track report quarterly[/cyan]
  2. Submit a revision: [cyan]msmanager update report draft.docx[/cyan]
  3. Review history: [cyan]msmanager hist[/cyan]
"""
        console.print(Panel(success_message, border_style="green", title="msmanager Initialized"))


@app.command()
def track(
    label: str = typer.Argument(..., help="Label identifying the document"),
    basename: str = typer.Argument(..., help="Base filename for stored versions"),
) -> None:
    """Start tracking a label."""
    engine = _open_engine()
    try:
        engine.track(label, basename)
    except MsManagerError as e:
        _fail(e)
    console.print("[green]Label added.[/green]")


def _confirm_update(pending: PendingUpdate) -> bool:
    console.print()
    console.print(f"[bold]Label:[/bold]   {pending.label}")
    console.print(f"[bold]File :[/bold]   {pending.source.name}")
    console.print(f"[bold]Email:[/bold]   {pending.author}")
    console.print(f"[bold]Stored:[/bold]  {pending.target_filename}  [dim](version {pending.version})[/dim]")
    return typer.confirm("Confirm update?", default=False)


@app.command()
def update(
    label: str = typer.Argument(..., help="Label to update"),
    file: Path = typer.Argument(..., help="File holding the new version"),
    author: Optional[str] = typer.Option(
        None,
        "--author",
        envvar=ENV_AUTHOR,
        help="Author email (prompted for when omitted)",
    ),
    initials: str = typer.Option(
        DEFAULT_INITIALS,
        "--initials",
        envvar=ENV_INITIALS,
        help="Initials appended to stored filenames",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip the confirmation prompt",
    ),
) -> None:
    """Update a label with a new file."""
    engine = _open_engine(initials)

    if not author:
        author = typer.prompt("Author email")

    try:
        result = engine.update(
            label,
            file,
            author,
            confirm=None if yes else _confirm_update,
        )
    except MsManagerError as e:
        _fail(e)

    if not result.applied:
        console.print("[yellow]Abort.[/yellow]")
        return

    record = result.record
    console.print(f"Rename file: {file.name} --> [bold]{record.stored_filename}[/bold]")

    if result.removed_previous:
        console.print(f"Removed previous version: {result.removed_previous}")
    elif result.drift is not None:
        drift = result.drift
        if drift.missing:
            console.print(
                f"[bold yellow]WARNING:[/bold yellow] previous version {drift.filename} "
                "is missing from the workspace"
            )
        else:
            console.print(
                "[bold yellow]WARNING:[/bold yellow] the previous version seems to be "
                "different from the file archived"
            )
            console.print(f"  {drift.filename} no longer matches {drift.expected_digest[:SHORT_DIGEST]}")
            console.print("  The file will not be removed", style="yellow")

    console.print(
        f"\n[bold green]>[/bold green] {record.label} is now at version {record.version}"
    )
    console.print(f"  [dim]ID:[/dim] {record.digest}")


@app.command()
def hist(
    label: Optional[str] = typer.Option(
        None,
        "--label",
        "-l",
        help="Show only versions of this label",
    ),
    format: str = typer.Option(  # noqa: A002
        "table",
        "--format",
        help="Output format: table, json",
    ),
) -> None:
    """Show versions history."""
    engine = _open_engine()
    try:
        records = engine.history(label)
    except MsManagerError as e:
        _fail(e)

    if format == "json":
        typer.echo(json.dumps([record.to_dict() for record in records], indent=2))
        return
    if format != "table":
        console.print(f"[bold red]Error:[/bold red] Unknown format: {format}", style="red")
        raise typer.Exit(EXIT_USER_ERROR)

    if not records:
        console.print("[dim]No versions yet[/dim]")
        return

    table = Table(show_edge=False, box=None, header_style="bold")
    for column in VERSIONS_HEADER:
        table.add_column(column, no_wrap=column in ("LABEL", "FILE"))
    for record in records:
        table.add_row(
            record.date,
            record.time,
            record.label,
            str(record.version),
            record.original_filename,
            record.stored_filename,
            record.author,
            record.digest if record.digest == SENTINEL else record.digest[:SHORT_DIGEST],
        )
    console.print(table)


@app.command()
def labels() -> None:
    """Print labels and their base filenames."""
    engine = _open_engine()
    try:
        entries = engine.labels()
    except MsManagerError as e:
        _fail(e)

    if not entries:
        console.print("[dim]No labels yet[/dim]")
        return

    table = Table(show_edge=False, box=None, header_style="bold")
    for column in LABELS_HEADER:
        table.add_column(column)
    for entry in entries:
        table.add_row(entry.label, entry.filename_template)
    console.print(table)


@app.command()
def status() -> None:
    """Show the current version of every label and its working file state."""
    engine = _open_engine()
    try:
        statuses = engine.status()
    except MsManagerError as e:
        _fail(e)

    if not statuses:
        console.print("[dim]No labels yet[/dim]")
        return

    table = Table(show_edge=False, box=None, header_style="bold")
    table.add_column("LABEL")
    table.add_column("VERSION")
    table.add_column("FILE")
    table.add_column("STATE")
    for item in statuses:
        record = item.record
        version_str = str(record.version) if record else "-"
        file_str = record.stored_filename if record and not record.is_track else "-"
        style = _STATE_STYLES[item.state]
        table.add_row(item.label, version_str, file_str, f"[{style}]{item.state.value}[/{style}]")
    console.print(table)


@app.command()
def restore(
    digest: str = typer.Argument(..., help="ID (digest) of the version, or a unique prefix"),
) -> None:
    """Restore an archived version next to the working files."""
    engine = _open_engine()
    try:
        restored = engine.restore(digest)
    except MsManagerError as e:
        _fail(e)
    console.print(f"File restored: [bold]{restored.name}[/bold]")


@app.command()
def undo() -> None:
    """Undo the last track or update."""
    engine = _open_engine()
    try:
        result = engine.undo()
    except MsManagerError as e:
        _fail(e)

    record = result.record
    if result.operation is UndoOperation.TRACK:
        console.print(f"Label removed: [bold]{record.label}[/bold]")
        return

    console.print(f"Rename file: {record.stored_filename} --> {result.restored_filename}")
    console.print(f"Removed archive: {record.digest[:SHORT_DIGEST]}")
    if result.rematerialized_filename:
        console.print(f"Restore previous version: {result.rematerialized_filename}")
    console.print(
        f"\n[bold green]>[/bold green] Undid version {record.version} of {record.label}"
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
