"""Inspect command: render a saved watcher snapshot."""

from pathlib import Path

import typer

from ...core.exceptions import ProtocolError, UniquenessViolation
from ...core.highlight import HighlightIndex, collect_highlights
from ...core.protocol import SnapshotMessage, decode_message
from ...core.store import validate_model
from ..output import console, print_error, print_info, print_success
from .views import model_tree, summary_table


def inspect_command(
    snapshot: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="JSON snapshot as pushed by the watcher",
    ),
    query: str = typer.Option(
        "",
        "--query",
        "-q",
        help="Highlight names and types containing this text",
    ),
    tree: bool = typer.Option(
        True,
        "--tree/--no-tree",
        help="Show the package/file/struct tree",
    ),
) -> None:
    """🔍 Decode a snapshot file and show its structure.

    [bold cyan]Examples:[/bold cyan]

    [green]Summary and tree:[/green]
        $ struct-canvas inspect snapshot.json

    [green]Highlight everything mentioning "conn":[/green]
        $ struct-canvas inspect snapshot.json --query conn
    """
    try:
        message = decode_message(snapshot.read_bytes())
    except ProtocolError as e:
        print_error(f"Failed to decode {snapshot}: {e}")
        raise typer.Exit(1)

    if not isinstance(message, SnapshotMessage):
        print_error(f"{snapshot} does not contain a structural snapshot")
        raise typer.Exit(1)

    model = message.model
    try:
        validate_model(model)
    except UniquenessViolation as e:
        print_error(f"Snapshot violates name uniqueness: {e}")
        raise typer.Exit(1)

    if message.scoped:
        print_info("File-scoped snapshot (fileChanged)")

    console.print(summary_table(model))
    index = HighlightIndex(query)
    if tree:
        console.print(model_tree(model, index))

    if query:
        matches = collect_highlights(model, index).total
        print_success(f"✓ {matches} match(es) for '{query}'")
