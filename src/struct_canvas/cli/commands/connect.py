"""Connect command: follow a running watcher and print model summaries."""

import asyncio

import typer
from loguru import logger

from ...config.settings import EditorSettings, load_settings
from ...core.exceptions import ChannelError, ConfigError
from ...core.models import StructuralModel
from ...core.session import EditorSession
from ..output import console, print_error, print_info, print_warning
from .views import model_tree, summary_table


async def _follow(settings: EditorSettings, show_tree: bool) -> EditorSession:
    def on_snapshot(model: StructuralModel) -> None:
        console.print(summary_table(model))
        if show_tree:
            console.print(model_tree(model))

    session = EditorSession(
        settings,
        on_notify=lambda message: print_error(f"Watcher error: {message}"),
        on_snapshot=on_snapshot,
    )
    await session.open()
    print_info(f"Connected to {settings.websocket_url} (Ctrl+C to stop)")
    try:
        await session.channel.wait_closed()
    finally:
        await session.close()
    return session


def connect_command(
    host: str | None = typer.Option(None, "--host", "-H", help="Watcher host"),
    port: int | None = typer.Option(None, "--port", "-p", help="Watcher port"),
    last_mod: str | None = typer.Option(
        None, "--last-mod", help="Version token sent as ?lastMod= on connect"
    ),
    show_tree: bool = typer.Option(
        False, "--tree", help="Print the full model tree after each snapshot"
    ),
) -> None:
    """🔌 Connect to a running watcher and print every snapshot it pushes.

    Options left unset fall back to STRUCT_CANVAS_* environment variables.

    [bold cyan]Examples:[/bold cyan]

    [green]Default endpoint (ws://localhost:5874/ws):[/green]
        $ struct-canvas connect

    [green]Custom port with full trees:[/green]
        $ struct-canvas connect --port 6000 --tree
    """
    try:
        settings = load_settings(host=host, port=port, last_mod=last_mod)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(2)

    try:
        session = asyncio.run(_follow(settings, show_tree))
    except ChannelError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except KeyboardInterrupt:
        print_info("Disconnected")
        return

    if session.closed_error is not None:
        logger.debug(f"Connection ended with error: {session.closed_error}")
        print_warning("Connection to watcher lost; restart to reconnect")
        raise typer.Exit(1)
