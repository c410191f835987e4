"""struct-canvas command-line entry point."""

import sys

import typer
from loguru import logger

from .. import __version__
from ..config.settings import load_settings
from ..core.exceptions import ConfigError
from .commands.connect import connect_command
from .commands.inspect import inspect_command
from .output import console, print_error

app = typer.Typer(
    name="struct-canvas",
    help="Live structural diagram editor core for a watched code base",
    no_args_is_help=True,
)

app.command("inspect")(inspect_command)
app.command("connect")(connect_command)


def setup_logging(level: str) -> None:
    """Route loguru output to stderr at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"struct-canvas {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    quiet: bool = typer.Option(False, "--quiet", help="Only log errors"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Inspect and follow structural snapshots from a source watcher."""
    if verbose:
        setup_logging("DEBUG")
    elif quiet:
        setup_logging("ERROR")
    else:
        try:
            setup_logging(load_settings().log_level)
        except ConfigError as e:
            print_error(str(e))
            raise typer.Exit(2)


if __name__ == "__main__":
    app()
