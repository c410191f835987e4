"""Console output helpers shared by CLI commands."""

from rich.console import Console

console = Console()
err_console = Console(stderr=True)


def print_info(message: str) -> None:
    console.print(f"[cyan]ℹ[/cyan] {message}")


def print_success(message: str) -> None:
    console.print(f"[green]{message}[/green]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_error(message: str) -> None:
    err_console.print(f"[red]✗ {message}[/red]")
