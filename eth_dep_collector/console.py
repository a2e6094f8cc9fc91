"""Shared rich console for progress and warnings."""

from rich.console import Console

console = Console(stderr=True, highlight=False)


def warn(message: str) -> None:
    """Print a warning line."""
    console.print(f"[yellow]{message}[/yellow]")
