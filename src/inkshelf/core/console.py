"""Centralized Rich Console management.

A single Rich Console instance shared by command handlers so that summary
tables and log lines interleave correctly.
"""

from typing import Iterable, Sequence

from rich.console import Console
from rich.table import Table

_console: Console | None = None


def get_console() -> Console:
    """Get or create the global Rich Console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def print_table(
    title: str, columns: Sequence[str], rows: Iterable[Sequence[object]]
) -> None:
    """Render a simple table; the first column is left aligned, others right."""
    table = Table(title=title, title_justify="left")
    for i, column in enumerate(columns):
        table.add_column(column, justify="left" if i == 0 else "right")
    for row in rows:
        table.add_row(*(str(cell) for cell in row))
    get_console().print(table)


def print_paths(heading: str, paths: Sequence[str], style: str = "yellow") -> None:
    """Print a heading followed by one indented path per line."""
    if not paths:
        return
    console = get_console()
    console.print(f"{heading} ({len(paths)}):", style=style)
    for path in paths:
        console.print(f"  {path}", highlight=False)
