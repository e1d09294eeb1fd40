"""CLI console helpers with optional Rich support.

This module avoids module-level imports of optional UI dependencies so
every command keeps working (with plain output) when Rich is not
installed.  Human-facing output goes to stderr; only machine-readable
results (the resolved path) are written to stdout by the commands.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import Any

from scaffold_resolver.exceptions import EnvironmentError

_MARKUP_TAGS = ("[bold]", "[/bold]", "[dim]", "[/dim]", "[green]", "[/green]",
                "[red]", "[/red]", "[yellow]", "[/yellow]", "[cyan]", "[/cyan]",
                "[bold red]", "[/bold red]", "[bold green]", "[/bold green]")


def _load_rich_console_class() -> type[Any]:
    """Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
    try:
        from rich.console import Console
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Console


def get_rich_console() -> Any:
    """Create a Rich console instance targeting stderr."""
    console_class = _load_rich_console_class()
    return console_class(stderr=True)


def strip_markup(text: str) -> str:
    """Remove the small set of Rich markup tags this package emits."""
    for tag in _MARKUP_TAGS:
        text = text.replace(tag, "")
    return text


def escape_markup(text: str) -> str:
    """Escape user-supplied *text* so Rich prints brackets literally."""
    try:
        from rich.markup import escape
    except ModuleNotFoundError:
        return text
    return escape(text)


class _ConsoleProxy:
    """Minimal ``print``-compatible proxy with Rich fallback."""

    def print(self, *objects: object) -> None:
        """Render with Rich when available, else plain stderr print."""
        try:
            rich_console = get_rich_console()
        except EnvironmentError:
            print(*(strip_markup(o) if isinstance(o, str) else o for o in objects),
                  file=sys.stderr)
            return
        rich_console.print(*objects)

    def table(
        self,
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[str]],
    ) -> None:
        """Render *rows* as a table, falling back to aligned plain text."""
        try:
            from rich.table import Table
        except ModuleNotFoundError:
            self._plain_table(title, columns, rows)
            return

        table = Table(
            title=title,
            show_header=True,
            header_style="bold cyan",
            border_style="dim",
        )
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*row)
        self.print(table)

    @staticmethod
    def _plain_table(
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[str]],
    ) -> None:
        plain_rows = [[strip_markup(cell) for cell in row] for row in rows]
        widths = [
            max([len(column)] + [len(row[index]) for row in plain_rows])
            for index, column in enumerate(columns)
        ]
        print(f"\n{title}", file=sys.stderr)
        print("  ".join(c.ljust(w) for c, w in zip(columns, widths)), file=sys.stderr)
        print("-" * (sum(widths) + 2 * (len(widths) - 1)), file=sys.stderr)
        for row in plain_rows:
            print("  ".join(c.ljust(w) for c, w in zip(row, widths)), file=sys.stderr)
        print(file=sys.stderr)


console = _ConsoleProxy()
