"""Console output for the command line, rendered with rich."""

import json
import logging
from typing import Any, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bggproxy.domain.models import Thing

logger = logging.getLogger(__name__)


class ConsoleDisplay:
    """Prints command results as JSON (stdout) and errors as panels (stderr)."""

    def __init__(self, console: Optional[Console] = None, error_console: Optional[Console] = None):
        self._console = console or Console()
        self._error_console = error_console or Console(stderr=True)

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_json(self, data: Any) -> None:
        """Pretty-prints any JSON-serializable value."""
        self._console.print_json(json.dumps(data, default=str))

    def display_things_table(self, things: List[Thing], title: str = "Things") -> None:
        """Compact tabular view of search and hot-list results."""
        table = Table(title=title)
        table.add_column("Rank", justify="right", style="cyan")
        table.add_column("Id", style="dim")
        table.add_column("Name", style="bold")
        table.add_column("Year", justify="right")
        for thing in things:
            table.add_row(
                str(thing.rank) if thing.rank is not None else "",
                thing.id,
                thing.name,
                str(thing.year_published) if thing.year_published is not None else "",
            )
        self._console.print(table)

    def display_info(self, message: str) -> None:
        self._error_console.print(f"[cyan]{message}[/cyan]")

    def display_error(self, message: str, hint: Optional[str] = None) -> None:
        logger.debug(f"display_error called: {message}")
        body = f"[bold red]{message}[/bold red]"
        if hint:
            body += f"\n[dim]{hint}[/dim]"
        self._error_console.print(Panel(body, title="Error", border_style="red"))
