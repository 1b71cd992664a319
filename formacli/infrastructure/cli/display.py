import logging
import math
from typing import Any, Dict, List, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from formacli.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)

# Wider record lists are shown as JSON instead of a table
MAX_TABLE_COLUMNS = 8


def format_retry_time(seconds: Optional[float]) -> str:
    """Human wording for a rate-limit wait ('45 seconds', '2 minutes', '1 hour')."""
    if seconds is None:
        return "a few seconds"
    seconds = max(0, int(math.ceil(seconds)))
    if seconds < 60:
        return f"{seconds} second{'s' if seconds != 1 else ''}"
    if seconds < 3600:
        minutes = math.ceil(seconds / 60)
        return f"{minutes} minute{'s' if minutes > 1 else ''}"
    hours = math.ceil(seconds / 3600)
    return f"{hours} hour{'s' if hours > 1 else ''}"


def _is_record_list(output: Any) -> bool:
    return (
        isinstance(output, list)
        and len(output) > 0
        and all(isinstance(row, dict) for row in output)
        and all(not isinstance(v, (dict, list)) for row in output for v in row.values())
    )


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, output: Any, **kwargs: Any) -> None:
        """Renders an API result.

        Flat record lists become a table, other JSON values are pretty-printed,
        and text is printed as-is.

        Args:
            output: Decoded JSON value or response text.
            **kwargs: title: optional heading for tables.
        """
        title = kwargs.get("title")
        if _is_record_list(output):
            columns = self._columns(output)
            if len(columns) <= MAX_TABLE_COLUMNS:
                self.console.print(self._table(output, columns, title))
                return
        if isinstance(output, (dict, list)):
            self.console.print(JSON.from_data(output))
        elif output is None or output == "":
            self.console.print("[dim](empty response)[/dim]")
        else:
            self.console.print(str(output))

    @staticmethod
    def _columns(rows: List[Dict[str, Any]]) -> List[str]:
        columns: List[str] = []
        for row in rows:
            for key in row:
                if key not in columns:
                    columns.append(key)
        return columns

    @staticmethod
    def _table(rows: List[Dict[str, Any]], columns: List[str], title: Optional[str]) -> Table:
        table = Table(title=title, box=ROUNDED, border_style="cyan", header_style="bold cyan")
        for column in columns:
            table.add_column(str(column))
        for row in rows:
            table.add_row(*("" if row.get(c) is None else str(row.get(c)) for c in columns))
        return table

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style."""
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_rate_limit(self, retry_after_seconds: Optional[float]) -> None:
        """Shows the 'too many requests' notice with the time to wait."""
        wait = format_retry_time(retry_after_seconds)
        logger.debug(f"Displaying rate limit notice: retry in {wait}")
        panel = Panel(
            Text(
                "You have made too many requests in a short time.\n"
                f"Please wait {wait} before trying again.",
                style="white",
            ),
            title="[bold yellow]Too many requests[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)
