"""Output formatting for the LiveDB CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Print CLI results either as rich text or as JSON.

    In JSON mode only results are printed (to stdout); informational
    messages are suppressed and errors go to stderr as JSON objects.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def info(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(message)

    def success(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        if self.json_output:
            return
        self.err_console.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        if self.json_output:
            self.err_console.print(json.dumps({"error": message}))
            return
        self.err_console.print(f"[red]Error:[/red] {message}")

    def output_json(self, data: Any) -> None:
        print(json.dumps(data, indent=2, default=str))

    def print_data(self, data: Any, title: Optional[str] = None) -> None:
        """Print an API result.

        Lists of flat dictionaries are shown as a table, anything else as
        indented JSON.
        """
        if self.json_output:
            self.output_json(data)
            return

        rows = data.get("data") if isinstance(data, dict) else data
        if (
            isinstance(rows, list)
            and rows
            and all(isinstance(row, dict) for row in rows)
        ):
            columns: list[str] = []
            for row in rows:
                for key in row:
                    if key not in columns:
                        columns.append(key)
            table = Table(title=title)
            for column in columns:
                table.add_column(str(column))
            for row in rows:
                table.add_row(*(_cell(row.get(column)) for column in columns))
            self.console.print(table)
            return

        if title:
            self.console.print(f"[bold]{title}[/bold]")
        self.console.print_json(json.dumps(data, default=str))

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        if self.json_output:
            self.output_json({key: value for key, value in items})
            return
        if self.quiet:
            return
        table = Table(title=title, show_header=False)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        for key, value in items:
            table.add_row(key, value)
        self.console.print(table)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)
