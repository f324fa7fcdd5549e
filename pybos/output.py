"""Output formatting for the pybos CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Formats user-facing output as rich text or JSON."""

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress informational messages
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(highlight=False, soft_wrap=True)
        self.err_console = Console(stderr=True, highlight=False, soft_wrap=True)

    def print(self, message: str = "") -> None:
        """Print a plain line (suppressed in JSON mode)."""
        if not self.json_output:
            self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        if not self.json_output:
            self.console.print(f"✓ {message}", style="green", markup=False)

    def warning(self, message: str) -> None:
        self.err_console.print(f"Warning: {message}", style="yellow", markup=False)

    def error(self, message: str) -> None:
        self.err_console.print(f"Error: {message}", style="bold red", markup=False)

    def output_json(self, data: Any) -> None:
        """Write data as indented JSON to stdout."""
        self.console.print_json(json.dumps(data))

    def output_table(
        self,
        rows: list[dict[str, Any]],
        columns: list[str],
        title: Optional[str] = None,
    ) -> None:
        """Render rows as a table.

        Args:
            rows: One dict per row
            columns: Keys to display, in order
            title: Optional table title
        """
        if self.json_output:
            self.output_json(rows)
            return
        table = Table(title=title)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(str(row.get(column, "")) for column in columns))
        self.console.print(table)

    def print_diff(self, diff_text: str) -> None:
        """Print a unified diff with added/removed lines colored."""
        if self.json_output:
            return
        for line in diff_text.splitlines():
            if line.startswith("+") and not line.startswith("+++"):
                self.console.print(line, style="green", markup=False)
            elif line.startswith("-") and not line.startswith("---"):
                self.console.print(line, style="red", markup=False)
            elif line.startswith("@@"):
                self.console.print(line, style="cyan", markup=False)
            else:
                self.console.print(line, markup=False)
