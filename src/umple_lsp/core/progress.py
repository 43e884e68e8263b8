"""User-facing console output for CLI commands.

Usage::

    from umple_lsp.core.progress import status

    status("Validating model.ump")
    status("No problems", style="success")  # ✓ No problems
    status("2 errors", style="error")  # ✗ 2 errors

Status lines go to stderr so command output on stdout stays parseable.
"""

from __future__ import annotations

from rich.console import Console

from umple_lsp.core.logging import get_logger

_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message to stderr."""
    prefix = _STYLES.get(style, "")
    padding = " " * indent
    _console.print(f"{padding}{prefix}{message}", highlight=False)
    get_logger("progress").debug("status", message=message, style=style)
