"""umple-lsp check command - validate one file with UmpleSync."""

import asyncio
from pathlib import Path

import click

from umple_lsp.config.loader import load_config
from umple_lsp.core.errors import UmpleLspError
from umple_lsp.core.progress import status
from umple_lsp.diagnostics.models import Diagnostic, DiagnosticSeverity
from umple_lsp.service import UmpleLanguageService
from umple_lsp.workspace.documents import normalize_path


def format_diagnostic(path: Path, diagnostic: Diagnostic) -> str:
    """``file:line:col: severity: message`` with 1-based line and column."""
    severity = "error" if diagnostic.severity is DiagnosticSeverity.ERROR else "warning"
    return (
        f"{path}:{diagnostic.line + 1}:{diagnostic.character + 1}: "
        f"{severity}: {diagnostic.message}"
    )


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--jar", "jar_path", type=click.Path(path_type=Path), help="Path to umplesync.jar")
def check_command(file: Path, jar_path: Path | None) -> None:
    """Validate FILE and its imports, printing one line per diagnostic.

    Exits with status 1 when any error is reported.
    """
    path = normalize_path(file)
    overrides = {"validator": {"jar_path": str(jar_path)}} if jar_path else {}
    try:
        config = load_config(path.parent, **overrides)
        service = UmpleLanguageService.from_config(config)
        text = path.read_text(encoding="utf-8")
        diagnostics = asyncio.run(service.validate(path, text))
    except UmpleLspError as e:
        raise click.ClickException(e.message) from e

    for diagnostic in diagnostics:
        click.echo(format_diagnostic(path, diagnostic))

    errors = sum(1 for d in diagnostics if d.severity is DiagnosticSeverity.ERROR)
    warnings = len(diagnostics) - errors
    if errors:
        status(f"{errors} error(s), {warnings} warning(s)", style="error")
        raise SystemExit(1)
    if warnings:
        status(f"{warnings} warning(s)", style="warning")
    else:
        status("No problems", style="success")
