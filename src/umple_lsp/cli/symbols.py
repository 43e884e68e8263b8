"""umple-lsp symbols command - list what the index finds."""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from umple_lsp.config.loader import load_config
from umple_lsp.core.errors import UmpleLspError
from umple_lsp.index.models import SymbolEntry
from umple_lsp.service import UmpleLanguageService
from umple_lsp.workspace.documents import normalize_path


def _make_symbol_table(symbols: list[SymbolEntry], base: Path) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1), pad_edge=False)
    table.add_column("name", style="cyan")
    table.add_column("kind", style="magenta")
    table.add_column("container", style="white")
    table.add_column("location", style="dim")
    for sym in symbols:
        file = Path(sym.file)
        shown = file.relative_to(base) if file.is_relative_to(base) else file
        table.add_row(sym.name, sym.kind.value, sym.container or "", f"{shown}:{sym.line + 1}")
    return table


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def symbols_command(file: Path) -> None:
    """Index FILE with everything it imports and print the symbols found."""
    path = normalize_path(file)
    try:
        config = load_config(path.parent)
    except UmpleLspError as e:
        raise click.ClickException(e.message) from e
    service = UmpleLanguageService.from_config(config)
    if not service.index_ready:
        raise click.ClickException(
            "Umple grammar not available. Install tree-sitter-umple or set "
            "UMPLE_TREE_SITTER_LIBRARY."
        )

    service.ensure_imports_indexed(path, path.read_text(encoding="utf-8"))
    symbols = [
        sym
        for file_path in sorted(service.index.indexed_files())
        for sym in service.index.file_symbols(file_path)
    ]
    Console().print(_make_symbol_table(symbols, path.parent))
