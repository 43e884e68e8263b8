"""umple-lsp CLI."""

import click

from umple_lsp.cli.check import check_command
from umple_lsp.cli.serve import serve_command
from umple_lsp.cli.symbols import symbols_command
from umple_lsp.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="umple-lsp")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """umple-lsp - Language server and command-line checks for Umple models."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")


cli.add_command(serve_command, name="serve")
cli.add_command(check_command, name="check")
cli.add_command(symbols_command, name="symbols")


if __name__ == "__main__":
    cli()
