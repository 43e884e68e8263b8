"""umple-lsp serve command - run the language server."""

import click

from umple_lsp.core.logging import get_logger
from umple_lsp.server import create_server

log = get_logger(__name__)


@click.command()
@click.option("--tcp", is_flag=True, help="Listen on TCP instead of stdio")
@click.option("--host", default="127.0.0.1", show_default=True, help="TCP host")
@click.option("--port", default=2087, show_default=True, type=int, help="TCP port")
def serve_command(tcp: bool, host: str, port: int) -> None:
    """Run the Umple language server.

    Speaks LSP over stdio unless --tcp is given. Logs always go to stderr.
    """
    server = create_server()
    if tcp:
        log.info("server_starting", transport="tcp", host=host, port=port)
        server.start_tcp(host, port)
    else:
        log.info("server_starting", transport="stdio")
        server.start_io()
