"""Tree-sitter parsing for Umple sources."""

from umple_lsp.parsing.grammar import QUERY_NAMES, Capture, UmpleParser, load_parser

__all__ = [
    "Capture",
    "QUERY_NAMES",
    "UmpleParser",
    "load_parser",
]
