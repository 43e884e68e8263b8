"""Tree-sitter boundary for the Umple grammar.

The compiled grammar is not on PyPI. It is loaded either from an importable
binding module (``tree_sitter_umple``, built from ``tree-sitter-umple/``)
or from a shared library exporting ``tree_sitter_umple()``. Queries ship as
``.scm`` files next to this module.

Usage::

    parser = UmpleParser.from_config(config.grammar)
    tree = parser.parse(content)
    for capture in parser.captures("definitions", tree.root_node):
        ...
"""

from __future__ import annotations

import ctypes
import importlib
from dataclasses import dataclass
from importlib import resources
from typing import TYPE_CHECKING, Any

import tree_sitter
from tree_sitter import Language, Parser, Query, QueryCursor

from umple_lsp.core.errors import GrammarError
from umple_lsp.core.logging import get_logger

if TYPE_CHECKING:
    from umple_lsp.config.models import GrammarConfig

log = get_logger(__name__)

QUERY_NAMES = ("definitions", "references", "completions")

_CAPSULE_NAME = b"tree_sitter.Language"


@dataclass(frozen=True, slots=True)
class Capture:
    """One query capture: the tag name and the captured node."""

    name: str
    node: Any


def _load_from_module(module_name: str) -> Language:
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise GrammarError.not_available(module_name, str(e)) from e
    language_fn = getattr(module, "language", None)
    if language_fn is None:
        raise GrammarError.not_available(module_name, "module has no language() function")
    return Language(language_fn())


def _load_from_library(path: str, symbol: str) -> Language:
    try:
        library = ctypes.cdll.LoadLibrary(path)
        language_fn = getattr(library, symbol)
    except (OSError, AttributeError) as e:
        raise GrammarError.not_available(path, str(e)) from e
    language_fn.restype = ctypes.c_void_p
    pointer = language_fn()

    capsule_new = ctypes.pythonapi.PyCapsule_New
    capsule_new.restype = ctypes.py_object
    capsule_new.argtypes = (ctypes.c_void_p, ctypes.c_char_p, ctypes.c_void_p)
    return Language(capsule_new(pointer, _CAPSULE_NAME, None))


def _read_query_source(name: str) -> str:
    return (resources.files("umple_lsp.parsing") / "queries" / f"{name}.scm").read_text(
        encoding="utf-8"
    )


class UmpleParser:
    """Parser plus compiled queries for one loaded Umple grammar."""

    def __init__(self, language: Language) -> None:
        self._language = language
        self._parser = Parser(language)
        self._queries: dict[str, Query] = {}
        for name in QUERY_NAMES:
            self._queries[name] = self._compile(name)

    @classmethod
    def from_config(cls, config: GrammarConfig) -> UmpleParser:
        """Load the grammar named by *config*.

        Raises:
            GrammarError: The grammar cannot be loaded or a query does not
                compile against it.
        """
        if config.library_path:
            language = _load_from_library(config.library_path, config.symbol)
            source = config.library_path
        else:
            language = _load_from_module(config.module)
            source = config.module
        parser = cls(language)
        log.info("grammar_loaded", source=source)
        return parser

    @property
    def language(self) -> Language:
        return self._language

    def _compile(self, name: str) -> Query:
        try:
            return Query(self._language, _read_query_source(name))
        except (tree_sitter.QueryError, ValueError) as e:
            raise GrammarError.invalid_query(name, str(e)) from e

    def parse(self, content: str) -> tree_sitter.Tree:
        """Parse *content*. Never fails: malformed input yields ERROR nodes."""
        return self._parser.parse(content.encode("utf-8"))

    def captures(self, query_name: str, node: Any) -> list[Capture]:
        """Run a named query under *node*, returning captures in document order."""
        cursor = QueryCursor(self._queries[query_name])
        found = [
            Capture(name, captured)
            for name, nodes in cursor.captures(node).items()
            for captured in nodes
        ]
        found.sort(key=lambda c: (c.node.start_byte, -c.node.end_byte))
        return found

    def lookahead(self, state: int) -> list[tuple[str, bool]]:
        """Visible grammar symbols valid in parse *state* as ``(name, is_named)`` pairs.

        Hidden symbols (end of input, auxiliary rules) are left out.
        """
        iterator = self._language.lookahead_iterator(state)
        if iterator is None:
            return []
        return [
            (name, self._language.node_kind_is_named(symbol))
            for symbol, name in iterator
            if self._language.node_kind_is_visible(symbol)
        ]


def load_parser(config: GrammarConfig) -> UmpleParser | None:
    """Load the grammar, logging and returning None when it is unavailable."""
    try:
        return UmpleParser.from_config(config)
    except GrammarError as e:
        log.warning("grammar_unavailable", error=e.error_name, message=e.message)
        return None
