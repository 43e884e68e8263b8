"""Per-file parse cache feeding the container registry and isA graph.

Every content change replaces the file's contributions wholesale. Retraction
and re-insertion happen inside one synchronous call, so no lookup on the
event loop ever observes a file with its symbols missing.
"""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Any

from umple_lsp.core.logging import get_logger
from umple_lsp.index.extractor import extract_isa, extract_symbols, extract_use_statements
from umple_lsp.index.models import FileIndex, SymbolEntry, SymbolKind, UseStatement
from umple_lsp.index.registry import ContainerRegistry, IsAGraph, collect_inherited
from umple_lsp.parsing.grammar import UmpleParser

log = get_logger(__name__)


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def read_text(path: str | Path) -> str | None:
    """File contents, or None when the file cannot be read as UTF-8 text."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError, ValueError):
        return None


class SymbolIndex:
    """In-memory index of Umple definitions across files.

    The registry and graph are injectable so tests can inspect them or run
    several independent indexes side by side.
    """

    def __init__(
        self,
        parser: UmpleParser | None,
        *,
        registry: ContainerRegistry | None = None,
        isa_graph: IsAGraph | None = None,
    ) -> None:
        self._parser = parser
        self.registry = registry if registry is not None else ContainerRegistry()
        self.isa_graph = isa_graph if isa_graph is not None else IsAGraph()
        self._files: dict[str, FileIndex] = {}

    @property
    def parser(self) -> UmpleParser | None:
        return self._parser

    def is_ready(self) -> bool:
        return self._parser is not None

    # =========================================================================
    # Maintenance
    # =========================================================================

    def index_file(self, path: str | Path, content: str | None = None) -> bool:
        """Index *path*, reading it from disk when *content* is None.

        Returns:
            True if the file was (re)indexed, False on a cache hit, an
            unreadable file, or when no grammar is loaded.
        """
        if self._parser is None:
            return False
        key = os.fspath(path)
        text = content if content is not None else read_text(key)
        if text is None:
            return False

        digest = content_hash(text)
        existing = self._files.get(key)
        if existing is not None and existing.content_hash == digest:
            return False

        tree = self._parser.parse(text)
        root = tree.root_node
        symbols = extract_symbols(key, self._parser.captures("definitions", root), text)
        edges = extract_isa(root)

        self.registry.retract(key)
        self.registry.insert(key, symbols)
        self.isa_graph.insert(key, edges)
        self._files[key] = FileIndex(symbols=symbols, tree=tree, content_hash=digest)
        log.debug("file_indexed", path=key, symbols=len(symbols), isa=len(edges))
        return True

    def remove_file(self, path: str | Path) -> None:
        key = os.fspath(path)
        self._files.pop(key, None)
        self.registry.retract(key)
        self.isa_graph.retract(key)

    def clear(self) -> None:
        self._files.clear()
        self.registry.clear()
        self.isa_graph.clear()

    # =========================================================================
    # Queries
    # =========================================================================

    def indexed_files(self) -> list[str]:
        return list(self._files)

    def file_symbols(self, path: str | Path) -> list[SymbolEntry]:
        entry = self._files.get(os.fspath(path))
        return list(entry.symbols) if entry is not None else []

    def get_symbols(
        self,
        *,
        container: str | None = None,
        kinds: SymbolKind | list[SymbolKind] | tuple[SymbolKind, ...] | None = None,
        name: str | None = None,
        inherited: bool = False,
    ) -> list[SymbolEntry]:
        """Unified symbol lookup.

        Args:
            container: Restrict to this container (class or root state machine).
            kinds: Restrict to these kinds.
            name: Restrict to this exact name.
            inherited: With *container*, also walk the isA chain.
        """
        kind_set: frozenset[SymbolKind] | None
        if kinds is None:
            kind_set = None
        elif isinstance(kinds, SymbolKind):
            kind_set = frozenset({kinds})
        else:
            kind_set = frozenset(kinds)

        if container is None:
            return list(self.registry.iter_symbols(kind_set, name))
        if inherited:
            return collect_inherited(self.registry, self.isa_graph, container, kind_set, name)
        return self.registry.members(container, kind_set, name)

    def tree_for(self, path: str | Path | None, content: str) -> Any:
        """Parse tree for *content*, reusing the cached tree when it matches."""
        if self._parser is None:
            return None
        if path is not None:
            entry = self._files.get(os.fspath(path))
            if entry is not None and entry.content_hash == content_hash(content):
                return entry.tree
        return self._parser.parse(content)

    def use_statements(self, path: str | Path | None, content: str) -> list[UseStatement]:
        """``use`` declarations of *content*; empty without a grammar."""
        tree = self.tree_for(path, content)
        if tree is None:
            return []
        return extract_use_statements(tree.root_node)
