"""Process-wide symbol state, held in injectable objects.

Containers are identified by *name*, not by file: an Umple class may be
split across several files and all fragments merge into one container. Two
unrelated entities that share a name in unrelated files merge as well; the
language allows the former and the index cannot tell it apart from the latter.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from umple_lsp.index.models import SymbolEntry, SymbolKind


def _matches(
    symbol: SymbolEntry,
    kinds: frozenset[SymbolKind] | None,
    name: str | None,
) -> bool:
    if kinds is not None and symbol.kind not in kinds:
        return False
    return name is None or symbol.name == name


class ContainerRegistry:
    """Container name -> symbols contributed by any file."""

    def __init__(self) -> None:
        self._by_container: dict[str, list[SymbolEntry]] = {}

    def insert(self, file: str, symbols: Iterable[SymbolEntry]) -> None:
        for symbol in symbols:
            if symbol.container is None or symbol.file != file:
                continue
            self._by_container.setdefault(symbol.container, []).append(symbol)

    def retract(self, file: str) -> None:
        """Drop every symbol contributed by *file*, deleting emptied buckets."""
        for container in list(self._by_container):
            kept = [s for s in self._by_container[container] if s.file != file]
            if kept:
                self._by_container[container] = kept
            else:
                del self._by_container[container]

    def clear(self) -> None:
        self._by_container.clear()

    def members(
        self,
        container: str,
        kinds: frozenset[SymbolKind] | None = None,
        name: str | None = None,
    ) -> list[SymbolEntry]:
        return [s for s in self._by_container.get(container, ()) if _matches(s, kinds, name)]

    def iter_symbols(
        self,
        kinds: frozenset[SymbolKind] | None = None,
        name: str | None = None,
    ) -> Iterator[SymbolEntry]:
        for symbols in self._by_container.values():
            for symbol in symbols:
                if _matches(symbol, kinds, name):
                    yield symbol


class IsAGraph:
    """Inheritance edges, kept per file and merged on every change."""

    def __init__(self) -> None:
        self._by_file: dict[str, dict[str, list[str]]] = {}
        self._merged: dict[str, list[str]] = {}

    def insert(self, file: str, edges: dict[str, list[str]]) -> None:
        """Replace *file*'s edges with *edges*."""
        self._by_file[file] = {child: list(parents) for child, parents in edges.items()}
        self._rebuild()

    def retract(self, file: str) -> None:
        if self._by_file.pop(file, None) is not None:
            self._rebuild()

    def clear(self) -> None:
        self._by_file.clear()
        self._merged.clear()

    def _rebuild(self) -> None:
        merged: dict[str, list[str]] = {}
        for edges in self._by_file.values():
            for child, parents in edges.items():
                merged.setdefault(child, []).extend(parents)
        self._merged = merged

    def parents(self, name: str) -> list[str]:
        return list(self._merged.get(name, ()))

    def lineage(self, name: str) -> list[str]:
        """*name* followed by its ancestors, depth first in isA order.

        Each container appears once, so inheritance cycles terminate.
        """
        order: list[str] = []
        visited: set[str] = set()

        def visit(current: str) -> None:
            if current in visited:
                return
            visited.add(current)
            order.append(current)
            for parent in self.parents(current):
                visit(parent)

        visit(name)
        return order


def collect_inherited(
    registry: ContainerRegistry,
    graph: IsAGraph,
    container: str,
    kinds: frozenset[SymbolKind] | None = None,
    name: str | None = None,
) -> list[SymbolEntry]:
    """Members of *container* and of every ancestor, own members first.

    All matches are returned; a name defined both locally and in an ancestor
    yields both entries.
    """
    result: list[SymbolEntry] = []
    for current in graph.lineage(container):
        result.extend(registry.members(current, kinds, name))
    return result
