"""Symbol, inheritance and ``use`` extraction from parsed Umple trees.

Extraction is per node: a malformed construct (missing name, ERROR node in
the middle) only loses that construct, never the rest of the file.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from umple_lsp.index.models import (
    CLASS_MEMBER_KINDS,
    STATE_MACHINE_KINDS,
    SymbolEntry,
    SymbolKind,
    UseStatement,
)
from umple_lsp.parsing.grammar import Capture
from umple_lsp.parsing.nodes import (
    CLASS_LIKE_TYPES,
    byte_to_char_column,
    enclosing_class,
    name_of,
    node_text,
    root_state_machine,
)

DEFINITION_PREFIX = "definition."


def _walk(node: Any, stop_at: str) -> Iterator[Any]:
    """Pre-order walk that yields *stop_at* nodes without descending into them."""
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == stop_at:
            yield current
            continue
        stack.extend(reversed(current.children))


def _column(lines: list[str] | None, row: int, byte_column: int) -> int:
    if lines is None or row >= len(lines):
        return byte_column
    return byte_to_char_column(lines[row], byte_column)


def container_for(kind: SymbolKind, node: Any) -> str | None:
    """Container of a definition whose name node is *node*."""
    if kind in STATE_MACHINE_KINDS:
        return root_state_machine(node.parent) if node.parent is not None else None
    if kind in CLASS_MEMBER_KINDS:
        return enclosing_class(node.parent) if node.parent is not None else None
    return node_text(node) or None


def extract_symbols(
    path: str,
    captures: Iterable[Capture],
    content: str | None = None,
) -> list[SymbolEntry]:
    """Turn ``@definition.<kind>`` captures into symbol entries.

    Containers are found by walking up from each captured name node.
    *content* converts byte columns to character columns.
    """
    lines = content.split("\n") if content is not None else None
    symbols: list[SymbolEntry] = []
    for capture in captures:
        if not capture.name.startswith(DEFINITION_PREFIX):
            continue
        try:
            kind = SymbolKind(capture.name[len(DEFINITION_PREFIX) :])
        except ValueError:
            continue
        node = capture.node
        if node is None or getattr(node, "is_missing", False):
            continue
        name = node_text(node)
        if not name:
            continue
        start_row, start_col = node.start_point
        end_row, end_col = node.end_point
        symbols.append(
            SymbolEntry(
                name=name,
                kind=kind,
                file=path,
                line=start_row,
                column=_column(lines, start_row, start_col),
                end_line=end_row,
                end_column=_column(lines, end_row, end_col),
                container=container_for(kind, node),
            )
        )
    return symbols


def extract_isa(root: Any) -> dict[str, list[str]]:
    """Map each class-like name to the parents listed in its ``isA`` clauses."""
    edges: dict[str, list[str]] = {}
    for declaration in _walk(root, "isa_declaration"):
        owner = declaration.parent
        while owner is not None and owner.type not in CLASS_LIKE_TYPES:
            owner = owner.parent
        if owner is None:
            continue
        class_name = name_of(owner)
        if not class_name:
            continue
        for type_list in declaration.children:
            if type_list.type != "type_list":
                continue
            for type_name in type_list.children:
                if type_name.type != "type_name":
                    continue
                for qualified in type_name.children:
                    if qualified.type == "qualified_name" and node_text(qualified):
                        edges.setdefault(class_name, []).append(node_text(qualified))
    return edges


def extract_use_statements(root: Any) -> list[UseStatement]:
    """Every ``use`` declaration in document order."""
    statements: list[UseStatement] = []
    for statement in _walk(root, "use_statement"):
        path_node = statement.child_by_field_name("path")
        if path_node is None:
            continue
        path = node_text(path_node)
        if path:
            statements.append(UseStatement(path=path, line=statement.start_point[0]))
    return statements
