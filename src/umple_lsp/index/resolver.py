"""Reference resolution: which kinds may the identifier under the cursor name?

``references.scm`` tags each reference position with the kinds that are
valid there (``@reference.class_interface_trait``). One identifier is often
covered by several patterns, e.g. a type inside ``isA`` matches both the
generic type pattern and the inheritance pattern; the most specific wins.
"""

from __future__ import annotations

from typing import Any

from umple_lsp.index.models import SymbolKind, TokenInfo
from umple_lsp.parsing.grammar import UmpleParser
from umple_lsp.parsing.nodes import (
    WORD_TYPES,
    char_to_byte_column,
    enclosing_class,
    is_comment,
    node_text,
    root_state_machine,
)

REFERENCE_PREFIX = "reference."


def resolve_definition_kinds(
    parser: UmpleParser,
    tree: Any,
    node: Any,
) -> list[SymbolKind] | None:
    """Kinds *node* may reference, or None when no reference pattern covers it.

    Ties are broken by (1) smallest captured byte span, then (2) fewest kinds.
    """
    best: tuple[int, int, list[SymbolKind]] | None = None
    for capture in parser.captures("references", tree.root_node):
        if not capture.name.startswith(REFERENCE_PREFIX):
            continue
        captured = capture.node
        if captured.start_byte > node.start_byte or captured.end_byte < node.end_byte:
            continue
        kinds = SymbolKind.parse_list(capture.name[len(REFERENCE_PREFIX) :])
        if kinds is None:
            continue
        rank = (captured.end_byte - captured.start_byte, len(kinds))
        if best is None or rank < best[:2]:
            best = (rank[0], rank[1], kinds)
    return best[2] if best is not None else None


def _node_at(tree: Any, content: str, line: int, column: int) -> Any:
    lines = content.split("\n")
    line_text = lines[line] if line < len(lines) else ""
    point = (line, char_to_byte_column(line_text, column))
    return tree.root_node.descendant_for_point_range(point, point)


def token_at_position(
    parser: UmpleParser,
    tree: Any,
    content: str,
    line: int,
    column: int,
) -> TokenInfo | None:
    """The identifier or ``use`` path at (line, column) with its reference kinds.

    A cursor just past the end of a word still resolves to that word.
    """
    node = _node_at(tree, content, line, column)
    if (node is None or node.type not in WORD_TYPES) and column > 0:
        node = _node_at(tree, content, line, column - 1)
    if node is None or node.type not in WORD_TYPES:
        return None
    return TokenInfo(
        word=node_text(node),
        kinds=resolve_definition_kinds(parser, tree, node),
        enclosing_class=enclosing_class(node),
        enclosing_state_machine=root_state_machine(node),
    )


def use_path_at_position(tree: Any, content: str, line: int, column: int) -> str | None:
    """Path of the ``use`` statement whose path covers (line, column)."""
    node = _node_at(tree, content, line, column)
    while node is not None:
        if node.type == "use_path":
            return node_text(node)
        if node.type == "use_statement":
            path = node.child_by_field_name("path")
            return node_text(path) if path is not None else None
        node = node.parent
    return None


def is_position_in_comment(tree: Any, content: str, line: int, column: int) -> bool:
    """True when the character before (line, column) lies in a comment."""
    node = _node_at(tree, content, line, max(0, column - 1))
    return node is not None and is_comment(node)
