"""Helpers over tree-sitter nodes of the Umple grammar.

Everything here only touches the public ``tree_sitter.Node`` surface
(``type``, ``parent``, ``children``, ``child_by_field_name``, ``text``,
points) so the same helpers run against lightweight stand-ins in tests.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

# Node types that own attributes, methods and templates
CLASS_LIKE_TYPES = frozenset(
    {
        "class_definition",
        "trait_definition",
        "interface_definition",
        "association_class_definition",
    }
)

# Node types that own states; the outermost one is the container
STATE_MACHINE_TYPES = frozenset(
    {
        "state_machine",
        "statemachine_definition",
        "referenced_statemachine",
    }
)

COMMENT_TYPES = frozenset({"line_comment", "block_comment"})

# Leaf types a cursor can sit on while naming something
WORD_TYPES = frozenset({"identifier", "use_path"})


def node_text(node: Any) -> str:
    text = node.text
    if text is None:
        return ""
    return text.decode("utf-8", errors="replace")


def self_and_ancestors(node: Any) -> Iterator[Any]:
    current = node
    while current is not None:
        yield current
        current = current.parent


def is_comment(node: Any) -> bool:
    """True when *node* is a comment or sits inside one."""
    return any(n.type in COMMENT_TYPES for n in self_and_ancestors(node))


def name_of(node: Any) -> str | None:
    """Text of the ``name`` field, or None when the field is missing or empty."""
    name = node.child_by_field_name("name")
    if name is None or getattr(name, "is_missing", False):
        return None
    return node_text(name) or None


def enclosing_class(node: Any) -> str | None:
    """Name of the nearest class-like node at or above *node*."""
    for n in self_and_ancestors(node):
        if n.type in CLASS_LIKE_TYPES:
            return name_of(n)
    return None


def root_state_machine(node: Any) -> str | None:
    """Name of the outermost state machine at or above *node*.

    Nested state machines are walked past so that every state, at any depth,
    shares the root machine as its container.
    """
    root: str | None = None
    for n in self_and_ancestors(node):
        if n.type in STATE_MACHINE_TYPES:
            root = name_of(n) or root
    return root


def field_name_in_parent(node: Any) -> str | None:
    """Field under which *node* is stored in its parent, if any."""
    parent = node.parent
    if parent is None:
        return None
    for index, child in enumerate(parent.children):
        if child == node:
            return parent.field_name_for_child(index)
    return None


def last_leaf(node: Any) -> Any:
    while node.children:
        node = node.children[-1]
    return node


# =============================================================================
# Positions
# =============================================================================
# tree-sitter points count UTF-8 bytes; editor positions count characters.


def char_to_byte_column(line_text: str, column: int) -> int:
    return len(line_text[:column].encode("utf-8"))


def byte_to_char_column(line_text: str, byte_column: int) -> int:
    return len(line_text.encode("utf-8")[:byte_column].decode("utf-8", errors="ignore"))


def char_to_byte_offset(content: str, offset: int) -> int:
    return len(content[:offset].encode("utf-8"))


def line_offset(lines: list[str], line: int, column: int) -> int:
    """Absolute character offset of (line, column), clamped to the text."""
    offset = sum(len(text) + 1 for text in lines[:line])
    if line < len(lines):
        offset += min(column, len(lines[line]))
    return offset
