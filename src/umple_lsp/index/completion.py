"""Completion context: what may legally follow the cursor.

Works on the tree of the unmodified document (no placeholder token is
inserted). The steps, in order:

1. Cursor inside a comment: nothing.
2. Partial word at the cursor becomes the prefix.
3. Cursor where a new name is being typed (after ``class``, after an
   attribute type, ...): nothing.
4. Keywords and operators from the parser's lookahead at the previous leaf.
5. Symbol kinds from the innermost ``completions.scm`` scope.
6. Enclosing class and root state machine for scoped lookups.
"""

from __future__ import annotations

import re
from typing import Any

from umple_lsp.config.constants import DEFINITION_KEYWORDS, OPERATOR_PREFIXES, STRUCTURAL_TOKENS
from umple_lsp.index.models import CompletionInfo, CompletionScope, SymbolKind
from umple_lsp.parsing.grammar import UmpleParser
from umple_lsp.parsing.nodes import (
    WORD_TYPES,
    char_to_byte_column,
    char_to_byte_offset,
    enclosing_class,
    field_name_in_parent,
    is_comment,
    last_leaf,
    line_offset,
    root_state_machine,
    self_and_ancestors,
)

SCOPE_PREFIX = "scope."

_IDENT_CHAR = re.compile(r"[A-Za-z0-9_]")
_WORD_CHAR = re.compile(r"[A-Za-z_]")


def _skip_back(content: str, offset: int) -> int:
    """Offset before the partial word at *offset* and the whitespace ahead of it."""
    pos = min(offset, len(content))
    while pos > 0 and _IDENT_CHAR.match(content[pos - 1]):
        pos -= 1
    while pos > 0 and content[pos - 1].isspace():
        pos -= 1
    return pos


def last_token_before_cursor(content: str, line: int, column: int) -> str | None:
    """The complete word before the one being typed.

    ``"class |"``, ``"class Fo|"`` and ``"class\\n  Fo|"`` all give ``"class"``.
    Punctuation before the cursor gives None.
    """
    pos = _skip_back(content, line_offset(content.split("\n"), line, column))
    if pos == 0:
        return None
    start = pos
    while start > 0 and _WORD_CHAR.match(content[start - 1]):
        start -= 1
    if start == pos:
        return None
    return content[start:pos]


def find_previous_leaf(tree: Any, content: str, line: int, column: int) -> Any:
    """Last non-comment leaf before the word being typed, or None at file start."""
    pos = _skip_back(content, line_offset(content.split("\n"), line, column))
    if pos == 0:
        return None
    byte = char_to_byte_offset(content, pos - 1)
    node = tree.root_node.descendant_for_byte_range(byte, byte)

    while node is not None and node.is_extra:
        current = node
        while current is not None and current.prev_sibling is None:
            current = current.parent
        if current is None:
            return None
        node = last_leaf(current.prev_sibling)

    return last_leaf(node) if node is not None else None


def is_attribute_name_position(previous_leaf: Any) -> bool:
    """True when *previous_leaf* ends the declared type of an attribute or method.

    ``Integer |`` inside a class: the next word is the new attribute's name.
    """
    for node in self_and_ancestors(previous_leaf):
        if node.type == "type_name":
            return field_name_in_parent(node) in ("type", "return_type")
    return False


def partition_lookahead(symbols: list[tuple[str, bool]]) -> tuple[list[str], list[str]]:
    """Split lookahead symbols into (keywords, operators).

    Named symbols and structural punctuation are dropped.
    """
    keywords: dict[str, None] = {}
    operators: dict[str, None] = {}
    for name, is_named in symbols:
        if is_named or name in STRUCTURAL_TOKENS:
            continue
        if len(name) > 1 and name.startswith(OPERATOR_PREFIXES):
            operators[name] = None
        elif _WORD_CHAR.match(name[:1]) and not name.startswith("_"):
            keywords[name] = None
    return list(keywords), list(operators)


def scope_from_tag(tag: str) -> CompletionScope | None:
    """Decode a ``completions.scm`` capture name (without the prefix)."""
    if tag == "suppress":
        return CompletionScope.suppress()
    if tag == "use_path":
        return CompletionScope.use_path()
    if tag == "own_attribute":
        return CompletionScope.own_attribute()
    if tag == "none":
        return None
    kinds = SymbolKind.parse_list(tag)
    return CompletionScope.symbols(kinds) if kinds else None


def resolve_completion_scope(
    parser: UmpleParser,
    tree: Any,
    point: tuple[int, int],
) -> CompletionScope | None:
    """Scope of the innermost captured node containing *point* (row, byte column).

    Both ends are inclusive: ``use Per|`` sits at the end boundary of the
    ``use_statement`` and still belongs to it.
    """
    best_tag: str | None = None
    best_size: int | None = None
    for capture in parser.captures("completions", tree.root_node):
        if not capture.name.startswith(SCOPE_PREFIX):
            continue
        node = capture.node
        if not (tuple(node.start_point) <= point <= tuple(node.end_point)):
            continue
        size = node.end_byte - node.start_byte
        if best_size is None or size < best_size:
            best_tag = capture.name[len(SCOPE_PREFIX) :]
            best_size = size
    if best_tag is None:
        return None
    return scope_from_tag(best_tag)


def _prefix(node: Any, line: int, byte_column: int) -> str:
    if node is None or node.type not in WORD_TYPES or byte_column == 0:
        return ""
    start_row, start_col = node.start_point
    start = start_col if start_row == line else 0
    return node.text[: max(0, byte_column - start)].decode("utf-8", errors="ignore")


def get_completion_info(
    parser: UmpleParser,
    content: str,
    line: int,
    column: int,
    tree: Any = None,
) -> CompletionInfo:
    """Completion context at (line, column), both 0-based, column in characters."""
    if tree is None:
        tree = parser.parse(content)
    root = tree.root_node
    lines = content.split("\n")
    line_text = lines[line] if line < len(lines) else ""
    byte_column = char_to_byte_column(line_text, column)

    # Half-open node ranges: step back one so a cursor at a token's end is inside it
    probe = (line, char_to_byte_column(line_text, max(0, column - 1)))
    node_at_cursor = root.descendant_for_point_range(probe, probe)
    if node_at_cursor is not None and is_comment(node_at_cursor):
        return CompletionInfo(is_comment=True)

    prefix = _prefix(node_at_cursor, line, byte_column)

    previous = find_previous_leaf(tree, content, line, column)
    if last_token_before_cursor(content, line, column) in DEFINITION_KEYWORDS or (
        previous is not None and is_attribute_name_position(previous)
    ):
        return CompletionInfo(is_definition_name=True)

    # No previous token: the cursor node's own state is narrower than state 0
    if previous is not None:
        state = previous.next_parse_state
    elif node_at_cursor is not None:
        state = node_at_cursor.parse_state
    else:
        state = 0
    keywords, operators = partition_lookahead(parser.lookahead(state))

    point = (line, byte_column)
    cursor_node = root.descendant_for_point_range(point, point)
    return CompletionInfo(
        keywords=keywords,
        operators=operators,
        scope=resolve_completion_scope(parser, tree, point),
        prefix=prefix,
        enclosing_class=enclosing_class(cursor_node) if cursor_node is not None else None,
        enclosing_state_machine=(
            root_state_machine(cursor_node) if cursor_node is not None else None
        ),
    )
