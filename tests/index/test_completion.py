"""Tests for completion context detection."""

import pytest
from fakes import (
    FakeParser,
    build,
    ident,
    klass,
    leaf,
    node,
    state,
    state_machine,
    transition,
    use,
)

from umple_lsp.index.completion import (
    find_previous_leaf,
    get_completion_info,
    is_attribute_name_position,
    last_token_before_cursor,
    partition_lookahead,
    resolve_completion_scope,
    scope_from_tag,
)
from umple_lsp.index.models import CompletionScope, CompletionScopeKind, SymbolKind
from umple_lsp.parsing.nodes import node_text


def _type_name(name: str, field: str | None = None):
    return node("type_name", node("qualified_name", ident(name, field=None)), field=field)


class TestLastTokenBeforeCursor:
    @pytest.mark.parametrize(
        ("content", "line", "column", "expected"),
        [
            ("class ", 0, 6, "class"),
            ("class Fo", 0, 8, "class"),
            ("class\n  Fo", 1, 4, "class"),
            ("a -> ", 0, 5, None),
            ("", 0, 0, None),
            ("Fo", 0, 2, None),
        ],
    )
    def test_word_before_partial_word(
        self, content: str, line: int, column: int, expected: str | None
    ) -> None:
        assert last_token_before_cursor(content, line, column) == expected


class TestFindPreviousLeaf:
    def test_skips_partial_word_and_whitespace(self) -> None:
        source, tree = build(
            node("class_definition", leaf("class"), ident("A"), leaf("{"), ident("Na", field=None))
        )
        previous = find_previous_leaf(tree, source, 0, len(source))
        assert node_text(previous) == "{"

    def test_skips_extra_comment(self) -> None:
        """Comments between the cursor and the previous token are walked past."""
        # Given
        source, tree = build(
            node(
                "class_definition",
                leaf("class"),
                ident("A"),
                leaf("{"),
                leaf("block_comment", "/*c*/", extra=True),
                leaf("}"),
            )
        )

        # When
        previous = find_previous_leaf(tree, source, 0, source.index("}"))

        # Then
        assert node_text(previous) == "{"

    def test_file_start_gives_none(self) -> None:
        source, tree = build(klass("A"))
        assert find_previous_leaf(tree, source, 0, 0) is None


class TestAttributeNamePosition:
    def test_after_declared_type(self) -> None:
        _, tree = build(
            klass(
                "A",
                node(
                    "attribute_declaration",
                    _type_name("Integer", field="type"),
                ),
            )
        )
        integer = next(n for n in tree.root_node.walk() if n.text == b"Integer" and not n.children)
        assert is_attribute_name_position(integer)

    def test_type_in_isa_is_not_name_position(self) -> None:
        _, tree = build(
            klass(
                "A",
                node(
                    "isa_declaration",
                    leaf("isA"),
                    node("type_list", _type_name("B")),
                ),
            )
        )
        parent = next(n for n in tree.root_node.walk() if n.text == b"B" and not n.children)
        assert not is_attribute_name_position(parent)


class TestPartitionLookahead:
    def test_splits_keywords_and_operators(self) -> None:
        # Given
        symbols = [
            ("isA", False),
            ("class_definition", True),
            ("}", False),
            ("->", False),
            ("--", False),
            ("_hidden", False),
            ("-", False),
            ("isA", False),
        ]

        # When
        keywords, operators = partition_lookahead(symbols)

        # Then
        assert keywords == ["isA"]
        assert operators == ["->", "--"]


class TestScopeFromTag:
    @pytest.mark.parametrize(
        ("tag", "expected"),
        [
            ("suppress", CompletionScope.suppress()),
            ("use_path", CompletionScope.use_path()),
            ("own_attribute", CompletionScope.own_attribute()),
            ("none", None),
            ("bogus_kind", None),
            ("state", CompletionScope.symbols([SymbolKind.STATE])),
            (
                "class_interface_trait",
                CompletionScope.symbols([SymbolKind.CLASS, SymbolKind.INTERFACE, SymbolKind.TRAIT]),
            ),
        ],
    )
    def test_decodes_tags(self, tag: str, expected: CompletionScope | None) -> None:
        assert scope_from_tag(tag) == expected


class TestResolveCompletionScope:
    def test_innermost_capture_wins(self) -> None:
        source, tree = build(
            klass("D", state_machine("sm", state("S", transition("e", "T"))))
        )
        point = (0, source.index("T"))

        scope = resolve_completion_scope(FakeParser(), tree, point)

        assert scope == CompletionScope.symbols([SymbolKind.STATE])

    def test_end_boundary_is_inclusive(self) -> None:
        source, tree = build(
            node("use_statement", leaf("use"), leaf("use_path", "Per", field="path"))
        )
        scope = resolve_completion_scope(FakeParser(), tree, (0, len(source)))
        assert scope is not None and scope.kind is CompletionScopeKind.USE_PATH

    def test_outside_every_capture(self) -> None:
        _, tree = build(use("A.ump"))
        assert resolve_completion_scope(FakeParser(rules={"completions": []}), tree, (0, 1)) is None


class TestGetCompletionInfo:
    def test_given_comment_when_completing_then_is_comment(self) -> None:
        """``// hello`` with the cursor inside the comment offers nothing."""
        # Given
        parser = FakeParser()
        source = parser.add(node("line_comment", leaf("//"), leaf("comment_text", "hello")))

        # When
        info = get_completion_info(parser, source, 0, 5)

        # Then
        assert info.is_comment
        assert info.keywords == []

    def test_given_definition_keyword_when_completing_then_is_definition_name(self) -> None:
        """``class |`` is where a new class name is typed."""
        parser = FakeParser()

        info = get_completion_info(parser, "class ", 0, 6)

        assert info.is_definition_name
        assert info.scope is None

    def test_given_attribute_type_when_completing_then_is_definition_name(self) -> None:
        # Given
        parser = FakeParser()
        source = parser.add(
            klass(
                "A",
                node(
                    "attribute_declaration",
                    _type_name("Integer", field="type"),
                ),
            )
        )

        # When
        info = get_completion_info(parser, source, 0, source.index("}"))

        # Then
        assert info.is_definition_name

    def test_given_class_body_when_completing_then_keywords_and_type_scope(self) -> None:
        # Given
        parser = FakeParser(lookahead_table={7: [("isA", False), ("->", False), ("}", False)]})
        source = parser.add(
            node("class_definition", leaf("class"), ident("A"), leaf("{", next_state=7), leaf("}"))
        )

        # When
        info = get_completion_info(parser, source, 0, source.index("}"))

        # Then
        assert info.keywords == ["isA"]
        assert info.operators == ["->"]
        assert info.scope == CompletionScope.symbols(
            [SymbolKind.CLASS, SymbolKind.INTERFACE, SymbolKind.TRAIT, SymbolKind.ENUM]
        )
        assert info.enclosing_class == "A"
        assert info.prefix == ""

    def test_given_partial_word_when_completing_then_prefix_set(self) -> None:
        parser = FakeParser()
        source = parser.add(
            node(
                "class_definition",
                leaf("class"),
                ident("A"),
                leaf("{"),
                ident("Na", field=None),
                leaf("}"),
            )
        )

        info = get_completion_info(parser, source, 0, source.index("Na") + 2)

        assert info.prefix == "Na"
        assert not info.is_definition_name

    def test_given_transition_target_when_completing_then_state_scope(self) -> None:
        # Given
        parser = FakeParser()
        source = parser.add(klass("D", state_machine("sm", state("S", transition("e", "T")))))

        # When
        info = get_completion_info(parser, source, 0, source.index("T") + 1)

        # Then
        assert info.scope == CompletionScope.symbols([SymbolKind.STATE])
        assert info.enclosing_state_machine == "sm"
        assert info.enclosing_class == "D"
        assert info.prefix == "T"

    def test_given_file_start_when_completing_then_uses_cursor_node_state(self) -> None:
        parser = FakeParser(lookahead_table={3: [("class", False), ("use", False)]})
        source = parser.add(leaf("identifier", "cl", state=3))

        info = get_completion_info(parser, source, 0, 2)

        assert info.keywords == ["class", "use"]
        assert info.prefix == "cl"
