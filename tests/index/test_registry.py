"""Tests for the container registry and isA graph."""

from umple_lsp.index.models import SymbolEntry, SymbolKind
from umple_lsp.index.registry import ContainerRegistry, IsAGraph, collect_inherited


def _sym(
    name: str,
    kind: SymbolKind,
    file: str,
    container: str | None,
    line: int = 0,
) -> SymbolEntry:
    return SymbolEntry(
        name=name,
        kind=kind,
        file=file,
        line=line,
        column=0,
        end_line=line,
        end_column=len(name),
        container=container,
    )


class TestContainerRegistry:
    def test_given_split_class_when_inserted_then_fragments_merge(self) -> None:
        """Fragments of one class from several files share a container."""
        # Given
        registry = ContainerRegistry()

        # When
        registry.insert("/a.ump", [_sym("name", SymbolKind.ATTRIBUTE, "/a.ump", "Person")])
        registry.insert("/b.ump", [_sym("age", SymbolKind.ATTRIBUTE, "/b.ump", "Person")])

        # Then
        assert sorted(s.name for s in registry.members("Person")) == ["age", "name"]

    def test_given_symbol_without_container_when_inserted_then_skipped(self) -> None:
        registry = ContainerRegistry()
        registry.insert("/a.ump", [_sym("x", SymbolKind.ATTRIBUTE, "/a.ump", None)])
        assert list(registry.iter_symbols()) == []

    def test_given_symbol_from_other_file_when_inserted_then_skipped(self) -> None:
        registry = ContainerRegistry()
        registry.insert("/a.ump", [_sym("x", SymbolKind.ATTRIBUTE, "/b.ump", "A")])
        assert registry.members("A") == []

    def test_given_file_when_retracted_then_only_its_symbols_go(self) -> None:
        # Given
        registry = ContainerRegistry()
        registry.insert("/a.ump", [_sym("name", SymbolKind.ATTRIBUTE, "/a.ump", "Person")])
        registry.insert(
            "/b.ump",
            [
                _sym("age", SymbolKind.ATTRIBUTE, "/b.ump", "Person"),
                _sym("Other", SymbolKind.CLASS, "/b.ump", "Other"),
            ],
        )

        # When
        registry.retract("/b.ump")

        # Then
        assert [s.name for s in registry.members("Person")] == ["name"]
        assert registry.members("Other") == []
        assert [s.name for s in registry.iter_symbols()] == ["name"]

    def test_members_filter_by_kind_and_name(self) -> None:
        registry = ContainerRegistry()
        registry.insert(
            "/a.ump",
            [
                _sym("go", SymbolKind.METHOD, "/a.ump", "A"),
                _sym("x", SymbolKind.ATTRIBUTE, "/a.ump", "A"),
                _sym("y", SymbolKind.ATTRIBUTE, "/a.ump", "A"),
            ],
        )

        attributes = registry.members("A", frozenset({SymbolKind.ATTRIBUTE}))
        assert [s.name for s in attributes] == ["x", "y"]
        assert [s.name for s in registry.members("A", None, "go")] == ["go"]
        assert registry.members("Missing") == []

    def test_iter_symbols_spans_containers(self) -> None:
        registry = ContainerRegistry()
        registry.insert(
            "/a.ump",
            [
                _sym("A", SymbolKind.CLASS, "/a.ump", "A"),
                _sym("B", SymbolKind.CLASS, "/a.ump", "B"),
                _sym("x", SymbolKind.ATTRIBUTE, "/a.ump", "A"),
            ],
        )

        classes = registry.iter_symbols(frozenset({SymbolKind.CLASS}))
        assert sorted(s.name for s in classes) == ["A", "B"]

    def test_clear(self) -> None:
        registry = ContainerRegistry()
        registry.insert("/a.ump", [_sym("A", SymbolKind.CLASS, "/a.ump", "A")])
        registry.clear()
        assert list(registry.iter_symbols()) == []


class TestIsAGraph:
    def test_edges_merge_across_files(self) -> None:
        graph = IsAGraph()
        graph.insert("/a.ump", {"Student": ["Person"]})
        graph.insert("/b.ump", {"Student": ["Named"]})

        assert graph.parents("Student") == ["Person", "Named"]

    def test_insert_replaces_file_edges(self) -> None:
        graph = IsAGraph()
        graph.insert("/a.ump", {"Student": ["Person"]})
        graph.insert("/a.ump", {"Teacher": ["Person"]})

        assert graph.parents("Student") == []
        assert graph.parents("Teacher") == ["Person"]

    def test_retract_drops_file_edges(self) -> None:
        graph = IsAGraph()
        graph.insert("/a.ump", {"Student": ["Person"]})
        graph.retract("/a.ump")
        graph.retract("/never-indexed.ump")

        assert graph.parents("Student") == []

    def test_lineage_is_depth_first_in_isa_order(self) -> None:
        graph = IsAGraph()
        graph.insert("/a.ump", {"C": ["B", "X"], "B": ["A"]})

        assert graph.lineage("C") == ["C", "B", "A", "X"]

    def test_given_cycle_when_lineage_then_terminates(self) -> None:
        """An isA cycle visits each class once."""
        # Given
        graph = IsAGraph()
        graph.insert("/a.ump", {"A": ["B"], "B": ["A"]})

        # When
        lineage = graph.lineage("A")

        # Then
        assert lineage == ["A", "B"]


class TestCollectInherited:
    def test_own_members_come_first(self) -> None:
        # Given
        registry = ContainerRegistry()
        registry.insert(
            "/a.ump",
            [
                _sym("name", SymbolKind.ATTRIBUTE, "/a.ump", "Person"),
                _sym("name", SymbolKind.ATTRIBUTE, "/a.ump", "Student", line=5),
                _sym("id", SymbolKind.ATTRIBUTE, "/a.ump", "Student", line=6),
            ],
        )
        graph = IsAGraph()
        graph.insert("/a.ump", {"Student": ["Person"]})

        # When
        found = collect_inherited(registry, graph, "Student", name="name")

        # Then
        assert [(s.container, s.line) for s in found] == [("Student", 5), ("Person", 0)]

    def test_unknown_parent_is_ignored(self) -> None:
        registry = ContainerRegistry()
        registry.insert("/a.ump", [_sym("x", SymbolKind.ATTRIBUTE, "/a.ump", "A")])
        graph = IsAGraph()
        graph.insert("/a.ump", {"A": ["Ghost"]})

        assert [s.name for s in collect_inherited(registry, graph, "A")] == ["x"]
