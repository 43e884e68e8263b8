"""Cross-file Umple symbol index, reference resolution and completion context."""

from umple_lsp.index.completion import get_completion_info
from umple_lsp.index.models import (
    CompletionInfo,
    CompletionItem,
    CompletionItemKind,
    CompletionScope,
    CompletionScopeKind,
    SymbolEntry,
    SymbolKind,
    TokenInfo,
    UseStatement,
)
from umple_lsp.index.registry import ContainerRegistry, IsAGraph, collect_inherited
from umple_lsp.index.resolver import resolve_definition_kinds, token_at_position
from umple_lsp.index.symbol_index import SymbolIndex

__all__ = [
    # Models
    "SymbolKind",
    "SymbolEntry",
    "UseStatement",
    "CompletionInfo",
    "CompletionItem",
    "CompletionItemKind",
    "CompletionScope",
    "CompletionScopeKind",
    "TokenInfo",
    # State
    "ContainerRegistry",
    "IsAGraph",
    "collect_inherited",
    "SymbolIndex",
    # Queries
    "get_completion_info",
    "resolve_definition_kinds",
    "token_at_position",
]
