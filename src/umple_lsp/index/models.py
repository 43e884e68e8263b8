"""Value types for the Umple symbol index and completion engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from umple_lsp.config.constants import UMPLE_SUFFIX


class SymbolKind(str, Enum):
    """Kinds of named entities the index records."""

    CLASS = "class"
    INTERFACE = "interface"
    TRAIT = "trait"
    ENUM = "enum"
    ATTRIBUTE = "attribute"
    STATE = "state"
    STATEMACHINE = "statemachine"
    METHOD = "method"
    ASSOCIATION = "association"
    MIXSET = "mixset"
    REQUIREMENT = "requirement"
    TEMPLATE = "template"

    @classmethod
    def parse_list(cls, encoded: str) -> list[SymbolKind] | None:
        """Decode an underscore-joined kind list such as ``class_interface_trait``.

        Returns None if any part is not a known kind.
        """
        try:
            return [cls(part) for part in encoded.split("_")]
        except ValueError:
            return None


# Kinds whose container is the nearest class-like entity
CLASS_MEMBER_KINDS = frozenset({SymbolKind.ATTRIBUTE, SymbolKind.METHOD, SymbolKind.TEMPLATE})

# Kinds whose container is the root state machine
STATE_MACHINE_KINDS = frozenset({SymbolKind.STATE, SymbolKind.STATEMACHINE})


@dataclass(frozen=True, slots=True)
class SymbolEntry:
    """A named definition found in one file.

    Lines and columns are 0-based; columns count characters.
    """

    name: str
    kind: SymbolKind
    file: str
    line: int
    column: int
    end_line: int
    end_column: int
    container: str | None = None

    @property
    def start_pos(self) -> tuple[int, int]:
        return (self.line, self.column)

    @property
    def end_pos(self) -> tuple[int, int]:
        return (self.end_line, self.end_column)


@dataclass(frozen=True, slots=True)
class UseStatement:
    """A ``use`` declaration: either a file (``use A.ump;``) or a mixset name."""

    path: str
    line: int

    @property
    def is_file(self) -> bool:
        return self.path.endswith(UMPLE_SUFFIX)


@dataclass
class FileIndex:
    """What the index keeps per file between edits."""

    symbols: list[SymbolEntry]
    tree: Any
    content_hash: str


# =============================================================================
# Completion
# =============================================================================


class CompletionScopeKind(Enum):
    SYMBOLS = "symbols"
    SUPPRESS = "suppress"
    USE_PATH = "use_path"
    OWN_ATTRIBUTE = "own_attribute"


@dataclass(frozen=True, slots=True)
class CompletionScope:
    """Which symbols the cursor position admits.

    ``symbol_kinds`` is only populated for ``SYMBOLS``. A position that admits
    keywords only has no scope at all (``None``).
    """

    kind: CompletionScopeKind
    symbol_kinds: tuple[SymbolKind, ...] = ()

    @classmethod
    def symbols(cls, kinds: list[SymbolKind]) -> CompletionScope:
        return cls(CompletionScopeKind.SYMBOLS, tuple(kinds))

    @classmethod
    def suppress(cls) -> CompletionScope:
        return cls(CompletionScopeKind.SUPPRESS)

    @classmethod
    def use_path(cls) -> CompletionScope:
        return cls(CompletionScopeKind.USE_PATH)

    @classmethod
    def own_attribute(cls) -> CompletionScope:
        return cls(CompletionScopeKind.OWN_ATTRIBUTE)


@dataclass
class CompletionInfo:
    """Everything the completion handler needs about one cursor position."""

    keywords: list[str] = field(default_factory=list)
    operators: list[str] = field(default_factory=list)
    scope: CompletionScope | None = None
    is_definition_name: bool = False
    is_comment: bool = False
    prefix: str = ""
    enclosing_class: str | None = None
    enclosing_state_machine: str | None = None


@dataclass(frozen=True, slots=True)
class TokenInfo:
    """The identifier under the cursor and the kinds it may refer to."""

    word: str
    kinds: list[SymbolKind] | None
    enclosing_class: str | None = None
    enclosing_state_machine: str | None = None


class CompletionItemKind(Enum):
    KEYWORD = "keyword"
    OPERATOR = "operator"
    TYPE = "type"
    SYMBOL = "symbol"
    FILE = "file"


@dataclass(frozen=True, slots=True)
class CompletionItem:
    label: str
    kind: CompletionItemKind
    detail: str | None = None
    symbol_kind: SymbolKind | None = None
    replace_length: int = 0
    """Characters before the cursor the label replaces (0: plain insertion)."""
