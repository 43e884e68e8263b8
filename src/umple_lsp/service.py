"""Editor-independent entry points: completion, definition, validation.

``UmpleLanguageService`` owns the symbol index, the import graph and the
validator client, and reads unsaved text from a shared ``DocumentStore``.
The LSP server and the CLI are thin adapters over it.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from umple_lsp.config.constants import BUILTIN_TYPES, UMPLE_SUFFIX
from umple_lsp.config.models import UmpleLspConfig
from umple_lsp.core.cancellation import CancellationToken
from umple_lsp.core.logging import get_logger
from umple_lsp.diagnostics.models import Diagnostic
from umple_lsp.diagnostics.remap import remap_diagnostics
from umple_lsp.diagnostics.umplesync import UmpleSyncClient, parse_results
from umple_lsp.index.completion import get_completion_info
from umple_lsp.index.models import (
    CLASS_MEMBER_KINDS,
    CompletionInfo,
    CompletionItem,
    CompletionItemKind,
    CompletionScopeKind,
    SymbolEntry,
    SymbolKind,
)
from umple_lsp.index.resolver import is_position_in_comment, token_at_position, use_path_at_position
from umple_lsp.index.symbol_index import SymbolIndex, read_text
from umple_lsp.parsing.grammar import UmpleParser, load_parser
from umple_lsp.workspace.documents import DocumentStore, OpenDocument, normalize_path
from umple_lsp.workspace.imports import ImportGraph
from umple_lsp.workspace.shadow import create_shadow_workspace

log = get_logger(__name__)

_WORD_PREFIX = re.compile(r"[A-Za-z_][A-Za-z0-9_]*$")
_USE_PATH_PREFIX = re.compile(r"[A-Za-z_][A-Za-z0-9_./]*$")


def _line_prefix(text: str, line: int, column: int, pattern: re.Pattern[str]) -> str:
    lines = text.split("\n")
    if line >= len(lines):
        return ""
    match = pattern.search(lines[line][:column])
    return match.group(0) if match else ""


def _matches_prefix(label: str, prefix: str) -> bool:
    return not prefix or label.lower().startswith(prefix.lower())


class UmpleLanguageService:
    """Lookups and validation over a set of Umple files.

    Args:
        config: Validated configuration.
        parser: Loaded grammar. Without one, lookups return nothing and
            validation still runs, but imported-file diagnostics cannot be
            attributed to ``use`` lines.
        documents: Open editor documents; created empty when omitted.
        client: Validator client; built from ``config.validator`` when omitted.
    """

    def __init__(
        self,
        config: UmpleLspConfig,
        parser: UmpleParser | None = None,
        documents: DocumentStore | None = None,
        client: UmpleSyncClient | None = None,
    ) -> None:
        self.config = config
        self.documents = documents if documents is not None else DocumentStore()
        self.index = SymbolIndex(parser)
        self.imports = ImportGraph(self.index.use_statements, self.documents)
        self.client = client if client is not None else UmpleSyncClient(config.validator)

    @classmethod
    def from_config(
        cls,
        config: UmpleLspConfig,
        documents: DocumentStore | None = None,
    ) -> UmpleLanguageService:
        return cls(config, load_parser(config.grammar), documents)

    @property
    def index_ready(self) -> bool:
        return self.index.is_ready()

    # =========================================================================
    # Index maintenance
    # =========================================================================

    def ensure_imports_indexed(self, doc_path: str | os.PathLike[str], text: str) -> set[Path]:
        """Index the document and everything it reaches; return those paths.

        Open documents are indexed from their unsaved text, the rest from disk.
        """
        path = normalize_path(doc_path)
        reachable = self.imports.collect_reachable_files(path, text)
        reachable.add(path)
        for file in reachable:
            content = text if file == path else self.documents.text_for(file)
            self.index.index_file(os.fspath(file), content)
        return reachable

    def document_closed(self, doc_path: str | os.PathLike[str]) -> None:
        """Fall back to the saved copy of a closed document, or forget it."""
        key = os.fspath(normalize_path(doc_path))
        if read_text(key) is None:
            self.index.remove_file(key)
        else:
            self.index.index_file(key)

    def dependents_of(self, doc_path: str | os.PathLike[str]) -> list[OpenDocument]:
        """Other open documents whose imports reach *doc_path*."""
        changed = normalize_path(doc_path)
        return [
            doc
            for doc in self.documents
            if doc.path is not None
            and doc.path != changed
            and doc.path.suffix == UMPLE_SUFFIX
            and self.imports.imports_file(doc.path, doc.text, changed)
        ]

    # =========================================================================
    # Completion
    # =========================================================================

    def completion_at(
        self,
        doc_path: str | os.PathLike[str],
        text: str,
        line: int,
        column: int,
    ) -> CompletionInfo:
        """Completion context at (line, column), after indexing reachable files."""
        return self._completion_context(doc_path, text, line, column)[0]

    def _completion_context(
        self,
        doc_path: str | os.PathLike[str],
        text: str,
        line: int,
        column: int,
    ) -> tuple[CompletionInfo, set[Path]]:
        parser = self.index.parser
        if parser is None:
            return CompletionInfo(), set()
        path = normalize_path(doc_path)
        reachable = self.ensure_imports_indexed(path, text)
        tree = self.index.tree_for(os.fspath(path), text)
        return get_completion_info(parser, text, line, column, tree=tree), reachable

    def completion_items(
        self,
        doc_path: str | os.PathLike[str],
        text: str,
        line: int,
        column: int,
    ) -> list[CompletionItem]:
        """Filtered, de-duplicated completion items at (line, column)."""
        path = normalize_path(doc_path)
        info, reachable = self._completion_context(path, text, line, column)
        if info.is_comment or info.is_definition_name:
            return []
        scope = info.scope
        if scope is not None and scope.kind is CompletionScopeKind.SUPPRESS:
            return []
        if scope is not None and scope.kind is CompletionScopeKind.USE_PATH:
            return self.use_file_items(path, _line_prefix(text, line, column, _USE_PATH_PREFIX))

        prefix = _line_prefix(text, line, column, _WORD_PREFIX)
        candidates: list[CompletionItem] = [
            CompletionItem(label=kw, kind=CompletionItemKind.KEYWORD) for kw in info.keywords
        ]
        candidates.extend(
            CompletionItem(label=op, kind=CompletionItemKind.OPERATOR) for op in info.operators
        )

        if scope is not None:
            kinds = scope.symbol_kinds
            if SymbolKind.CLASS in kinds and SymbolKind.ENUM in kinds:
                candidates.extend(
                    CompletionItem(label=t, kind=CompletionItemKind.TYPE, detail="type")
                    for t in BUILTIN_TYPES
                )
            candidates.extend(
                CompletionItem(
                    label=sym.name,
                    kind=CompletionItemKind.SYMBOL,
                    detail=sym.kind.value,
                    symbol_kind=sym.kind,
                )
                for sym in self._scope_symbols(info)
                if normalize_path(sym.file) in reachable
            )

        items: list[CompletionItem] = []
        seen: set[str] = set()
        for item in candidates:
            if item.label in seen or not _matches_prefix(item.label, prefix):
                continue
            seen.add(item.label)
            items.append(item)
        return items

    def _scope_symbols(self, info: CompletionInfo) -> list[SymbolEntry]:
        scope = info.scope
        if scope is None:
            return []
        if scope.kind is CompletionScopeKind.OWN_ATTRIBUTE:
            if info.enclosing_class is None:
                return []
            return self.index.get_symbols(
                container=info.enclosing_class, kinds=SymbolKind.ATTRIBUTE
            )

        symbols: list[SymbolEntry] = []
        for kind in scope.symbol_kinds:
            if kind in CLASS_MEMBER_KINDS:
                if info.enclosing_class is not None:
                    symbols.extend(
                        self.index.get_symbols(
                            container=info.enclosing_class, kinds=kind, inherited=True
                        )
                    )
            elif kind is SymbolKind.STATE:
                if info.enclosing_state_machine is not None:
                    symbols.extend(
                        self.index.get_symbols(container=info.enclosing_state_machine, kinds=kind)
                    )
            else:
                symbols.extend(self.index.get_symbols(kinds=kind))
        return symbols

    def use_file_items(self, doc_path: str | os.PathLike[str], prefix: str) -> list[CompletionItem]:
        """``.ump`` files next to the document whose names start with *prefix*."""
        path = normalize_path(doc_path)
        try:
            names = sorted(entry.name for entry in os.scandir(path.parent) if entry.is_file())
        except OSError as e:
            log.debug("use_completion_listing_failed", directory=str(path.parent), error=str(e))
            return []
        return [
            CompletionItem(
                label=name,
                kind=CompletionItemKind.FILE,
                detail="Umple file",
                replace_length=len(prefix),
            )
            for name in names
            if name.endswith(UMPLE_SUFFIX) and name != path.name and _matches_prefix(name, prefix)
        ]

    # =========================================================================
    # Definition
    # =========================================================================

    def definition_at(
        self,
        doc_path: str | os.PathLike[str],
        text: str,
        line: int,
        column: int,
    ) -> list[SymbolEntry]:
        """Definitions of the identifier at (line, column) in reachable files.

        Member and state references are looked up in their enclosing class
        (with inheritance) or root state machine first; a global lookup by
        name and kind is the fallback.
        """
        parser = self.index.parser
        if parser is None:
            return []
        path = normalize_path(doc_path)
        tree = self.index.tree_for(os.fspath(path), text)
        if is_position_in_comment(tree, text, line, column):
            return []
        token = token_at_position(parser, tree, text, line, column)
        if token is None:
            return []

        reachable = self.ensure_imports_indexed(path, text)

        def visible(symbols: list[SymbolEntry]) -> list[SymbolEntry]:
            return [s for s in symbols if normalize_path(s.file) in reachable]

        scoped: list[SymbolEntry] = []
        kinds = token.kinds or []
        members = [k for k in kinds if k in CLASS_MEMBER_KINDS]
        if members and token.enclosing_class is not None:
            scoped.extend(
                self.index.get_symbols(
                    container=token.enclosing_class, kinds=members, name=token.word, inherited=True
                )
            )
        if SymbolKind.STATE in kinds and token.enclosing_state_machine is not None:
            scoped.extend(
                self.index.get_symbols(
                    container=token.enclosing_state_machine, kinds=SymbolKind.STATE, name=token.word
                )
            )
        found = visible(scoped)
        if found:
            return found
        return visible(self.index.get_symbols(kinds=token.kinds, name=token.word))

    def use_file_at(
        self,
        doc_path: str | os.PathLike[str],
        text: str,
        line: int,
        column: int,
    ) -> Path | None:
        """File named by the ``use X.ump`` path under the cursor."""
        path = normalize_path(doc_path)
        tree = self.index.tree_for(os.fspath(path), text)
        if tree is None:
            return None
        use_path = use_path_at_position(tree, text, line, max(0, column - 1))
        if use_path is None or not use_path.endswith(UMPLE_SUFFIX):
            return None
        return ImportGraph.resolve(use_path, path.parent)

    # =========================================================================
    # Validation
    # =========================================================================

    async def validate(
        self,
        doc_path: str | os.PathLike[str],
        text: str,
        token: CancellationToken | None = None,
    ) -> list[Diagnostic]:
        """Validate the live *text* of *doc_path* together with its imports.

        Raises:
            ValidatorError: The validator is not configured or cannot be run.
            OperationCancelled: *token* was cancelled.
        """
        self.client.ensure_configured()
        path = normalize_path(doc_path)
        reachable = self.imports.collect_reachable_files(path, text)
        import_map = self.imports.build_import_map(path, text)

        async with create_shadow_workspace(
            path, text, reachable, self.documents.text_for, token
        ) as shadow:
            assert shadow.target_file is not None
            output = await self.client.run(shadow.target_file, token)
            temp_filename = shadow.target_file.name

        results = parse_results(output.stderr)
        log.debug("validated", path=str(path), results=len(results), imports=len(import_map))
        return remap_diagnostics(results, text, temp_filename, import_map)
