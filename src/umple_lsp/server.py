"""Umple language server.

Adapts ``UmpleLanguageService`` to LSP through pygls: keeps the document
store in step with the editor, schedules validation on every edit and
answers completion and definition requests.
"""

from __future__ import annotations

from importlib.metadata import version
from pathlib import Path
from typing import Any

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from umple_lsp.config.constants import SERVER_NAME, UMPLE_SUFFIX
from umple_lsp.config.loader import initialization_overrides, load_config
from umple_lsp.config.models import UmpleLspConfig
from umple_lsp.core.cancellation import CancellationToken
from umple_lsp.core.errors import ConfigError
from umple_lsp.core.logging import (
    clear_request_id,
    configure_logging,
    get_log_file_path,
    get_logger,
    set_request_id,
)
from umple_lsp.diagnostics.models import Diagnostic, DiagnosticSeverity
from umple_lsp.diagnostics.scheduler import ValidationScheduler
from umple_lsp.index.models import CompletionItem, CompletionItemKind, SymbolKind
from umple_lsp.service import UmpleLanguageService
from umple_lsp.workspace.documents import DocumentStore, path_to_uri, uri_to_path

log = get_logger(__name__)

_SEVERITY = {
    DiagnosticSeverity.ERROR: lsp.DiagnosticSeverity.Error,
    DiagnosticSeverity.WARNING: lsp.DiagnosticSeverity.Warning,
}

_SYMBOL_ITEM_KIND = {
    SymbolKind.CLASS: lsp.CompletionItemKind.Class,
    SymbolKind.INTERFACE: lsp.CompletionItemKind.Interface,
    SymbolKind.TRAIT: lsp.CompletionItemKind.Class,
    SymbolKind.ENUM: lsp.CompletionItemKind.Enum,
    SymbolKind.ATTRIBUTE: lsp.CompletionItemKind.Field,
    SymbolKind.METHOD: lsp.CompletionItemKind.Method,
    SymbolKind.STATE: lsp.CompletionItemKind.EnumMember,
    SymbolKind.STATEMACHINE: lsp.CompletionItemKind.Module,
    SymbolKind.ASSOCIATION: lsp.CompletionItemKind.Reference,
    SymbolKind.MIXSET: lsp.CompletionItemKind.Module,
    SymbolKind.REQUIREMENT: lsp.CompletionItemKind.Text,
    SymbolKind.TEMPLATE: lsp.CompletionItemKind.Snippet,
}

_ITEM_KIND = {
    CompletionItemKind.KEYWORD: lsp.CompletionItemKind.Keyword,
    CompletionItemKind.OPERATOR: lsp.CompletionItemKind.Operator,
    CompletionItemKind.TYPE: lsp.CompletionItemKind.TypeParameter,
    CompletionItemKind.FILE: lsp.CompletionItemKind.File,
}


def _workspace_root(params: lsp.InitializeParams) -> Path | None:
    if params.workspace_folders:
        for folder in params.workspace_folders:
            root = uri_to_path(folder.uri)
            if root is not None:
                return root
    if params.root_uri:
        return uri_to_path(params.root_uri)
    return None


def _options_dict(options: Any) -> dict[str, Any] | None:
    if options is None:
        return None
    if isinstance(options, dict):
        return options
    return dict(vars(options)) if hasattr(options, "__dict__") else None


def to_lsp_diagnostic(diagnostic: Diagnostic) -> lsp.Diagnostic:
    return lsp.Diagnostic(
        range=lsp.Range(
            start=lsp.Position(line=diagnostic.line, character=diagnostic.character),
            end=lsp.Position(line=diagnostic.end_line, character=diagnostic.end_character),
        ),
        message=diagnostic.message,
        severity=_SEVERITY[diagnostic.severity],
        source=diagnostic.source,
    )


def to_lsp_completion(item: CompletionItem, position: lsp.Position) -> lsp.CompletionItem:
    if item.symbol_kind is not None:
        kind = _SYMBOL_ITEM_KIND[item.symbol_kind]
    else:
        kind = _ITEM_KIND.get(item.kind, lsp.CompletionItemKind.Text)
    text_edit = None
    if item.replace_length:
        text_edit = lsp.TextEdit(
            range=lsp.Range(
                start=lsp.Position(
                    line=position.line, character=max(0, position.character - item.replace_length)
                ),
                end=position,
            ),
            new_text=item.label,
        )
    return lsp.CompletionItem(label=item.label, kind=kind, detail=item.detail, text_edit=text_edit)


class UmpleLanguageServer(LanguageServer):
    """pygls server holding the per-session service, documents and scheduler."""

    def __init__(self) -> None:
        super().__init__(
            SERVER_NAME,
            version(SERVER_NAME),
            text_document_sync_kind=lsp.TextDocumentSyncKind.Incremental,
        )
        self.documents = DocumentStore()
        self.config = UmpleLspConfig()
        self.service = UmpleLanguageService(self.config, documents=self.documents)
        self.scheduler = self._make_scheduler()
        self.pending_warnings: list[str] = []

    def _make_scheduler(self) -> ValidationScheduler:
        return ValidationScheduler(
            run=self._run_validation,
            publish=self.publish,
            version_of=self.documents.version,
            dependents_of=self._dependent_uris,
            warn=self.warn,
            debounce_sec=self.config.validation.debounce_sec,
            dependent_debounce_sec=self.config.validation.dependent_debounce_sec,
        )

    def apply_config(self, config: UmpleLspConfig) -> None:
        """Rebuild the service for *config*; called once during initialize."""
        self.config = config
        configure_logging(config=config.logging)
        self.service = UmpleLanguageService.from_config(config, self.documents)
        self.scheduler = self._make_scheduler()
        if not self.service.index_ready:
            self.pending_warnings.append(
                "Umple grammar not available; completion and go-to-definition are disabled."
            )

    # =========================================================================
    # Scheduler callbacks
    # =========================================================================

    async def _run_validation(self, uri: str, token: CancellationToken) -> list[Diagnostic]:
        doc = self.documents.get(uri)
        if doc is None or doc.path is None:
            return []
        return await self.service.validate(doc.path, doc.text, token)

    def _dependent_uris(self, uri: str) -> list[str]:
        path = uri_to_path(uri)
        if path is None:
            return []
        return [doc.uri for doc in self.service.dependents_of(path)]

    def publish(self, uri: str, diagnostics: list[Diagnostic], doc_version: int | None) -> None:
        self.text_document_publish_diagnostics(
            lsp.PublishDiagnosticsParams(
                uri=uri,
                diagnostics=[to_lsp_diagnostic(d) for d in diagnostics],
                version=doc_version,
            )
        )

    def warn(self, message: str) -> None:
        log_path = get_log_file_path()
        if log_path is not None:
            message = f"{message} (details in {log_path})"
        self.window_show_message(
            lsp.ShowMessageParams(type=lsp.MessageType.Warning, message=message)
        )

    def flush_startup_warnings(self) -> None:
        warnings, self.pending_warnings = self.pending_warnings, []
        for message in warnings:
            self.warn(message)


def create_server() -> UmpleLanguageServer:
    """Language server with every Umple feature registered."""
    server = UmpleLanguageServer()

    @server.feature(lsp.INITIALIZE)
    def on_initialize(params: lsp.InitializeParams) -> None:
        root = _workspace_root(params)
        try:
            overrides = initialization_overrides(_options_dict(params.initialization_options))
            config = load_config(root, **overrides)
        except ConfigError as e:
            log.warning("config_invalid", **e.to_dict())
            server.pending_warnings.append(f"Invalid umple-lsp configuration: {e.message}")
            config = UmpleLspConfig()
        server.apply_config(config)
        log.info(
            "initialized",
            root=str(root) if root else None,
            grammar=server.service.index_ready,
            jar=config.validator.jar_path,
        )

    @server.feature(lsp.INITIALIZED)
    def on_initialized(params: lsp.InitializedParams) -> None:
        server.flush_startup_warnings()

    @server.feature(lsp.SHUTDOWN)
    async def on_shutdown(params: None) -> None:
        await server.scheduler.shutdown()

    @server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
    def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
        td = params.text_document
        doc = server.documents.open(td.uri, td.text, td.version)
        if doc.path is not None and doc.path.suffix == UMPLE_SUFFIX:
            server.service.index.index_file(str(doc.path), td.text)
        server.scheduler.schedule(td.uri)

    @server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
    def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
        uri = params.text_document.uri
        text = server.workspace.get_text_document(uri).source
        doc = server.documents.update(uri, text, params.text_document.version)
        if doc.path is not None:
            server.service.index.index_file(str(doc.path), text)
        server.scheduler.schedule(uri)
        server.scheduler.schedule_dependents(uri)

    @server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
    def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
        uri = params.text_document.uri
        doc = server.documents.close(uri)
        server.scheduler.close(uri)
        if doc is not None and doc.path is not None:
            server.service.document_closed(doc.path)
            server.scheduler.schedule_dependents(uri)

    @server.feature(
        lsp.TEXT_DOCUMENT_COMPLETION,
        lsp.CompletionOptions(trigger_characters=[".", "/", "-", ">", "<"]),
    )
    def completion(params: lsp.CompletionParams) -> lsp.CompletionList:
        set_request_id()
        try:
            doc = server.documents.get(params.text_document.uri)
            if doc is None or doc.path is None:
                return lsp.CompletionList(is_incomplete=False, items=[])
            pos = params.position
            items = server.service.completion_items(doc.path, doc.text, pos.line, pos.character)
            log.debug("completion", uri=doc.uri, line=pos.line, items=len(items))
            return lsp.CompletionList(
                is_incomplete=False, items=[to_lsp_completion(i, pos) for i in items]
            )
        finally:
            clear_request_id()

    @server.feature(lsp.TEXT_DOCUMENT_DEFINITION)
    def definition(params: lsp.DefinitionParams) -> list[lsp.Location]:
        set_request_id()
        try:
            doc = server.documents.get(params.text_document.uri)
            if doc is None or doc.path is None:
                return []
            pos = params.position
            target = server.service.use_file_at(doc.path, doc.text, pos.line, pos.character)
            if target is not None:
                origin = lsp.Position(line=0, character=0)
                origin_range = lsp.Range(start=origin, end=origin)
                return [lsp.Location(uri=path_to_uri(target), range=origin_range)]
            symbols = server.service.definition_at(doc.path, doc.text, pos.line, pos.character)
            log.debug("definition", uri=doc.uri, line=pos.line, found=len(symbols))
            return [
                lsp.Location(
                    uri=path_to_uri(sym.file),
                    range=lsp.Range(
                        start=lsp.Position(line=sym.line, character=sym.column),
                        end=lsp.Position(line=sym.end_line, character=sym.end_column),
                    ),
                )
                for sym in symbols
            ]
        finally:
            clear_request_id()

    return server
