"""Open documents, import reachability and shadow workspaces."""

from umple_lsp.workspace.documents import (
    DocumentStore,
    OpenDocument,
    normalize_path,
    path_to_uri,
    uri_to_path,
)
from umple_lsp.workspace.imports import ImportGraph
from umple_lsp.workspace.shadow import ShadowWorkspace, create_shadow_workspace

__all__ = [
    "DocumentStore",
    "OpenDocument",
    "normalize_path",
    "path_to_uri",
    "uri_to_path",
    "ImportGraph",
    "ShadowWorkspace",
    "create_shadow_workspace",
]
