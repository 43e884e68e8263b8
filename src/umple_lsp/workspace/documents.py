"""Open editor documents, addressable by URI and by normalized path."""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from pygls.uris import from_fs_path, to_fs_path


def normalize_path(path: str | os.PathLike[str]) -> Path:
    """Absolute, lexically normalized path. Symlinks are left alone."""
    return Path(os.path.normpath(os.path.abspath(path)))


def uri_to_path(uri: str) -> Path | None:
    """Filesystem path of a ``file:`` URI; None for other schemes."""
    if not uri.startswith("file:"):
        return None
    fs_path = to_fs_path(uri)
    return normalize_path(fs_path) if fs_path else None


def path_to_uri(path: str | os.PathLike[str]) -> str:
    uri = from_fs_path(os.fspath(path))
    if uri is None:
        raise ValueError(f"Cannot build a URI for {path}")
    return uri


@dataclass
class OpenDocument:
    uri: str
    path: Path | None
    text: str
    version: int


class DocumentStore:
    """Live text of every open document.

    Unsaved editor content always wins over what is on disk, for indexing,
    reachability and the shadow workspace alike.
    """

    def __init__(self) -> None:
        self._by_uri: dict[str, OpenDocument] = {}
        self._by_path: dict[Path, OpenDocument] = {}

    def open(self, uri: str, text: str, version: int) -> OpenDocument:
        doc = OpenDocument(uri=uri, path=uri_to_path(uri), text=text, version=version)
        self._by_uri[uri] = doc
        if doc.path is not None:
            self._by_path[doc.path] = doc
        return doc

    def update(self, uri: str, text: str, version: int) -> OpenDocument:
        doc = self._by_uri.get(uri)
        if doc is None:
            return self.open(uri, text, version)
        doc.text = text
        doc.version = version
        return doc

    def close(self, uri: str) -> OpenDocument | None:
        doc = self._by_uri.pop(uri, None)
        if doc is not None and doc.path is not None:
            self._by_path.pop(doc.path, None)
        return doc

    def get(self, uri: str) -> OpenDocument | None:
        return self._by_uri.get(uri)

    def version(self, uri: str) -> int | None:
        doc = self._by_uri.get(uri)
        return doc.version if doc is not None else None

    def by_path(self, path: str | os.PathLike[str]) -> OpenDocument | None:
        return self._by_path.get(normalize_path(path))

    def text_for(self, path: str | os.PathLike[str]) -> str | None:
        """Unsaved content for *path*, or None when it is not open."""
        doc = self.by_path(path)
        return doc.text if doc is not None else None

    def __iter__(self) -> Iterator[OpenDocument]:
        return iter(list(self._by_uri.values()))

    def __len__(self) -> int:
        return len(self._by_uri)
