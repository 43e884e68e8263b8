"""Temporary mirror of the files one validation run needs.

The validator reads files from disk, but the editor holds unsaved edits. A
shadow workspace re-roots the document and everything it reaches under a
fresh temporary directory: unsaved files are written, the rest are
symlinked (or copied where symlinks are not permitted). The directory is
removed on every exit path.

Usage::

    async with create_shadow_workspace(doc_path, text, reachable, overlay) as shadow:
        output = await client.run(shadow.target_file)
"""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path
from types import TracebackType

from umple_lsp.config.constants import SHADOW_DIR_PREFIX
from umple_lsp.core.cancellation import CancellationToken
from umple_lsp.core.logging import get_logger
from umple_lsp.workspace.documents import normalize_path

log = get_logger(__name__)

Overlay = Callable[[Path], str | None]


def with_trailing_blank_line(text: str) -> str:
    """*text* ending in exactly one blank line when it did not end in one already.

    The validator misreports end-of-file errors without it.
    """
    if text.endswith("\n\n"):
        return text
    if text.endswith("\n"):
        return text + "\n"
    return text + "\n\n"


def common_ancestor(paths: Iterable[Path]) -> Path:
    """Deepest directory containing every path in *paths*."""
    return Path(os.path.commonpath([str(p.parent) for p in paths]))


def _link_or_copy(source: Path, dest: Path) -> None:
    try:
        os.symlink(source, dest)
    except (OSError, NotImplementedError):
        shutil.copy2(source, dest)


def _write(dest: Path, text: str) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(text, encoding="utf-8")


def _materialize(source: Path, dest: Path, text: str | None) -> bool:
    if not source.exists():
        return False
    if text is not None:
        _write(dest, text)
        return True
    dest.parent.mkdir(parents=True, exist_ok=True)
    _link_or_copy(source, dest)
    return True


class ShadowWorkspace:
    """One validator run's private directory tree.

    ``root`` and ``target_file`` are set on entry and cleared by cleanup().
    """

    def __init__(
        self,
        document_path: Path,
        text: str,
        reachable: Iterable[Path],
        overlay: Overlay | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        self.document_path = normalize_path(document_path)
        self.text = text
        self.reachable = {normalize_path(p) for p in reachable}
        self._overlay = overlay
        self._token = token
        self.root: Path | None = None
        self.target_file: Path | None = None

    async def __aenter__(self) -> ShadowWorkspace:
        # Owned before the first suspension point so cancellation cannot leak it
        self.root = Path(tempfile.mkdtemp(prefix=SHADOW_DIR_PREFIX))
        try:
            self.target_file = await self._populate(self.root)
        except BaseException:
            await self.cleanup()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.cleanup()

    def shadow_path(self, path: Path, ancestor: Path) -> Path:
        """Where *path* lives inside the shadow root."""
        assert self.root is not None
        relative = normalize_path(path).relative_to(ancestor)
        if ".." in relative.parts:
            raise ValueError(f"{path} escapes {ancestor}")
        return self.root / relative

    async def _populate(self, root: Path) -> Path:
        paths = self.reachable | {self.document_path}
        try:
            ancestor = common_ancestor(paths)
        except ValueError:
            # Different drives: only what shares the document's drive can be mirrored
            ancestor = self.document_path.parent
            paths = {p for p in paths if p.is_relative_to(ancestor)} | {self.document_path}

        mirrored = 0
        for path in sorted(paths):
            if path == self.document_path:
                continue
            if self._token is not None:
                self._token.raise_if_cancelled()
            text = self._overlay(path) if self._overlay is not None else None
            if await asyncio.to_thread(_materialize, path, self.shadow_path(path, ancestor), text):
                mirrored += 1

        if self._token is not None:
            self._token.raise_if_cancelled()
        target = self.shadow_path(self.document_path, ancestor)
        await asyncio.to_thread(_write, target, with_trailing_blank_line(self.text))
        log.debug("shadow_created", root=str(root), files=mirrored + 1)
        return target

    async def cleanup(self) -> None:
        """Remove the shadow tree. Safe to call more than once."""
        root, self.root = self.root, None
        self.target_file = None
        if root is not None:
            await asyncio.to_thread(shutil.rmtree, root, True)


def create_shadow_workspace(
    document_path: str | os.PathLike[str],
    text: str,
    reachable: Iterable[Path],
    overlay: Overlay | None = None,
    token: CancellationToken | None = None,
) -> ShadowWorkspace:
    """Shadow workspace for *document_path*; materialized on ``async with`` entry."""
    return ShadowWorkspace(Path(document_path), text, reachable, overlay, token)
