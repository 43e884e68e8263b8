"""Reachability over ``use X.ump;`` declarations.

Only file-valued ``use`` paths (ending in ``.ump``) are edges; ``use Name;``
refers to a mixset and is skipped. Relative paths resolve against the
directory of the file that contains the ``use``. Reachable sets are computed
per request and never cached, since the files they depend on keep changing.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

from umple_lsp.index.models import UseStatement
from umple_lsp.index.symbol_index import read_text
from umple_lsp.workspace.documents import DocumentStore, normalize_path

UseExtractor = Callable[[Path, str], list[UseStatement]]


class ImportGraph:
    """Walks ``use`` edges, preferring open-document text over disk."""

    def __init__(
        self, use_statements: UseExtractor, documents: DocumentStore | None = None
    ) -> None:
        self._use_statements = use_statements
        self._documents = documents

    def read(self, path: Path) -> str | None:
        if self._documents is not None:
            text = self._documents.text_for(path)
            if text is not None:
                return text
        return read_text(path)

    @staticmethod
    def resolve(use_path: str, directory: Path) -> Path:
        if os.path.isabs(use_path):
            return normalize_path(use_path)
        return normalize_path(directory / use_path)

    def _file_targets(
        self, path: Path, content: str, directory: Path
    ) -> list[tuple[UseStatement, Path]]:
        return [
            (use, self.resolve(use.path, directory))
            for use in self._use_statements(path, content)
            if use.is_file
        ]

    def collect_reachable_files(
        self,
        path: str | os.PathLike[str],
        content: str,
        directory: str | os.PathLike[str] | None = None,
    ) -> set[Path]:
        """Transitive closure of file imports starting from *content*.

        The starting file is only part of the result if an import cycle leads
        back to it. Targets that cannot be read stay in the set but are not
        expanded.
        """
        start = normalize_path(path)
        base = normalize_path(directory) if directory is not None else start.parent
        visited: set[Path] = set()
        pending: list[tuple[Path, str, Path]] = [(start, content, base)]
        while pending:
            current, text, current_dir = pending.pop()
            for _, target in self._file_targets(current, text, current_dir):
                if target in visited:
                    continue
                visited.add(target)
                target_text = self.read(target)
                if target_text is not None:
                    pending.append((target, target_text, target.parent))
        return visited

    def _reachable_names(self, path: Path, names: set[str], visited: set[Path]) -> None:
        if path in visited:
            return
        visited.add(path)
        text = self.read(path)
        if text is None:
            return
        for _, target in self._file_targets(path, text, path.parent):
            names.add(target.name)
            self._reachable_names(target, names, visited)

    def build_import_map(self, path: str | os.PathLike[str], content: str) -> dict[str, int]:
        """Imported filename -> line of the ``use`` in *content* that pulls it in.

        A file imported directly maps to its own ``use`` line. A file only
        reached through other files maps to the line of the first direct
        import that reaches it. Filenames are base names because that is
        what the validator reports.
        """
        start = normalize_path(path)
        direct: dict[str, int] = {}
        reaches: dict[str, set[str]] = {}
        for use, target in self._file_targets(start, content, start.parent):
            direct[target.name] = use.line
            names = {target.name}
            self._reachable_names(target, names, set())
            reaches[target.name] = names

        import_map = dict(direct)
        for name, names in reaches.items():
            for reached in names:
                import_map.setdefault(reached, direct[name])
        return import_map

    def imports_file(
        self,
        path: str | os.PathLike[str],
        content: str,
        target: str | os.PathLike[str],
    ) -> bool:
        """True when *content* reaches *target* directly or transitively."""
        return normalize_path(target) in self.collect_reachable_files(path, content)
