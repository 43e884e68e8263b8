"""Place validator records onto the document the user is editing.

Records for the document itself highlight the reported line from its first
non-blank character to its end. Records for imported files are attached to
the ``use`` line that (directly or through other files) pulls the file in,
with the real origin named in the message. Records for files the document
does not import are dropped.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from umple_lsp.diagnostics.models import Diagnostic, RawResult

_LINE_BREAK = re.compile(r"\r?\n")


def _with_code(result: RawResult) -> str:
    code = result.code
    return f"{code}: {result.message}" if code else result.message


def _local(result: RawResult, lines: list[str]) -> Diagnostic:
    line = max(result.line - 1, 0)
    text = lines[line] if line < len(lines) else ""
    stripped = len(text) - len(text.lstrip())
    start = stripped if stripped < len(text) else 0
    return Diagnostic(
        line=line,
        character=start,
        end_line=line,
        end_character=len(text),
        severity=result.severity,
        message=_with_code(result),
    )


def _imported(result: RawResult, use_line: int, lines: list[str]) -> Diagnostic:
    text = lines[use_line] if use_line < len(lines) else ""
    return Diagnostic(
        line=use_line,
        character=0,
        end_line=use_line,
        end_character=len(text),
        severity=result.severity,
        message=f"In imported file ({result.filename}:{result.line}): {_with_code(result)}",
    )


def remap_diagnostics(
    results: Iterable[RawResult],
    document_text: str,
    temp_filename: str,
    import_map: Mapping[str, int],
) -> list[Diagnostic]:
    """Editor diagnostics for *results*.

    Args:
        results: Records parsed from the validator output.
        document_text: Live text of the validated document.
        temp_filename: Base name the document had in the shadow workspace.
        import_map: Imported base name -> ``use`` line in *document_text*.
    """
    lines = _LINE_BREAK.split(document_text)
    diagnostics: list[Diagnostic] = []
    for result in results:
        if result.filename and result.filename != temp_filename:
            use_line = import_map.get(result.filename)
            if use_line is not None:
                diagnostics.append(_imported(result, use_line, lines))
            continue
        diagnostics.append(_local(result, lines))
    return diagnostics
