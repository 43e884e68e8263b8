"""Validator records and editor-facing diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from umple_lsp.config.constants import DIAGNOSTIC_SOURCE, UMPLESYNC_WARNING_SEVERITY


class DiagnosticSeverity(IntEnum):
    """Values match the LSP severity numbering."""

    ERROR = 1
    WARNING = 2

    @classmethod
    def from_validator(cls, value: int) -> DiagnosticSeverity:
        """Validator severities above 2 are warnings, the rest are errors."""
        return cls.WARNING if value > UMPLESYNC_WARNING_SEVERITY else cls.ERROR

    @property
    def code_prefix(self) -> str:
        return "W" if self is DiagnosticSeverity.WARNING else "E"


@dataclass(frozen=True, slots=True)
class RawResult:
    """One entry of the validator's ``results`` list.

    ``line`` is 1-based as reported. ``filename`` is a base name, or empty
    when the validator did not say which file the record belongs to.
    """

    filename: str
    line: int
    severity: DiagnosticSeverity
    error_code: str | None
    message: str

    @property
    def code(self) -> str | None:
        """Error code with its severity letter, e.g. ``E1007``."""
        if not self.error_code:
            return None
        return f"{self.severity.code_prefix}{self.error_code}"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A diagnostic positioned on the editor document (0-based)."""

    line: int
    character: int
    end_line: int
    end_character: int
    severity: DiagnosticSeverity
    message: str
    source: str = DIAGNOSTIC_SOURCE


@dataclass(frozen=True, slots=True)
class ValidatorOutput:
    stdout: str
    stderr: str
