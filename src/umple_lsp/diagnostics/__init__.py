"""UmpleSync validation and diagnostic placement."""

from umple_lsp.diagnostics.models import Diagnostic, DiagnosticSeverity, RawResult, ValidatorOutput
from umple_lsp.diagnostics.remap import remap_diagnostics
from umple_lsp.diagnostics.scheduler import ValidationScheduler
from umple_lsp.diagnostics.umplesync import UmpleSyncClient, parse_results, split_output

__all__ = [
    "Diagnostic",
    "DiagnosticSeverity",
    "RawResult",
    "ValidatorOutput",
    "remap_diagnostics",
    "ValidationScheduler",
    "UmpleSyncClient",
    "parse_results",
    "split_output",
]
