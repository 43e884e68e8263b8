"""Core module exports."""

from umple_lsp.core.cancellation import CancellationToken, OperationCancelled, run_cancellable
from umple_lsp.core.errors import (
    ConfigError,
    ErrorCode,
    GrammarError,
    UmpleLspError,
    ValidatorError,
)
from umple_lsp.core.logging import (
    clear_request_id,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Errors
    "UmpleLspError",
    "ErrorCode",
    "ConfigError",
    "GrammarError",
    "ValidatorError",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "set_request_id",
    # Cancellation
    "CancellationToken",
    "OperationCancelled",
    "run_cancellable",
]
