"""Config module exports."""

from umple_lsp.config.loader import UmpleLspSettings, initialization_overrides, load_config
from umple_lsp.config.models import (
    GrammarConfig,
    LoggingConfig,
    UmpleLspConfig,
    ValidationConfig,
    ValidatorConfig,
)

__all__ = [
    "load_config",
    "initialization_overrides",
    "UmpleLspConfig",
    "UmpleLspSettings",
    "GrammarConfig",
    "LoggingConfig",
    "ValidationConfig",
    "ValidatorConfig",
]
