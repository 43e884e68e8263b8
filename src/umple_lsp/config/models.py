"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config() (LSP initializationOptions)
2. Environment variables (UMPLE_LSP__SECTION__KEY)
3. Legacy environment variables (UMPLESYNC_JAR_PATH, UMPLESYNC_PORT, ...)
4. Workspace YAML (.umple-lsp.yaml)
5. Global YAML (~/.config/umple-lsp/config.yaml)
6. Built-in defaults (this file)

Environment Variable Format:
    UMPLE_LSP__<SECTION>__<KEY>=<VALUE>

Examples:
    UMPLE_LSP__LOGGING__LEVEL=DEBUG
    UMPLE_LSP__VALIDATOR__JAR_PATH=/opt/umple/umplesync.jar
    UMPLE_LSP__VALIDATION__DEBOUNCE_SEC=0.5
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    stdout is not accepted: in stdio mode it carries the LSP wire protocol.
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v == "stderr":
            return v
        if v == "stdout":
            raise ValueError("stdout is reserved for the language server protocol")
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        UMPLE_LSP__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every parse and validator round trip.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class GrammarConfig(BaseModel):
    """Where the compiled tree-sitter Umple grammar comes from.

    Env vars:
        UMPLE_LSP__GRAMMAR__MODULE: Importable binding exposing ``language()``
        UMPLE_LSP__GRAMMAR__LIBRARY_PATH: Compiled shared library (.so/.dylib/.dll)
        UMPLE_TREE_SITTER_LIBRARY: Legacy alias for LIBRARY_PATH
    """

    module: str = Field(
        default="tree_sitter_umple",
        description="Python binding module built from tree-sitter-umple.",
    )
    library_path: str | None = Field(
        default=None,
        description="Shared library to load instead of the binding module.",
    )
    symbol: str = Field(
        default="tree_sitter_umple",
        description="Exported language function inside library_path.",
    )


class ValidatorConfig(BaseModel):
    """UmpleSync validator connection.

    Env vars:
        UMPLE_LSP__VALIDATOR__JAR_PATH / UMPLESYNC_JAR_PATH
        UMPLE_LSP__VALIDATOR__HOST / UMPLESYNC_HOST
        UMPLE_LSP__VALIDATOR__PORT / UMPLESYNC_PORT
        UMPLE_LSP__VALIDATOR__TIMEOUT_SEC / UMPLESYNC_TIMEOUT_MS (milliseconds)
    """

    jar_path: str | None = Field(
        default=None,
        description="Path to umplesync.jar. Diagnostics are disabled without it.",
    )
    host: str = "localhost"
    port: int = Field(default=5555, description="Port of the UmpleSync socket server.")
    timeout_sec: float = Field(
        default=50.0,
        description="Upper bound for one validator round trip.",
    )
    java: str = Field(default="java", description="Java executable used to start the jar.")
    connect_retries: int = Field(
        default=5,
        description="Connection attempts after starting the server.",
    )
    retry_delay_sec: float = 0.15

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not (0 < v <= 65535):
            raise ValueError(f"Port must be 1-65535, got {v}")
        return v

    @field_validator("timeout_sec", "retry_delay_sec")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v

    @field_validator("connect_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Must be at least 1, got {v}")
        return v


class ValidationConfig(BaseModel):
    """Debounce windows for diagnostics.

    Env vars:
        UMPLE_LSP__VALIDATION__DEBOUNCE_SEC: Quiet period after an edit
        UMPLE_LSP__VALIDATION__DEPENDENT_DEBOUNCE_SEC: Quiet period before
            re-validating open documents that import the edited one
    """

    debounce_sec: float = Field(
        default=0.3,
        description="Quiet period after the latest edit before validating.",
    )
    dependent_debounce_sec: float = Field(
        default=0.5,
        description="Quiet period before re-validating importing documents.",
    )

    @field_validator("debounce_sec", "dependent_debounce_sec")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Must be non-negative, got {v}")
        return v


class UmpleLspConfig(BaseModel):
    """Root configuration model (for type hints)."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    grammar: GrammarConfig = Field(default_factory=GrammarConfig)
    validator: ValidatorConfig = Field(default_factory=ValidatorConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
