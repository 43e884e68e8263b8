"""umple-lsp error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Grammar / parsing
- 8xxx: External validator

Parse problems are never errors (the grammar is error tolerant) and
cancellation is an expected outcome, so neither has a code here.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Grammar (3xxx)
    GRAMMAR_NOT_AVAILABLE = 3001
    GRAMMAR_QUERY_INVALID = 3002

    # Validator (8xxx)
    VALIDATOR_NOT_CONFIGURED = 8001
    VALIDATOR_JAR_NOT_FOUND = 8002
    VALIDATOR_JAVA_MISSING = 8003
    VALIDATOR_UNREACHABLE = 8004
    VALIDATOR_TIMEOUT = 8005


@dataclass(frozen=True, slots=True)
class UmpleLspError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'VALIDATOR_JAR_NOT_FOUND')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(UmpleLspError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class GrammarError(UmpleLspError):
    """The tree-sitter Umple grammar or one of its queries could not be loaded."""

    @classmethod
    def not_available(cls, source: str, reason: str) -> "GrammarError":
        return cls(
            code=ErrorCode.GRAMMAR_NOT_AVAILABLE,
            message=f"Umple grammar not available from {source}: {reason}",
            details={"source": source, "reason": reason},
        )

    @classmethod
    def invalid_query(cls, name: str, reason: str) -> "GrammarError":
        return cls(
            code=ErrorCode.GRAMMAR_QUERY_INVALID,
            message=f"Query '{name}' does not compile against the grammar: {reason}",
            details={"query": name, "reason": reason},
        )


class ValidatorError(UmpleLspError):
    """The external validator could not be run at all.

    Distinct from compile errors reported by the validator, which are the
    normal diagnostic payload.
    """

    @classmethod
    def not_configured(cls) -> "ValidatorError":
        return cls(
            code=ErrorCode.VALIDATOR_NOT_CONFIGURED,
            message=(
                "UmpleSync jar path not set. Configure initializationOptions.umpleSyncJarPath "
                "or UMPLESYNC_JAR_PATH."
            ),
        )

    @classmethod
    def jar_not_found(cls, path: str) -> "ValidatorError":
        return cls(
            code=ErrorCode.VALIDATOR_JAR_NOT_FOUND,
            message=f"UmpleSync jar not found at {path}. Update the path or UMPLESYNC_JAR_PATH.",
            details={"path": path},
        )

    @classmethod
    def java_missing(cls, java: str, reason: str) -> "ValidatorError":
        return cls(
            code=ErrorCode.VALIDATOR_JAVA_MISSING,
            message=f"Failed to start umplesync with '{java}': {reason}",
            details={"java": java, "reason": reason},
        )

    @classmethod
    def unreachable(cls, host: str, port: int, reason: str) -> "ValidatorError":
        return cls(
            code=ErrorCode.VALIDATOR_UNREACHABLE,
            message=f"Could not reach umplesync at {host}:{port}: {reason}",
            details={"host": host, "port": port, "reason": reason},
        )

    @classmethod
    def timeout(cls, host: str, port: int, timeout_sec: float) -> "ValidatorError":
        return cls(
            code=ErrorCode.VALIDATOR_TIMEOUT,
            message=f"umplesync at {host}:{port} did not answer within {timeout_sec}s",
            details={"host": host, "port": port, "timeout_sec": timeout_sec},
        )

