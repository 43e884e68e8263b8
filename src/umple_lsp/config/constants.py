"""Configuration constants.

Language and protocol facts that should NOT be user-configurable. For
configurable values, see models.py.
"""

# =============================================================================
# Files
# =============================================================================

UMPLE_SUFFIX = ".ump"
"""Extension of Umple source files; `use` paths ending in it name files."""

WORKSPACE_CONFIG_NAME = ".umple-lsp.yaml"
"""Per-workspace config file, looked up in the workspace root."""

SHADOW_DIR_PREFIX = "umple-shadow-"
"""Prefix of the temporary directories handed to the validator."""

DIAGNOSTIC_SOURCE = "umple"
"""`source` field of every published diagnostic."""

# =============================================================================
# Language vocabulary
# =============================================================================

DEFINITION_KEYWORDS = frozenset(
    {
        "class",
        "interface",
        "trait",
        "enum",
        "mixset",
        "req",
        "associationClass",
        "statemachine",
        "namespace",
        "queued",
        "pooled",
        "emit",
    }
)
"""Keywords after which the next word is always a new name."""

STRUCTURAL_TOKENS = frozenset(
    {"{", "}", "(", ")", "[", "]", ";", ",", ".", "<", ">", "=", "/", "[]", "*", "||"}
)
"""Punctuation never offered as a completion."""

OPERATOR_PREFIXES = ("<", ">", "-")
"""Multi-character literals starting with these are association/transition operators."""

BUILTIN_TYPES = ("String", "Integer", "Double", "Float", "Boolean", "Date", "Time", "void")
"""Primitive attribute types accepted by the Umple compiler."""

# =============================================================================
# Validator protocol
# =============================================================================

UMPLESYNC_ERROR_START = "ERROR!!"
UMPLESYNC_ERROR_END = "!!ERROR"
"""Markers delimiting the JSON error payload in UmpleSync output."""

UMPLESYNC_WARNING_SEVERITY = 2
"""Numeric severities above this are warnings; the rest are errors."""

# =============================================================================
# Server identity
# =============================================================================

SERVER_NAME = "umple-lsp"
"""Distribution and LSP server name."""
