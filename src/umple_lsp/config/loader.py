"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority; the LSP initializationOptions land here)
2. Environment variables (UMPLE_LSP__SECTION__KEY)
3. Legacy environment variables shared with the other Umple editor plugins
4. Workspace config (<workspace>/.umple-lsp.yaml)
5. Global config (~/.config/umple-lsp/config.yaml)
6. Built-in defaults (lowest priority)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from umple_lsp.config.constants import WORKSPACE_CONFIG_NAME
from umple_lsp.config.models import (
    GrammarConfig,
    LoggingConfig,
    UmpleLspConfig,
    ValidationConfig,
    ValidatorConfig,
)
from umple_lsp.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/umple-lsp/config.yaml").expanduser()

# Legacy variable -> (section, key, converter)
_LEGACY_ENV: dict[str, tuple[str, str, Any]] = {
    "UMPLESYNC_JAR_PATH": ("validator", "jar_path", str),
    "UMPLESYNC_HOST": ("validator", "host", str),
    "UMPLESYNC_PORT": ("validator", "port", int),
    "UMPLESYNC_TIMEOUT_MS": ("validator", "timeout_sec", lambda v: int(v) / 1000),
    "UMPLE_TREE_SITTER_LIBRARY": ("grammar", "library_path", str),
}

# initializationOptions key -> (section, key, converter)
_INIT_OPTIONS: dict[str, tuple[str, str, Any]] = {
    "umpleSyncJarPath": ("validator", "jar_path", str),
    "umpleSyncHost": ("validator", "host", str),
    "umpleSyncPort": ("validator", "port", int),
    "umpleSyncTimeoutMs": ("validator", "timeout_sec", lambda v: int(v) / 1000),
    "grammarLibraryPath": ("grammar", "library_path", str),
}


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _convert_table(
    table: dict[str, tuple[str, str, Any]],
    values: dict[str, Any],
) -> dict[str, Any]:
    """Map flat legacy keys onto the nested section layout."""
    out: dict[str, Any] = {}
    for name, (section, key, convert) in table.items():
        raw = values.get(name)
        if raw is None or raw == "":
            continue
        try:
            converted = convert(raw)
        except (TypeError, ValueError) as e:
            raise ConfigError.invalid_value(name, raw, str(e)) from e
        out.setdefault(section, {})[key] = converted
    return out


def initialization_overrides(options: dict[str, Any] | None) -> dict[str, Any]:
    """Translate LSP ``initializationOptions`` into load_config kwargs."""
    if not options:
        return {}
    return _convert_table(_INIT_OPTIONS, options)


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


class _LegacyEnvSource(PydanticBaseSettingsSource):
    """Settings source for the UMPLESYNC_* variables."""

    def __init__(self, settings_cls: type[BaseSettings], environ: dict[str, str]) -> None:
        super().__init__(settings_cls)
        self._values = _convert_table(_LEGACY_ENV, environ)

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._values.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._values


def _make_settings_class(
    yaml_config: dict[str, Any],
    environ: dict[str, str],
) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML and legacy sources."""

    class UmpleLspSettings(BaseSettings):
        """Root config. Env vars: UMPLE_LSP__LOGGING__LEVEL, UMPLE_LSP__VALIDATOR__PORT, etc."""

        model_config = SettingsConfigDict(
            env_prefix="UMPLE_LSP__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        grammar: GrammarConfig = GrammarConfig()
        validator: ValidatorConfig = ValidatorConfig()
        validation: ValidationConfig = ValidationConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > legacy env > yaml files
            return (
                init_settings,
                env_settings,
                _LegacyEnvSource(settings_cls, environ),
                _YamlSource(settings_cls, yaml_config),
            )

    return UmpleLspSettings


UmpleLspSettings = _make_settings_class({}, {})


def load_config(workspace_root: Path | None = None, **kwargs: Any) -> UmpleLspConfig:
    """Load config: defaults < global yaml < workspace yaml < legacy env < env < kwargs.

    Args:
        workspace_root: Directory holding ``.umple-lsp.yaml``.
                        Defaults to current working directory.
        **kwargs: Section overrides, e.g. ``validator={"jar_path": ...}``.

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    workspace_root = workspace_root or Path.cwd()

    yaml_config = _load_yaml(GLOBAL_CONFIG_PATH)
    workspace_config = _load_yaml(workspace_root / WORKSPACE_CONFIG_NAME)
    if workspace_config:
        yaml_config = _deep_merge(yaml_config, workspace_config)

    settings_cls = _make_settings_class(yaml_config, dict(os.environ))
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return UmpleLspConfig.model_validate(settings.model_dump())
