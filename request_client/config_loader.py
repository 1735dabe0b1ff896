"""Config Loader - Loads client settings from YAML.

Settings files may reference environment variables as ${ENV_VAR}, which keeps
credentials out of the file itself.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml

from request_client.models import ClientSettings


class ConfigError(Exception):
    """Raised when configuration loading fails."""


_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def load_client_settings(config_path: Path) -> ClientSettings:
    """Load client settings from YAML with ${ENV_VAR} substitution."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e

    # An empty file means "all defaults"
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must be a YAML mapping")

    raw_config = _substitute_env_vars(raw_config)

    try:
        settings = ClientSettings.model_validate(raw_config)
    except Exception as e:
        raise ConfigError(f"Invalid config structure: {e}") from e

    if settings.ca_bundle:
        settings = settings.model_copy(
            update={"ca_bundle": str(resolve_relative_path(config_path, settings.ca_bundle))}
        )
    return settings


def resolve_relative_path(config_path: Path, ref: str) -> Path:
    """Resolve ref relative to config_path's directory. Absolute paths pass through."""
    path = Path(ref)
    if path.is_absolute():
        return path
    return (config_path.parent / path).resolve()


def _substitute_env_vars(data: Any) -> Any:
    """Recursively substitute ${ENV_VAR} patterns in strings within data."""
    if isinstance(data, str):
        return _substitute_string(data)
    elif isinstance(data, dict):
        return {k: _substitute_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    return data


def _substitute_string(s: str) -> str:
    """Substitute ${ENV_VAR} patterns. Raises ConfigError if env var is not set."""

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(f"Environment variable '{var_name}' is not set")
        return value

    return _ENV_VAR_PATTERN.sub(replacer, s)
