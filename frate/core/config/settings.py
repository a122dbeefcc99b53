"""
User settings — where the cache lives and where the registry is.

Resolved in precedence order:
    explicit argument  >  FRATE_* env vars  >  user config.yml  >  defaults

The cache root is a plain value handed to every component; nothing
reads it from global state.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from frate.core.errors import ConfigError
from frate.core.services.tool_install.registry.client import DEFAULT_REGISTRY_URL

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.yml"
DEFAULT_TIMEOUT = 30.0

# Env var → settings field
_ENV_VARS = {
    "FRATE_HOME": "cache_root",
    "FRATE_REGISTRY_URL": "registry_url",
    "FRATE_TIMEOUT": "timeout",
    "FRATE_PLATFORM": "platform",
}


def default_cache_root() -> Path:
    """Platform-conventional user cache directory for frate."""
    home = Path.home()
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA")
        return (Path(base) if base else home / "AppData" / "Local") / "frate" / "cache"
    if sys.platform == "darwin":
        return home / "Library" / "Caches" / "frate"
    xdg = os.environ.get("XDG_CACHE_HOME")
    return (Path(xdg) if xdg else home / ".cache") / "frate"


def default_config_path() -> Path:
    """User config file location (``FRATE_CONFIG`` overrides)."""
    override = os.environ.get("FRATE_CONFIG")
    if override:
        return Path(override)
    if sys.platform == "win32":
        base = os.environ.get("APPDATA")
        root = Path(base) if base else Path.home() / "AppData" / "Roaming"
    else:
        xdg = os.environ.get("XDG_CONFIG_HOME")
        root = Path(xdg) if xdg else Path.home() / ".config"
    return root / "frate" / CONFIG_FILE


class Settings(BaseModel):
    """Resolved user-level settings."""

    cache_root: Path
    registry_url: str = DEFAULT_REGISTRY_URL
    timeout: float = DEFAULT_TIMEOUT
    platform: str | None = None


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    logger.debug("Loaded user config from %s", path)
    return data


def load_settings(
    config_path: Path | None = None,
    **overrides: Any,
) -> Settings:
    """Resolve settings from overrides, environment, config file, defaults.

    Args:
        config_path: Explicit config file (default: user config dir).
        **overrides: Field values that win over everything else; ``None``
            values are ignored.

    Raises:
        ConfigError: If the config file or a value is invalid.
    """
    values: dict[str, Any] = {"cache_root": default_cache_root()}
    values.update(_read_config_file(config_path or default_config_path()))

    for env_var, field_name in _ENV_VARS.items():
        raw = os.environ.get(env_var)
        if raw:
            values[field_name] = raw

    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        settings = Settings.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    settings.cache_root = settings.cache_root.expanduser()
    logger.debug("Settings: cache_root=%s registry=%s", settings.cache_root, settings.registry_url)
    return settings
