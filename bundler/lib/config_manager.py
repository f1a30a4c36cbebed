"""Configuration manager with hierarchy: environment → .env → defaults.

This module provides a single place to resolve configuration values:
1. Process environment (always takes precedence)
2. A .env file at the git root or working directory
3. Sensible hardcoded defaults (bundler works against a local MinIO)

Usage:
    from bundler.lib.config_manager import ConfigManager

    manager = ConfigManager()
    bucket = manager.get("SOURCE_BUCKET")

Callers build one manager at startup and hand it to the config
dataclasses; there is no module-level instance.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from bundler.lib.defaults import DEFAULTS, get_default, is_sensitive

logger = logging.getLogger(__name__)

MASK = "********"


def find_git_root(start_path: Optional[Path] = None) -> Path:
    """Walk up directory tree to find .git/ folder.

    Args:
        start_path: Starting directory (defaults to the working directory)

    Returns:
        Path to directory containing .git/ folder

    Raises:
        FileNotFoundError: If no .git/ directory found in any parent
    """
    current = start_path or Path.cwd()
    current = current.resolve()

    while current != current.parent:
        if (current / ".git").exists():
            return current
        current = current.parent

    raise FileNotFoundError("No .git directory found in any parent directory")


def _coerce_type(value: str, default: Any) -> Any:
    """Coerce string value to match the type of the default.

    Args:
        value: String value from the environment
        default: Default value (determines target type)

    Returns:
        Value coerced to appropriate type
    """
    if default is None:
        return value

    if isinstance(default, bool):
        return value.lower() in ("true", "1", "yes", "on")
    if isinstance(default, int):
        try:
            return int(value)
        except ValueError:
            return default
    if isinstance(default, float):
        try:
            return float(value)
        except ValueError:
            return default
    return value


class ConfigManager:
    """Resolves configuration with environment → .env → defaults hierarchy.

    The manager loads .env once on initialization. Values already present
    in the process environment are never overridden by the file.
    """

    def __init__(self, env_file: Optional[Path] = None, load_env: bool = True):
        """Initialize the config manager.

        Args:
            env_file: Explicit .env path. Defaults to <git root>/.env, then ./.env
            load_env: Set to False to skip reading any .env file (tests)
        """
        self._env_file = env_file
        self._env_loaded = False
        if load_env:
            self._load_env()

    def _resolve_env_path(self) -> Path:
        if self._env_file is not None:
            return self._env_file
        try:
            return find_git_root() / ".env"
        except FileNotFoundError:
            return Path.cwd() / ".env"

    def _load_env(self) -> None:
        """Load the .env file if present."""
        if self._env_loaded:
            return

        env_path = self._resolve_env_path()
        if env_path.exists():
            load_dotenv(dotenv_path=env_path, override=False)
            logger.debug(f"Loaded .env from {env_path}")
        else:
            logger.debug(f"No .env file found at {env_path}")

        self._env_loaded = True

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value.

        Args:
            key: Configuration key
            default: Override default (uses DEFAULTS if not provided)

        Returns:
            Configuration value, coerced to the default's type
        """
        env_value = os.getenv(key)
        if env_value is not None:
            default_val = default if default is not None else get_default(key)
            return _coerce_type(env_value, default_val)

        if default is not None:
            return default
        return get_default(key)

    def get_all(self, mask_sensitive: bool = True) -> dict[str, Any]:
        """Get all known configuration values.

        Args:
            mask_sensitive: Replace credentials with a fixed mask

        Returns:
            Dictionary of all config keys and their resolved values
        """
        result = {}
        for key in DEFAULTS:
            value = self.get(key)
            if mask_sensitive and is_sensitive(key) and value:
                value = MASK
            result[key] = value
        return result
