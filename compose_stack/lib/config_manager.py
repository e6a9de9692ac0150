"""Unified configuration manager with hierarchy: environment → .env → defaults.

This module provides a centralized way to access configuration values
that supports:
1. Container configuration via environment variables (compose `environment:`)
2. Local development overrides via a `.env` file at the project root
3. Sensible hardcoded defaults (the stack works out of the box)

Usage:
    from compose_stack.lib.config_manager import config

    value = config.get("MONGO_DATABASE")
    all_config = config.get_all()
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from compose_stack.lib.defaults import DEFAULTS, SENSITIVE_KEYS, get_default

logger = logging.getLogger(__name__)


def _find_git_root(start_path: Optional[Path] = None) -> Path:
    """Walk up directory tree to find .git/ folder."""
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
        value: String value from env
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
    """Manages configuration with environment → .env → defaults hierarchy.

    The manager loads .env on initialization. Values already present in
    the process environment are never overwritten by the file, so a
    container's declared `environment:` always wins.
    """

    def __init__(self, env_path: Optional[Path] = None):
        """Initialize the config manager and load .env."""
        self._env_loaded = False
        self._env_path = env_path
        self._load_env()

    def _load_env(self) -> None:
        """Load .env file from git root, falling back to the working directory."""
        if self._env_loaded:
            return

        env_path = self._env_path
        if env_path is None:
            try:
                env_path = _find_git_root() / ".env"
            except FileNotFoundError:
                env_path = Path.cwd() / ".env"

        if env_path.exists():
            load_dotenv(dotenv_path=env_path, override=False)
            logger.debug(f"Loaded .env from {env_path}")
        else:
            logger.debug(f"No .env file found at {env_path}")

        self._env_loaded = True

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value (environment → defaults).

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

    def get_all(self) -> dict[str, Any]:
        """Get all known configuration values.

        Returns:
            Dictionary of all config keys and their resolved values
        """
        return {key: self.get(key) for key in DEFAULTS}

    def is_sensitive(self, key: str) -> bool:
        """Check if a key contains sensitive data."""
        return key in SENSITIVE_KEYS

    def mask_value(self, key: str, value: Any) -> str:
        """Mask sensitive values for display.

        Args:
            key: Configuration key
            value: Value to potentially mask

        Returns:
            Masked or original value as string
        """
        if not self.is_sensitive(key):
            return str(value)

        str_value = str(value)
        if not str_value:
            return ""
        if len(str_value) <= 8:
            return "*" * len(str_value)
        return str_value[:4] + "*" * (len(str_value) - 8) + str_value[-4:]


# Singleton instance
config = ConfigManager()
