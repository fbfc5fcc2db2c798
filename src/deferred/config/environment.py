"""
Environment Configuration Management Module

Centralises access to the configuration consumed by the deferred package:

- `.env` files (loaded once, never overriding variables already set)
- Environment variables
- Settings file (settings.yaml)
- Default values

Values are only read when a caller explicitly asks for them, for example through
``RetryPolicy.from_environment()``. Nothing here changes the named defaults that
``RetryPolicy()`` uses.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from deferred.config.settings import EnsureSettings, get_value, load_settings

DEFAULT_ENV = {
    "DEFERRED_MAX_WAIT": "60",
    "DEFERRED_POLL_INTERVAL": "0.25",
    "DEFERRED_BACKOFF": "fixed",
    "DEFERRED_BACKOFF_MULTIPLIER": "2",
    "DEFERRED_MAX_POLL_INTERVAL": None,
    "DEFERRED_RETRY_TERMINAL": "0",
    "ENV": "development",
    "LOG_LEVEL": None,
    "DEBUG": None,
}

_FALSY = ("0", "false", "no", "off", "")


def load_dotenv_files(directory: Path | None = None):
    """Load environment variables from .env files based on current environment."""
    from dotenv import load_dotenv

    base = directory if directory is not None else Path.cwd()
    env_name = os.environ.get("ENV", "development")

    # Later files override earlier ones only for keys not already in os.environ.
    env_files = [
        base / ".env",
        base / f".env.{env_name}",
        base / f".env.{env_name}.local",
    ]

    for env_file in env_files:
        if env_file.exists():
            load_dotenv(env_file, override=False)


def _is_truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return value is not None and str(value).strip().lower() not in _FALSY


class Environment(object):
    """
    Class-level accessor for configuration values with type conversions.

    Lookup order for a key is: settings file, then environment variable, then
    ``DEFAULT_ENV``.
    """

    settings: Optional[Dict[str, Any]] = None

    @classmethod
    def load_settings(cls):
        load_dotenv_files()
        cls.settings = load_settings()
        if cls.settings:
            cls.get_logger().debug(f"Loaded {len(cls.settings)} settings from the settings file")

    @classmethod
    def get_settings(cls):
        if cls.settings is None:
            cls.load_settings()
        assert cls.settings is not None
        return cls.settings

    @classmethod
    def clear_settings(cls):
        """Forget cached settings so the next access re-reads them."""
        cls.settings = None

    @classmethod
    def get(cls, key: str, default: Any = None):
        return get_value(key, cls.get_settings(), DEFAULT_ENV, default)

    @classmethod
    def is_debug(cls):
        return _is_truthy(os.getenv("DEBUG"))

    @classmethod
    def get_log_level(cls):
        """Return desired log level string.

        Priority:
        1) Explicit LOG_LEVEL from the environment
        2) If DEBUG env is truthy, return "DEBUG"
        3) DEFERRED_LOG_LEVEL env (default "INFO")

        The settings file is not consulted here: logging is configured while
        modules import, before any settings have been requested.
        """
        level = os.getenv("LOG_LEVEL")
        if level:
            return str(level).upper()
        if cls.is_debug():
            return "DEBUG"
        return os.getenv("DEFERRED_LOG_LEVEL", "INFO").upper()

    @classmethod
    def get_ensure_settings(cls) -> EnsureSettings:
        """Build validated ensure defaults from settings and environment.

        Raises:
            pydantic.ValidationError: If a configured value is out of range or
                not a number.
        """
        max_poll = cls.get("DEFERRED_MAX_POLL_INTERVAL")
        return EnsureSettings(
            max_wait_seconds=cls.get("DEFERRED_MAX_WAIT"),
            poll_interval_seconds=cls.get("DEFERRED_POLL_INTERVAL"),
            backoff=str(cls.get("DEFERRED_BACKOFF")).lower(),
            backoff_multiplier=cls.get("DEFERRED_BACKOFF_MULTIPLIER"),
            max_poll_interval_seconds=max_poll if max_poll not in (None, "") else None,
            retry_terminal=_is_truthy(cls.get("DEFERRED_RETRY_TERMINAL")),
        )

    @classmethod
    def get_logger(cls):
        from deferred.config.logging_config import get_logger

        return get_logger("deferred")
