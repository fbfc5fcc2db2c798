"""Utility functions for reading and writing the settings file."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

# Constants
SETTINGS_FILE = "settings.yaml"
MISSING_MESSAGE = "Missing required setting: {}"
NOT_GIVEN = object()


class EnsureSettings(BaseModel):
    """Validated defaults for bounded waits, as read from settings or environment."""

    max_wait_seconds: float = Field(
        default=60.0,
        ge=0.0,
        description=(
            "DEFERRED_MAX_WAIT: maximum time in seconds that ensure() and assert_eventually() "
            "keep retrying a temporarily unavailable resource before giving up."
        ),
    )
    poll_interval_seconds: float = Field(
        default=0.25,
        gt=0.0,
        description="DEFERRED_POLL_INTERVAL: seconds to sleep between attempts (initial interval when backing off).",
    )
    backoff: Literal["fixed", "exponential"] = Field(
        default="fixed",
        description="DEFERRED_BACKOFF: how the poll interval evolves between attempts.",
    )
    backoff_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="DEFERRED_BACKOFF_MULTIPLIER: growth factor applied to the poll interval when backing off.",
    )
    max_poll_interval_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="DEFERRED_MAX_POLL_INTERVAL: upper bound in seconds for an exponentially growing poll interval.",
    )
    retry_terminal: bool = Field(
        default=False,
        description=(
            "DEFERRED_RETRY_TERMINAL: set to 1 to also retry outcomes classified as permanently "
            "unavailable. Only useful with accessors whose classification cannot be trusted."
        ),
    )

    @model_validator(mode="after")
    def _check_interval_bounds(self) -> "EnsureSettings":
        if (
            self.max_poll_interval_seconds is not None
            and self.max_poll_interval_seconds < self.poll_interval_seconds
        ):
            raise ValueError("max_poll_interval_seconds must be >= poll_interval_seconds")
        return self


def get_system_file_path(filename: str) -> Path:
    """Return the path to the configuration file for the current OS."""
    import platform

    os_name = platform.system()
    if os_name in {"Linux", "Darwin"}:
        return Path.home() / ".config" / "deferred" / filename
    elif os_name == "Windows":
        appdata = os.getenv("APPDATA")
        if appdata is not None:
            return Path(appdata) / "deferred" / filename
        return Path("data") / filename
    return Path("data") / filename


def get_settings_path() -> Path:
    """Return the settings file path, honouring ``DEFERRED_SETTINGS_FILE``."""
    override = os.getenv("DEFERRED_SETTINGS_FILE")
    if override:
        return Path(override)
    return get_system_file_path(SETTINGS_FILE)


# ---------------------------------------------------------------------------
# Settings helpers
# ---------------------------------------------------------------------------


def load_settings() -> Dict[str, Any]:
    """Load settings from the YAML settings file."""
    settings_file = get_settings_path()

    settings: Dict[str, Any] = {}

    if settings_file.exists():
        with open(settings_file, "r") as f:
            settings = yaml.safe_load(f) or {}

    return settings


def save_settings(settings: Dict[str, Any]) -> None:
    """Save settings to the YAML settings file."""
    settings_file = get_settings_path()

    os.makedirs(os.path.dirname(settings_file), exist_ok=True)

    with open(settings_file, "w") as f:
        yaml.dump(settings, f)


def get_value(
    key: str,
    settings: Dict[str, Any],
    default_env: Dict[str, Any],
    default: Any = NOT_GIVEN,
) -> Any:
    """Retrieve a configuration value from settings, environment, or defaults."""
    value = settings.get(key)
    if value is None or str(value) == "":
        value = os.environ.get(key)

    if value is None:
        value = default_env.get(key, default)

    if value is not NOT_GIVEN:
        return value
    raise KeyError(MISSING_MESSAGE.format(key))
