from .environment import Environment
from .logging_config import configure_logging, get_logger
from .settings import EnsureSettings, get_value, load_settings, save_settings

__all__ = [
    "EnsureSettings",
    "Environment",
    "configure_logging",
    "get_logger",
    "get_value",
    "load_settings",
    "save_settings",
]
