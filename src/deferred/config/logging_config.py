import logging
import os
import sys
from typing import ClassVar, Optional

_DEFAULT_FORMAT = os.getenv(
    "DEFERRED_LOG_FORMAT",
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
_DEFAULT_DATEFMT = os.getenv("DEFERRED_LOG_DATEFMT", "%Y-%m-%d %H:%M:%S")
_configured: str | int | bool = False


def _supports_color() -> bool:
    try:
        return sys.stdout.isatty() and os.getenv("NO_COLOR") is None
    except Exception:
        return False


def configure_logging(
    level: Optional[str | int] = None,
    fmt: Optional[str] = None,
    datefmt: Optional[str] = None,
    propagate_root: bool = False,
) -> str | int:
    """Configure root logging once with a consistent format.

    Opt-in for applications and scripts; importing the package never calls it.

    Environment overrides:
    - `DEFERRED_LOG_LEVEL`
    - `DEFERRED_LOG_FORMAT`
    - `DEFERRED_LOG_DATEFMT`
    """
    from deferred.config.environment import Environment

    global _configured

    if isinstance(level, str):
        level = level.upper()

    if level is None:
        level = Environment.get_log_level()

    if _configured and _configured == level:
        return level
    _configured = level

    use_color = _supports_color()
    if fmt is None:
        if os.getenv("DEFERRED_LOG_FORMAT") is None and use_color:
            fmt = "\x1b[90m%(asctime)s\x1b[0m | %(levelname_color)s | \x1b[36m%(name)s\x1b[0m | %(message)s"
        else:
            fmt = _DEFAULT_FORMAT
    datefmt = datefmt if datefmt is not None else _DEFAULT_DATEFMT

    root = logging.getLogger()

    class _LevelColorFormatter(logging.Formatter):
        COLORS: ClassVar[dict[str, str]] = {
            "DEBUG": "\x1b[37m",
            "INFO": "\x1b[32m",
            "WARNING": "\x1b[33m",
            "ERROR": "\x1b[31m",
            "CRITICAL": "\x1b[41m",
        }

        RESET: ClassVar[str] = "\x1b[0m"

        def format(self, record: logging.LogRecord) -> str:
            if use_color:
                levelname = record.levelname
                color = self.COLORS.get(levelname, "")
                record.levelname_color = f"{color}{levelname}{self.RESET}" if color else levelname
            else:
                record.levelname_color = record.levelname
            return super().format(record)

    if root.handlers:
        # Existing handlers (pytest's caplog, host applications) keep their
        # place; only align level and formatter.
        root.setLevel(level)
        for h in root.handlers:
            if isinstance(h, logging.StreamHandler):
                h.setLevel(level)
                h.setFormatter(_LevelColorFormatter(fmt=fmt, datefmt=datefmt))
        root.propagate = propagate_root
        return level

    logging.basicConfig(level=level, format=fmt, datefmt=datefmt)
    for h in logging.getLogger().handlers:
        if isinstance(h, logging.StreamHandler):
            h.setFormatter(_LevelColorFormatter(fmt=fmt, datefmt=datefmt))
    logging.getLogger().propagate = propagate_root
    return level


def get_logger(name: str) -> logging.Logger:
    """Return a module-scoped logger.

    Handlers, formatters and levels are left to the host application, or to an
    explicit ``configure_logging()`` call.
    """
    return logging.getLogger(name)


logging.getLogger("deferred").addHandler(logging.NullHandler())
