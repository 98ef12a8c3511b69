"""
Logging configuration — set up once by the CLI entrypoint.

Modules log through ``logging.getLogger(__name__)``; this function only
decides where records go and how they look.

Level precedence:
    --debug / --verbose / --quiet  >  TOOLFORGE_LOG_LEVEL  >  WARNING

TOOLFORGE_LOG_FILE adds a file handler that always records full detail
(DEBUG unless TOOLFORGE_LOG_FILE_LEVEL says otherwise), which is handy
when a registry call misbehaves and the console is kept quiet.
"""

from __future__ import annotations

import logging
import sys

_FMT_CONSOLE = "%(message)s"
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_FMT_DETAIL = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_SHORT = "%H:%M:%S"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# HTTP client internals log every request at DEBUG/INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger for the process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file path.
        log_file_level: Level for the file handler (default DEBUG).
        quiet_third_party: Keep HTTP client loggers at WARNING.
    """
    console_level = _parse_level(level)

    if console_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DETAIL, _DATEFMT_SHORT
    elif console_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_SHORT
    else:
        fmt, datefmt = _FMT_CONSOLE, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level, default=logging.DEBUG)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(file_level)
        handler.setFormatter(logging.Formatter(_FMT_DETAIL, datefmt=_DATEFMT_FILE))
        root.addHandler(handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None, default: int = logging.WARNING) -> int:
    """Convert a level name to its numeric value, falling back to ``default``."""
    if not level:
        return default
    numeric = getattr(logging, level.upper(), None)
    return numeric if isinstance(numeric, int) else default
