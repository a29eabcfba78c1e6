"""
Logging configuration — central setup for the CLI.

Called once at startup by main.py; every module that does
``logger = logging.getLogger(__name__)`` inherits it.

The console shows progress lines (``=> [INFO] Fetching ...``) at INFO
and above, and a detailed format with logger name and line number at
DEBUG. An optional log file always gets the detailed format.

Level precedence:
    --debug / --verbose / --quiet  >  ALPINE_BREW_LOG_LEVEL  >  INFO
File output: ALPINE_BREW_LOG_FILE, ALPINE_BREW_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import sys

# Between INFO and WARNING: a step finished successfully
SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

PROGRESS_FORMAT = "=> [%(levelname)s] %(message)s"
DETAIL_FORMAT = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d — %(message)s"


def resolve_level(debug: bool, verbose: bool, quiet: bool, env_level: str | None) -> str:
    """Console level name from the CLI flags, falling back to the env var."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "WARNING"
    return env_level or "INFO"


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers.

    Args:
        level: Console level name (DEBUG, INFO, SUCCESS, WARNING, ERROR).
        log_file: Also write to this file.
        log_file_level: Level for the file; defaults to ``level``.
    """
    console_level = _parse_level(level)
    handlers = [_console_handler(console_level)]
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(min(h.level for h in handlers))

    logging.raiseExceptions = False


def log_success(logger: logging.Logger, msg: str, *args: object) -> None:
    """Log ``msg`` at the SUCCESS level."""
    logger.log(SUCCESS, msg, *args)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if level <= logging.DEBUG:
        handler.setFormatter(logging.Formatter(DETAIL_FORMAT, datefmt="%H:%M:%S"))
    else:
        handler.setFormatter(logging.Formatter(PROGRESS_FORMAT))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(DETAIL_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name to its number; unknown names mean INFO."""
    numeric = logging.getLevelName((level or "INFO").upper())
    return numeric if isinstance(numeric, int) else logging.INFO
