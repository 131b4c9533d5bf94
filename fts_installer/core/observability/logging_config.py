"""
Logging configuration — one-time setup for the installer process.

main.py calls ``setup_logging`` before anything else runs; every module
then logs through ``logging.getLogger(__name__)``.

Console level, highest precedence first:
    --verbose (DEBUG)  >  FTS_LOG_LEVEL  >  WARNING

A copy of the log can also go to FTS_LOG_FILE, at FTS_LOG_FILE_LEVEL
(defaults to the console level).  Tool output from apt, git and
ansible-playbook goes straight to the terminal and never passes
through here.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

LEVEL_ENV_VAR = "FTS_LOG_LEVEL"
FILE_ENV_VAR = "FTS_LOG_FILE"
FILE_LEVEL_ENV_VAR = "FTS_LOG_FILE_LEVEL"

DEFAULT_LEVEL = "WARNING"

# (max level, format, datefmt): first row whose level is >= the console level wins
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("urllib3", "charset_normalizer")


def resolve_level(verbose: bool = False, env: Mapping[str, str] | None = None) -> str:
    """Console level name for this run."""
    if verbose:
        return "DEBUG"
    env = os.environ if env is None else env
    return env.get(LEVEL_ENV_VAR) or DEFAULT_LEVEL


def setup_logging(
    level: str = DEFAULT_LEVEL,
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ...).  Unknown
            names fall back to WARNING.
        log_file: Optional path of a log file; parent directories are created.
        log_file_level: Level for the file.  Defaults to ``level``.
        quiet_third_party: Hold HTTP client loggers at WARNING unless the
            console is at DEBUG.
    """
    console_level = _parse_level(level)
    fmt, datefmt = next(
        (f, d) for limit, f, d in _CONSOLE_FORMATS if console_level <= limit
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(file_handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # The console stream may be closed by the time late records arrive
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.strip().upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
