"""
Logging configuration — central setup for the CLI entrypoint.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Console levels are resolved in precedence order:
    --debug  >  --verbose  >  SERVERCOZY_LOG_LEVEL env var  >  INFO (default)

The run log always records DEBUG detail.
"""

from __future__ import annotations

import logging
import os
import sys
import tempfile
import time
from pathlib import Path

import click

# ── Format strings ──────────────────────────────────────────────

# INFO level: just the message, colored by severity
_FMT_MINIMAL = "%(message)s"

# --verbose: timestamped with module context
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG level: full diagnostic with module context
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output: always full detail
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL_ENV_VAR = "SERVERCOZY_LOG_LEVEL"

_LEVEL_STYLES: dict[int, dict] = {
    logging.DEBUG: {"fg": "bright_black"},
    logging.INFO: {},
    logging.WARNING: {"fg": "yellow"},
    logging.ERROR: {"fg": "red", "bold": True},
    logging.CRITICAL: {"fg": "red", "bold": True},
}

# Third-party loggers that are noisy at DEBUG
_NOISY_LOGGERS = ("urllib3",)


class ColorFormatter(logging.Formatter):
    """Colors each record by severity with ``click.style``."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        style = _LEVEL_STYLES.get(record.levelno, {})
        return click.style(message, **style) if style else message


def default_log_path() -> Path:
    """Run log location: ``<tempdir>/servercozy-YYYYmmddHHMMSS-<pid>.log``."""
    stamp = time.strftime("%Y%m%d%H%M%S")
    return Path(tempfile.gettempdir()) / f"servercozy-{stamp}-{os.getpid()}.log"


def resolve_level(*, debug: bool = False, verbose: bool = False) -> str:
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    return os.environ.get(LOG_LEVEL_ENV_VAR) or "INFO"


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    verbose: bool = False,
    quiet_third_party: bool = True,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ...).
        log_file: Optional run log, always written at DEBUG.
        verbose: Prefix console lines with time and module.
        quiet_third_party: Keep noisy third-party loggers at WARNING
            unless the console is at DEBUG.
    """
    numeric_level = _parse_level(level)

    # ── Console handler (stderr) ────────────────────────────────
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif verbose:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(ColorFormatter(fmt, datefmt=datefmt))

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective_level = numeric_level

    # ── Run log ─────────────────────────────────────────────────
    if log_file:
        try:
            fh = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as exc:
            root.warning("Cannot open log file %s: %s", log_file, exc)
        else:
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
            root.addHandler(fh)
            effective_level = logging.DEBUG

    root.setLevel(effective_level)

    # ── Third-party noise control ───────────────────────────────
    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # Don't propagate exceptions from logging itself
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.INFO
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
