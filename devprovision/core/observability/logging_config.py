"""
Logging configuration — central setup for the CLI entrypoint.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Each idempotency decision produces exactly one leveled line, so the
console transcript of a run is its audit log:

    [INFO] Installing Node.js v20...
    [SKIP] Yarn already installed (version: 1.22.22)
    [WARN] Cannot fetch from remote repository (timeout or network issue)

Levels are resolved in precedence order:
    --debug flag / DEBUG=1  >  DEVPROVISION_LOG_LEVEL env var  >  INFO

Optional file output via DEVPROVISION_LOG_FILE / DEVPROVISION_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import sys

import click

# Between INFO (20) and WARNING (30): "already done, nothing to do"
SKIP = 25
logging.addLevelName(SKIP, "SKIP")

# ── Format strings ──────────────────────────────────────────────

_FMT_CONSOLE = "[%(tag)s] %(message)s"

# DEBUG level — diagnostic with logger:line
_FMT_DEBUG = "[%(tag)s] %(message)s  (%(name)s:%(lineno)d)"

# File output — always full detail
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_TAGS = {
    logging.DEBUG: ("DEBUG", "blue"),
    logging.INFO: ("INFO", "green"),
    SKIP: ("SKIP", "blue"),
    logging.WARNING: ("WARN", "yellow"),
    logging.ERROR: ("ERROR", "red"),
    logging.CRITICAL: ("ERROR", "red"),
}


class LeveledFormatter(logging.Formatter):
    """Render ``[TAG] message`` with an optional coloured tag."""

    def __init__(self, fmt: str, color: bool = False) -> None:
        super().__init__(fmt)
        self._color = color

    def format(self, record: logging.LogRecord) -> str:
        tag, color = _TAGS.get(record.levelno, (record.levelname, "white"))
        record.tag = click.style(tag, fg=color) if self._color else tag
        return super().format(record)


def log_skip(logger: logging.Logger, msg: str, *args: object) -> None:
    """Log a "nothing to do" decision at the SKIP level."""
    logger.log(SKIP, msg, *args)


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    color: bool | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, SKIP, WARNING, ERROR).
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.
        color: Colour the level tags. Defaults to "stderr is a terminal".
    """
    numeric_level = _parse_level(level)
    if color is None:
        color = sys.stderr.isatty()

    # ── Console handler (stderr) ────────────────────────────────
    fmt = _FMT_DEBUG if numeric_level <= logging.DEBUG else _FMT_CONSOLE
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(LeveledFormatter(fmt, color=color))

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    # Effective root level = minimum of console and file levels
    effective_level = numeric_level

    # ── File handler (optional) ─────────────────────────────────
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    # Don't propagate exceptions from logging itself
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.INFO
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
