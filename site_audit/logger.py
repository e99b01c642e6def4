"""Logging for **SiteAudit**.

Every stage logs through a child of one project logger (``SiteAudit.crawler``,
``SiteAudit.links``, ...), so one call to :func:`configure` decides where all
of it goes::

      from site_audit.logger import get_logger
      log = get_logger("links")
      log.info("✓ %s", url)

Console output goes to stdout; a log file, if given, is rotated at 5 MB.
Chatty library loggers (aiohttp, asyncio) are held at WARNING unless the
project runs at DEBUG.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "SiteAudit"
LIBRARY_LOGGERS: Final[tuple[str, ...]] = ("aiohttp.access", "aiohttp.client", "aiohttp.server", "asyncio")

_LevelT = Union[int, str]


def _stdout_handler(fmt: str) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _file_handler(file: Path | str, fmt: str) -> RotatingFileHandler:
    path = Path(file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _tune_libraries(level: int) -> None:
    lib_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(lib_level)


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """(Re)configure the project logger.

    Parameters
    ----------
    level
        Numeric or textual logging level (e.g. ``"DEBUG"``).
    log_file
        Path to a logfile; its directory is created. *None* means console only.
    log_format
        Format string for :class:`logging.Formatter`.
    replace_handlers
        *True* drops handlers from a previous call; *False* appends.
    """
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(level)

    if replace_handlers:
        for handler in list(lg.handlers):
            lg.removeHandler(handler)
            handler.close()

    lg.addHandler(_stdout_handler(log_format))
    if log_file is not None:
        lg.addHandler(_file_handler(log_file, log_format))

    lg.propagate = False
    _tune_libraries(lg.level)
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Configure logging from scratch (used by the CLI on start-up)."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


def get_logger(stage: str | None = None) -> logging.Logger:
    """Project logger, or the child for one pipeline *stage* (``SiteAudit.<stage>``)."""
    return logging.getLogger(f"{LOGGER_NAME}.{stage}" if stage else LOGGER_NAME)


logger: logging.Logger = logging.getLogger(LOGGER_NAME)

__all__ = ["logger", "configure", "init_logging", "get_logger", "DEFAULT_FORMAT", "LOGGER_NAME"]
