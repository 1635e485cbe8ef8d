"""Logging configuration for the command line entry point."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from sortify.config.models import LoggingSettings

_VERBOSITY_LEVELS = {1: logging.INFO, 2: logging.DEBUG}
_FILE_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def resolve_level(settings: LoggingSettings, verbosity: int = 0) -> int:
    """Return the effective log level for ``settings`` and a ``-v`` count."""
    if verbosity > 0:
        return _VERBOSITY_LEVELS.get(min(verbosity, 2), logging.DEBUG)
    level = logging.getLevelName(settings.level.upper())
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(settings: LoggingSettings, verbosity: int = 0) -> None:
    """Install stderr and optional rotating file handlers on the package logger.

    Args:
        settings: Logging section of the resolved configuration.
        verbosity: Number of ``-v`` flags passed on the command line.
    """

    level = resolve_level(settings, verbosity)
    logger = logging.getLogger("sortify")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler.setLevel(min(level, logging.INFO))
        logger.addHandler(file_handler)
        level = min(level, logging.INFO)

    logger.setLevel(level)
    logger.propagate = False


__all__ = ["configure_logging", "resolve_level"]
