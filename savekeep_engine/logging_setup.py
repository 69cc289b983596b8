"""
Logging configuration for SaveKeep.

Engine modules log through ``logging.getLogger(__name__)`` and never print.
Front ends call :func:`configure_logging` once at startup.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "savekeep_engine"

DEFAULT_MAX_BYTES = 1024 * 1024
DEFAULT_BACKUP_COUNT = 3

_CONSOLE_FORMAT = "%(levelname)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def verbosity_to_level(verbosity: int) -> int:
    """
    Map a ``-v`` count to a console log level.

    Parameters
    ----------
    verbosity:
        Number of ``-v`` flags given on the command line.

    Returns
    -------
    int
        WARNING for 0, INFO for 1, DEBUG for 2 or more.
    """
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def configure_logging(*, verbosity: int = 0, log_file: Path | None = None) -> logging.Logger:
    """
    Configure the engine logger with a console handler and an optional rotating file.

    Parameters
    ----------
    verbosity:
        Console verbosity (see :func:`verbosity_to_level`).
    log_file:
        If given, DEBUG and above is also written to this file with rotation.

    Returns
    -------
    logging.Logger
        The configured engine logger.

    Notes
    -----
    Calling this again replaces previously installed handlers, so repeated CLI
    invocations in one process (tests) do not duplicate output.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console = logging.StreamHandler()
    console.setLevel(verbosity_to_level(verbosity))
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=DEFAULT_MAX_BYTES,
            backupCount=DEFAULT_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger
