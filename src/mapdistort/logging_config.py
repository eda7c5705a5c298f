"""
Logging setup for mapdistort.

Modules log through `logging.getLogger(__name__)`; nothing is printed unless the
application configures handlers. `setup_logging` is a convenience for scripts.

Set MAPDISTORT_DEBUG=1 to get DEBUG output (grid sizes, fit statistics).
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Optional

DEBUG_ENV = "MAPDISTORT_DEBUG"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV, "0") == "1"


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger.

    - level: logging level, overridden to DEBUG when MAPDISTORT_DEBUG=1
    - log_file: optional path, adds a file handler next to the console handler

    Returns the configured `mapdistort` logger.
    """
    if debug_enabled():
        level = logging.DEBUG

    logger = logging.getLogger("mapdistort")
    logger.setLevel(level)

    # Avoid duplicate handlers when called twice
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
