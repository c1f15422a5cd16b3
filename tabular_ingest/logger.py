"""
Logging helpers.

Usage:
    from tabular_ingest.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Parsing %s", filename)
"""

import logging
import sys
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "tabular_ingest"

_configured = False


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Attach a stdout handler to the package logger.

    Only the first call installs the handler; later calls just update the level.
    """
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    root.setLevel(level)

    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT))
    root.addHandler(handler)
    root.propagate = False
    _configured = True


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger
