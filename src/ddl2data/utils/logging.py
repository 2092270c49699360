"""Logging helpers for ddl2data."""

from __future__ import annotations

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "ddl2data"

_DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger inside the ddl2data namespace.

    Args:
        name: Module name (usually ``__name__``)

    Returns:
        Logger instance
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(level: str = "INFO", fmt: Optional[str] = None) -> None:
    """Configure the ddl2data logger with a stderr stream handler.

    Calling it again only updates the level and format.

    Args:
        level: Logging level name ("DEBUG", "INFO", ...)
        fmt: Optional log format string
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    formatter = logging.Formatter(fmt or _DEFAULT_FORMAT)
    for handler in logger.handlers:
        if getattr(handler, "_ddl2data_handler", False):
            handler.setFormatter(formatter)
            return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler._ddl2data_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False
