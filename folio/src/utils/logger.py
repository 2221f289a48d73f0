"""
Folio - Logging
================
One console handler, attached to the ``folio`` package logger.  Module
loggers (``folio.src.core.rag_engine`` and friends) carry no handler of
their own and propagate up to it, so a single place decides format and
verbosity.  Loggers outside the package, e.g. ``__main__`` when a script
runs directly, get their own handler.

Verbosity follows ``settings.ENV``:
  • ``"dev"``  → DEBUG
  • ``"prod"`` → WARNING

Usage:
    from folio.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Something happened")
"""

import logging
import sys

from folio.config.settings import settings

PACKAGE_LOGGER = "folio"

_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}

_FORMATTER = logging.Formatter(fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


def _ensure_console(logger: logging.Logger) -> None:
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_FORMATTER)
    logger.addHandler(handler)
    logger.setLevel(_ENV_LEVEL_MAP.get(settings.ENV, logging.INFO))
    logger.propagate = False


def _in_package(name: str) -> bool:
    return name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + ".")


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Return the logger for *name*, wiring the console handler on first use.

    *level* overrides the environment-derived level for this logger only.
    """
    _ensure_console(logging.getLogger(PACKAGE_LOGGER))

    logger = logging.getLogger(name)
    if not _in_package(name):
        _ensure_console(logger)
    if level is not None:
        logger.setLevel(level)
    return logger
