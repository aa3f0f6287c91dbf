"""
Process-wide logging configuration.

The GUI calls `setup_logging()` once at startup. Engine and GUI modules obtain
child loggers through `get_logger()` so everything lands under the single
``registry`` logger hierarchy.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ROOT_LOGGER_NAME = "registry"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure the ``registry`` logger.

    Parameters
    ----------
    level:
        Threshold for the logger and its console handler.

    Returns
    -------
    logging.Logger
        The configured application logger.

    Notes
    -----
    Safe to call more than once; a second call does not add a duplicate handler.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        ch.setLevel(level)
        logger.addHandler(ch)

    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = logging.getLogger(ROOT_LOGGER_NAME)
    return base.getChild(name) if name else base
