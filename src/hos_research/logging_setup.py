"""Logging setup for the service and CLI."""

from __future__ import annotations

import logging

LOGGER_NAME = "hos_research"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a console handler to the package logger.

    Safe to call more than once; handlers are only added on the first call.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(module)s.%(funcName)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
