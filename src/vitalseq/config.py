"""Logging and version helpers for vitalseq.

Every module logs through the single ``"vitalseq"`` logger returned by
:func:`get_logger`. Records carry the thread name because batches arrive on
producer threads and sequences are processed on the worker pool.
"""

import logging
from importlib import metadata

LOGGER_NAME = "vitalseq"
LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(module)s.%(funcName)s: %(message)s"


def get_version() -> str:
    """Return the installed vitalseq version, or a placeholder for a source checkout."""
    try:
        return metadata.version("vitalseq")
    except metadata.PackageNotFoundError:
        return "Version unknown"


def get_logger() -> logging.Logger:
    """Return the package logger, attaching its stream handler on first use.

    The level defaults to INFO; the CLI ``--verbose`` flag lowers it to DEBUG.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
