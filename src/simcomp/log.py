"""
Logging setup for simcomp.

Library modules log through ``logging.getLogger(__name__)`` and never touch
the root logger. Applications that want to see lifecycle messages call
:func:`configure_logging` once.
"""
from __future__ import annotations

import logging

PACKAGE_LOGGER = "simcomp"
DEFAULT_FORMAT = "[%(name)s] %(levelname)s: %(message)s"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def configure_logging(
    level: int | str = logging.INFO,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Calling this more than once replaces the handler installed by the
    previous call instead of stacking duplicates.

    Parameters
    ----------
    level : int | str
        Logging level for the package logger
    fmt : str
        Format string for the stream handler

    Returns
    -------
    logging.Logger
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_simcomp_handler", False):
            logger.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt))
    handler._simcomp_handler = True
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
