########################################################################################
##
##                                 PACKAGE LOGGING
##                                (utils/logger.py)
##
########################################################################################

# IMPORTS ==============================================================================

import logging

from .._constants import LOG_NAME, LOG_FORMAT


# FUNCTIONS ============================================================================

def get_logger(name=None):
    """Logger of the package or one of its children.

    Parameters
    ----------
    name : str
        child name, e.g. 'picard'

    Returns
    -------
    logger : logging.Logger
    """
    return logging.getLogger(LOG_NAME if name is None else f"{LOG_NAME}.{name}")


def configure_logging(level=logging.INFO, stream=None):
    """Attach a single stream handler to the package logger and
    set the level of the logger and all of its handlers.

    Calling this repeatedly only adjusts the level.

    Parameters
    ----------
    level : int, str
        logging level
    stream : file-like
        output stream of the handler, defaults to stderr

    Returns
    -------
    logger : logging.Logger
        the package logger
    """

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(level)

    return logger
