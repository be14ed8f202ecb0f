import logging
import sys
from typing import TextIO

LOGGER_NAME = "diffscope"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HANDLER_MARKER = "_diffscope_handler"


def setup_logging(level: int = logging.INFO, stream: TextIO | None = None) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Calling this again replaces the handler it installed earlier instead of
    adding a second one. Propagation to the root logger is turned off so an
    embedding application that also logs does not print records twice.
    """

    logger = logging.getLogger(LOGGER_NAME)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    setattr(handler, _HANDLER_MARKER, True)

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
