"""
Logging Utilities

Configures the ``neural_conv`` package logger. Modules log through
``logging.getLogger(__name__)`` and never configure handlers themselves.
"""

import logging
import sys
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[int, str] = logging.INFO, fmt: str = DEFAULT_FORMAT,
                  log_file: Optional[str] = None) -> logging.Logger:
    """Attach a handler to the package logger

    Args:
        level: Logging level name or number
        fmt: Record format
        log_file: Also write records to this file when given

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger("neural_conv")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt)
    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
