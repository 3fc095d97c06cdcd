from __future__ import annotations

import logging
import os
from typing import Union

LOGGER_NAME = "fileconnector"
LOG_LEVEL_ENV = "FILECONNECTOR_LOG_LEVEL"


def setup_logging(level: Union[int, str, None] = None) -> logging.Logger:
    """
    Attach a single stream handler to the package logger.

    Level resolution: explicit argument, then $FILECONNECTOR_LOG_LEVEL,
    then WARNING. Calling this more than once only adjusts the level.
    """
    logger = logging.getLogger(LOGGER_NAME)

    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "WARNING")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("[fileconnector] %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(h)
    logger.setLevel(level)
    return logger
