"""
Logging configuration for the WAN simulator.
"""

import logging
import os
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str = "wan_sim", log_file: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """Setup a logger for a component.

    Logs go to stderr, or to ``log_file`` when given (its directory is
    created if needed). Calling this twice for the same destination does not
    add a second handler.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if log_file:
        target = os.path.abspath(log_file)
        if any(isinstance(h, logging.FileHandler) and h.baseFilename == target for h in logger.handlers):
            return logger
        directory = os.path.dirname(target)
        os.makedirs(directory, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(target)
    else:
        if any(type(h) is logging.StreamHandler for h in logger.handlers):
            return logger
        handler = logging.StreamHandler()

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
