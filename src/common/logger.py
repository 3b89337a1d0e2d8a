"""
Logging setup for the billboard services.
Every module gets its logger through setup_logger(__name__).
"""

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Environment variable that overrides the default log level
LOG_LEVEL_ENV = "BILLBOARD_LOG_LEVEL"


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger.

    Args:
        name: Logger name (usually __name__)
        level: Level name. If None, uses BILLBOARD_LOG_LEVEL or INFO

    Returns:
        Logger with a single stream handler attached
    """
    logger = logging.getLogger(name)

    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Only attach once, modules may be reloaded
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
