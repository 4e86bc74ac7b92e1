"""Central logger configuration.

Every module does: `logger = setup_logger(__name__)`.
The level comes from `settings.app_log_level`.
"""

import logging
import sys

from src.userservice.config.settings import settings


def setup_logger(name: str = "userservice") -> logging.Logger:
    """Create and return a configured logger."""
    logger = logging.getLogger(name)

    # Prevent duplicate handlers in reload environments (uvicorn --reload)
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, (settings.app_log_level or "INFO").upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Avoid propagating to root and double-printing
    logger.propagate = False
    return logger
