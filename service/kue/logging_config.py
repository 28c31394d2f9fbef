"""
Logging configuration for the kue service.
"""

import logging
import sys


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Setup the 'kue' logger namespace with a single stdout handler."""

    logger = logging.getLogger("kue")
    logger.setLevel(level)

    # Remove existing handlers (setup may run more than once under reload)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = logging.Formatter(
        '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger
