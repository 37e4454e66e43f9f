"""
Logging setup.

All modules log through ``loguru.logger``; this only installs the sinks.
"""

import sys

from loguru import logger

from printshop.core.config import Settings


def setup_logging(settings: Settings) -> None:
    """Install stderr sink and, if configured, an append-only log file."""
    logger.remove()

    level = "DEBUG" if settings.debug else settings.log_level.upper()
    logger.add(sys.stderr, level=level)

    if settings.log_file:
        logger.add(
            settings.log_file,
            level=level,
            rotation="10 MB",
            retention=10,
            enqueue=True,
        )
        logger.info(f"Logging to {settings.log_file}")
