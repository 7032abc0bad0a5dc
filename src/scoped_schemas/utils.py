"""Utility functions for scoped-schemas."""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    serialize: bool = False,
) -> None:  # pragma: no cover
    """Configure loguru sinks.

    Args:
        log_level: Minimum level for every sink
        log_file: Optional file to log to in addition to stderr
        serialize: Emit JSON records, including bound event properties
    """
    logger.remove()
    logger.add(sys.stderr, level=log_level, serialize=serialize, colorize=not serialize)

    if log_file:
        logger.add(
            str(log_file),
            level=log_level,
            rotation="10 MB",
            retention="10 days",
            serialize=serialize,
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )
