"""Logger setup for the command line."""

from __future__ import annotations

import os
import sys

from loguru import logger

LOG_LEVEL_ENV = "BUILD_CHANGELOG_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


def configure(level: str | None = None) -> None:
    """Replace loguru's default sink with a single stderr sink.

    Args:
        level: Minimum level; falls back to $BUILD_CHANGELOG_LOG_LEVEL and
               then WARNING. stdout is left to rendered output.
    """
    level = (level or os.environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        colorize=True,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    )
