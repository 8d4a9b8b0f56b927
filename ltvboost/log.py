"""Loguru sink setup shared by the CLI and the bot.

The default loguru handler is replaced with a stderr sink at the configured
level, plus an optional rotating file sink.
"""
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from ltvboost.config import config


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None):
    """Install the stderr sink and, if a path is configured, a file sink."""
    level = (level or config.LOG_LEVEL).upper()
    log_file = log_file if log_file is not None else config.LOG_FILE

    logger.remove()
    logger.add(sys.stderr, level=level, backtrace=False, diagnose=False)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            path,
            rotation="10 MB",
            retention="10 files",
            enqueue=True,
            backtrace=True,
            diagnose=False,
            level=level,
        )
    return logger
