#!/usr/bin/env python3
"""
Logging configuration for the compile runner.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

VERBOSE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def _quiet_format(record) -> str:
    # One line per diagnostic, e.g. "error: compilation failed".
    return "<level>" + record["level"].name.lower() + "</level>: {message}\n{exception}"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Set up logging using loguru.

    Args:
        verbose: Trace every external command with the detailed format
        log_file: Optional file sink receiving DEBUG records
    """
    logger.remove()

    if verbose:
        logger.add(sys.stderr, format=VERBOSE_FORMAT, level="DEBUG", colorize=None)
    else:
        logger.add(sys.stderr, format=_quiet_format, level="WARNING", colorize=None)

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format=FILE_FORMAT,
            rotation="10 MB",
            retention=3,
        )

    logger.debug(f"Logging initialized (verbose={verbose})")
