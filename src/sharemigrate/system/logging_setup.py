# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/system/logging_setup.py

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


CONSOLE_FORMAT = "<level>{level}</level>: {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}"


def setup_logging(debug: bool = False, failure_log: Optional[Path] = None) -> None:
    """Setup loguru logging for a migration run.

    Configures:
    - Console output: INFO+ (DEBUG+ with debug), one line per share record
    - Failure log: ERROR+ to failure_log if configured
    """
    logger.remove()

    logger.add(
        sys.stderr,
        level="DEBUG" if debug else "INFO",
        format=CONSOLE_FORMAT,
        colorize=True
    )

    if failure_log:
        failure_log = Path(failure_log)
        failure_log.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            failure_log,
            level="ERROR",
            format=FILE_FORMAT,
            enqueue=True
        )
        logger.debug(f"Failure log enabled: {failure_log}")
