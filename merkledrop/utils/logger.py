"""
Logging for merkledrop.

Every subsystem logs under the ``merkledrop`` namespace
(``merkledrop.redemption``, ``merkledrop.storage``, ...). Nothing is
configured on import; the CLI calls setup_logging() once from the settings in
AirdropConfig, and library users are free to configure ``merkledrop``
themselves.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog

ROOT_LOGGER = "merkledrop"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Get the logger for a subsystem (e.g. 'merkle', 'redemption', 'storage')"""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(level: int = logging.INFO, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Send merkledrop logs to colored stderr and, optionally, a plain file.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: File to append to, or None for console only

    Returns:
        The ``merkledrop`` root logger
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = colorlog.StreamHandler(sys.stderr)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s",
        datefmt=DATE_FORMAT,
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "red,bg_white",
        },
    ))
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    return root_logger
