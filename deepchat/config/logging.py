"""
Logging configuration and setup.

Console output (colored when attached to a terminal) plus an optional log
file, both on the "deepchat" logger. LiteLLM and its HTTP client are chatty
at INFO, so they are held at WARNING unless DEBUG is requested.
"""

import copy
import logging
import sys
from pathlib import Path

from deepchat.config.settings import Settings

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

THIRD_PARTY_LOGGERS = ("LiteLLM", "LiteLLM Router", "LiteLLM Proxy", "httpx", "httpcore")


class ColoredFormatter(logging.Formatter):
    """Formatter that adds color to console output."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with a colored level name."""
        if record.levelname not in self.COLORS:
            return super().format(record)
        # Other handlers see the same record; color a copy only
        colored = copy.copy(record)
        colored.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
        return super().format(colored)


def setup_logging(settings: Settings) -> logging.Logger:
    """
    Configure the "deepchat" logger from settings.

    Args:
        settings: Application settings containing log configuration

    Returns:
        The configured package logger
    """
    level = getattr(logging, settings.log_level)

    package_logger = logging.getLogger("deepchat")
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    if sys.stdout.isatty():
        console_handler.setFormatter(ColoredFormatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    else:
        console_handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    package_logger.addHandler(console_handler)

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
        package_logger.addHandler(file_handler)

    package_logger.propagate = False

    third_party_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    package_logger.debug(f"Logging initialized - Level: {settings.log_level}")
    if settings.log_file:
        package_logger.debug(f"Logging to file: {settings.log_file}")
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the package namespace.

    Module paths that already start with "deepchat" are used as-is, so
    get_logger(__name__) and get_logger("cli") both land under "deepchat".
    """
    if name == "deepchat" or name.startswith("deepchat."):
        return logging.getLogger(name)
    return logging.getLogger(f"deepchat.{name}")
