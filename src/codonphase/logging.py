"""
Logging configuration for codonphase.

Engine modules log through ``logging.getLogger(__name__)`` below the
``codonphase`` root, so configuring the root once routes scanner, tester and
phasing messages to the same handlers as the command-line tools. Console
output goes to stderr with colored level names; an optional log file receives
plain, timestamped records.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "codonphase"

_RESET = "\033[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\033[0;90m",
    logging.INFO: "\033[0;32m",
    logging.WARNING: "\033[1;33m",
    logging.ERROR: "\033[0;31m",
    logging.CRITICAL: "\033[0;31m",
}

CONSOLE_FORMAT = "%(levelname)s %(message)s"
VERBOSE_CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ColoredFormatter(logging.Formatter):
    """Bracketed level names, colored by severity on a terminal."""

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt or "%(message)s")
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so file handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        level = f"[{record.levelname}]"
        if self.use_colors:
            level = f"{_LEVEL_COLORS.get(record.levelno, _RESET)}{level}{_RESET}"
        record.levelname = level
        return super().format(record)


def setup_logging(
    name: str = ROOT_LOGGER,
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    use_colors: bool = True,
    verbose: bool = False,
) -> logging.Logger:
    """
    Set up logging for codonphase tools.

    Args:
        name: Logger name (default: "codonphase")
        level: Logging level (default: INFO)
        log_file: Optional path to log file
        use_colors: Use colored output for console (default: True)
        verbose: Debug level, with the emitting module in console lines

    Returns:
        Configured logger instance
    """
    if verbose:
        level = logging.DEBUG

    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        ColoredFormatter(VERBOSE_CONSOLE_FORMAT if verbose else CONSOLE_FORMAT, use_colors=use_colors)
    )
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Get a codonphase logger, configuring the package root on first use.

    Loggers below the root share its handlers through propagation.
    """
    root_name = name.split(".")[0]
    if not logging.getLogger(root_name).handlers:
        setup_logging(root_name)
    return logging.getLogger(name)
