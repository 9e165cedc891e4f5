"""
Logging configuration for VICOORD.

This module provides standardized logging setup for VICOORD tools.
It supports console output with colors and optional file logging. Messages
about one sequence are prefixed with the sequence and model they concern.
"""

import logging
import sys
from pathlib import Path
from typing import Optional


# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[1;33m"
    GRAY = "\033[0;90m"


class ColoredFormatter(logging.Formatter):
    """
    Custom formatter with colored output for different log levels.
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.GRAY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.RED,
    }

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt or "%(message)s")
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        if self.use_colors:
            color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
            record.levelname = f"{color}[{record.levelname}]{Colors.RESET}"
        else:
            record.levelname = f"[{record.levelname}]"

        return super().format(record)


CONSOLE_FORMAT = "%(levelname)s %(context)s%(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(context)s%(message)s"


class SequenceContextFilter(logging.Filter):
    """
    Fill ``%(context)s`` from the sequence and model a record concerns.

    Records logged through ``sequence_logger`` get ``"s2 [NC_001477]: "``
    (``"s2: "`` without a model); all other records an empty string.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        seq_name = getattr(record, "seq_name", None)
        model = getattr(record, "model", None)
        if seq_name and model:
            record.context = f"{seq_name} [{model}]: "
        elif seq_name:
            record.context = f"{seq_name}: "
        else:
            record.context = ""
        return True


def sequence_logger(
    logger: logging.Logger, seq_name: str, model: Optional[str] = None
) -> logging.LoggerAdapter:
    """Wrap ``logger`` so its records carry the sequence (and model) they concern."""
    return logging.LoggerAdapter(logger, {"seq_name": seq_name, "model": model})


def setup_logging(
    name: str = "vicoord",
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    use_colors: bool = True,
    verbose: bool = False,
) -> logging.Logger:
    """
    Set up logging for VICOORD tools.

    Library modules log through ``logging.getLogger(__name__)``, so configuring
    the "vicoord" logger here covers every module in the package.

    Args:
        name: Logger name (default: "vicoord")
        level: Logging level (default: INFO)
        log_file: Optional path to log file
        use_colors: Use colored output for console (default: True)
        verbose: Enable verbose/debug output (default: False)

    Returns:
        Configured logger instance
    """
    if verbose:
        level = logging.DEBUG

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear existing handlers
    logger.handlers.clear()

    # Console handler with colors
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.addFilter(SequenceContextFilter())
    console_handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, use_colors=use_colors))
    logger.addHandler(console_handler)

    # File handler (plain text, no colors)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.addFilter(SequenceContextFilter())
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "vicoord") -> logging.Logger:
    """
    Get or create a logger for VICOORD tools.

    Args:
        name: Logger name (default: "vicoord")

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    # If no handlers, set up with defaults
    if not logger.handlers:
        setup_logging(name)

    return logger
