"""
Centralized logging configuration for the job scheduler daemon.

Features:
- Colored console output with a distinct color per log level
- Structured formatting with timestamps and logger names
- Optional plain-text file output
- Level taken from application settings (debug mode forces DEBUG)
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional, Union

# Color codes for terminal output
class Colors:
    """ANSI color codes for terminal output"""
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
SIMPLE_FORMAT = "%(levelname)s - %(message)s"
JSON_FORMAT = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_TIMESTAMP_PATTERN = re.compile(r'(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})')


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level, timestamp and logger name"""

    COLORS = {
        logging.DEBUG: Colors.GRAY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.MAGENTA,
    }

    def format(self, record):
        formatted = super().format(record)

        level_color = self.COLORS.get(record.levelno, Colors.WHITE)
        formatted = formatted.replace(
            record.levelname,
            f"{level_color}{record.levelname}{Colors.RESET}",
            1
        )

        formatted = _TIMESTAMP_PATTERN.sub(f"{Colors.CYAN}\\1{Colors.RESET}", formatted, count=1)

        if record.name:
            formatted = formatted.replace(
                f"{record.name} - ",
                f"{Colors.BLUE}{record.name}{Colors.RESET} - ",
                1
            )

        return formatted


def _build_formatter(log_format: str, colored: bool) -> logging.Formatter:
    if log_format == "json":
        return logging.Formatter(JSON_FORMAT, datefmt=DATE_FORMAT)

    fmt = SIMPLE_FORMAT if log_format == "simple" else DETAILED_FORMAT
    formatter_class = ColoredFormatter if colored else logging.Formatter
    return formatter_class(fmt, datefmt=DATE_FORMAT)


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "detailed",
    log_file: Optional[Union[str, Path]] = None,
    enable_colors: bool = True
) -> logging.Logger:
    """
    Set up centralized logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format style ('simple', 'detailed', 'json')
        log_file: Optional file path for logging
        enable_colors: Whether to enable colored output (terminal only)

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    colored = enable_colors and sys.stdout.isatty()
    console_handler.setFormatter(_build_formatter(log_format, colored))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        # File output is never colored
        file_handler.setFormatter(_build_formatter(log_format, False))
        root_logger.addHandler(file_handler)

    # APScheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(max(numeric_level, logging.WARNING))

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name"""
    return logging.getLogger(name)


def configure_logging_from_settings():
    """Configure logging based on application settings"""
    from core.config import settings

    log_level = settings.log_level
    if settings.debug:
        log_level = 'DEBUG'

    setup_logging(log_level=log_level, log_format='detailed', enable_colors=True)

    logger = get_logger(__name__)
    logger.info(f"Logging configured with level: {log_level}")
