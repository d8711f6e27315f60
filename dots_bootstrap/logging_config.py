"""
Centralized logging configuration for dots-bootstrap.

Progress is narrated line by line through one logger. Console output carries
a colored symbol per message (success, info, warning, error); the optional
log file receives plain timestamped records.
"""

import logging
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = "dots_bootstrap"

# Global logger instance
_logger: Optional[logging.Logger] = None


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        verbose: Enable verbose (DEBUG) output
        quiet: Suppress console output (file only)
        propagate: Allow log propagation (useful for testing)

    Returns:
        Configured logger instance
    """
    global _logger

    if verbose:
        effective_level = "DEBUG"
    elif quiet:
        effective_level = "WARNING"
    else:
        effective_level = level.upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, effective_level))
    logger.handlers.clear()

    if not quiet:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, effective_level))
        console_handler.setFormatter(
            ColoredFormatter("%(symbol)s %(message)s", use_colors=sys.stdout.isatty())
        )
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(file_handler)

    logger.propagate = propagate

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """
    Get the configured logger instance.

    If logging hasn't been set up, initializes with defaults.
    """
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger


class ColoredFormatter(logging.Formatter):
    """
    Formatter with a colored symbol per message.

    Records may carry an ``outcome`` attribute (``"success"`` or
    ``"header"``) to override the per-level symbol.
    """

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[1;34m',     # Bold blue
        'WARNING': '\033[1;33m',  # Bold yellow
        'ERROR': '\033[1;31m',    # Bold red
        'CRITICAL': '\033[1;31m',
        'success': '\033[1;32m',  # Bold green
        'header': '\033[1;35m',   # Bold magenta
    }
    RESET = '\033[0m'

    SYMBOLS = {
        'DEBUG': '·',
        'INFO': '→',
        'WARNING': '⚠',
        'ERROR': '✗',
        'CRITICAL': '✗',
        'success': '✓',
        'header': '',
    }

    def __init__(self, fmt: str, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with a colored symbol."""
        key = getattr(record, "outcome", None) or record.levelname
        symbol = self.SYMBOLS.get(key, '')

        if key == "header":
            # Headers are printed on their own, preceded by a blank line
            text = record.getMessage()
            if self.use_colors:
                text = f"{self.COLORS['header']}{text}{self.RESET}"
            return f"\n{text}"

        if self.use_colors and symbol:
            symbol = f"{self.COLORS.get(key, '')}{symbol}{self.RESET}"
        record.symbol = symbol
        return super().format(record)


def header(msg: str) -> None:
    """Log a section header."""
    get_logger().info(msg, extra={"outcome": "header"})


def success(msg: str) -> None:
    """Log a completed step."""
    get_logger().info(msg, extra={"outcome": "success"})


def info(msg: str) -> None:
    """Log a progress message."""
    get_logger().info(msg)


def warning(msg: str) -> None:
    """Log a recoverable problem."""
    get_logger().warning(msg)


def error(msg: str) -> None:
    """Log an error."""
    get_logger().error(msg)
