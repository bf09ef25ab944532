import logging
import os
import sys
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the whole line by level when writing to a terminal"""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',  # Cyan
        'INFO': '\033[32m',  # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',  # Red
        'CRITICAL': '\033[41m\033[37m',  # White on Red background
        'RESET': '\033[0m'
    }

    def __init__(self, fmt=None, datefmt=None, use_color: bool = True):
        super().__init__(fmt, datefmt)
        self.use_color = use_color

    def format(self, record):
        log_message = super().format(record)
        if self.use_color and record.levelname in self.COLORS:
            return f"{self.COLORS[record.levelname]}{log_message}{self.COLORS['RESET']}"
        return log_message


def _level_from_env() -> int:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Set up and return a console logger, safe to call more than once per name"""
    if level is None:
        level = _level_from_env()

    _logger = logging.getLogger(name)
    _logger.setLevel(level)

    if not any(getattr(handler, "_todoapp_console", False) for handler in _logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler._todoapp_console = True
        handler.setFormatter(ColoredFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            use_color=sys.stdout.isatty()
        ))
        _logger.addHandler(handler)

    for handler in _logger.handlers:
        handler.setLevel(level)

    return _logger


# Create a default logger for import
logger = setup_logger("todoapp")
