#!/usr/bin/env python3
"""
Logging utilities for dotstrap.

This module provides a centralized logging system with rich console output
on stderr and a rotating log file under the XDG state directory.
"""

import os
import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Dict

from rich.console import Console
from rich.logging import RichHandler


LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "%(filename)s:%(lineno)d - %(message)s"
)
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def default_log_dir() -> Path:
    """Directory holding the rotating log file."""
    state_home = os.environ.get('XDG_STATE_HOME') or str(Path.home() / '.local' / 'state')
    return Path(state_home) / 'dotstrap' / 'logs'


class DeferredRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Rotating log file whose directory is created when the first record is written."""

    def _open(self):
        Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        return super()._open()


def default_file_handler() -> logging.Handler:
    """Rotating file handler under the XDG state directory; touches nothing until used."""
    file_handler = DeferredRotatingFileHandler(
        default_log_dir() / 'dotstrap.log',
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=5,
        delay=True
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    file_handler.setLevel(logging.DEBUG)
    return file_handler


class DotstrapLogger:
    """Main logger class for dotstrap."""

    def __init__(self, name: str = 'dotstrap'):
        self.name = name
        self.logger = logging.getLogger(name)

        # Child loggers propagate to the 'dotstrap' root logger
        if name != 'dotstrap' and name.startswith('dotstrap'):
            return

        self.logger.setLevel(logging.INFO)

        # Prevent duplicate handlers
        if self.logger.handlers:
            return

        self._setup_handlers()

    def _setup_handlers(self):
        """Setup logging handlers for console and file output."""
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=False,
            rich_tracebacks=True
        )
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        console_handler.setLevel(logging.INFO)
        self.logger.addHandler(console_handler)

        self._setup_file_handler()

    def _setup_file_handler(self):
        """Setup file logging handler."""
        self.logger.addHandler(default_file_handler())

    def set_level(self, level: str):
        """Set the logging level."""
        log_level = getattr(logging, level.upper(), logging.INFO)
        self.logger.setLevel(log_level)

        for handler in self.logger.handlers:
            if isinstance(handler, RichHandler):
                handler.setLevel(log_level)

    def debug(self, message: str, *args, **kwargs):
        """Log debug message."""
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        """Log info message."""
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        """Log warning message."""
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        """Log error message."""
        self.logger.error(message, *args, **kwargs)

    def exception(self, message: str, *args, **kwargs):
        """Log exception with traceback."""
        self.logger.exception(message, *args, **kwargs)


# Global logger instances
_loggers: Dict[str, DotstrapLogger] = {}


def get_logger(name: str = 'dotstrap') -> DotstrapLogger:
    """Get or create a logger instance."""
    if name != 'dotstrap' and 'dotstrap' not in _loggers:
        _loggers['dotstrap'] = DotstrapLogger('dotstrap')
    if name not in _loggers:
        _loggers[name] = DotstrapLogger(name)
    return _loggers[name]


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[Path] = None,
    verbose: bool = False
):
    """Setup logging configuration."""
    if verbose:
        level = 'DEBUG'

    logger = get_logger()
    logger.set_level(level)

    if log_file:
        try:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

            logger.logger.addHandler(file_handler)
            logger.info(f"Logging to file: {log_file}")

        except OSError as e:
            logger.warning(f"Could not setup custom log file {log_file}: {e}")
