"""Logging configuration for the Classified Ad Bot."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

from .settings import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that flood the output below these levels
_LIBRARY_LEVELS = {
    "aiogram": logging.INFO,
    "aiogram.event": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
}


def _build_handlers(log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8"
        ))

    return handlers


def setup_logging(log_file: Optional[str] = None, level: Optional[str] = None) -> None:
    """Configure the root logger once at startup.

    ``level`` overrides ``LOG_LEVEL``; the package itself logs at DEBUG in
    development so every publish, skip and moderation transition is visible.
    """
    level_name = (level or settings.log_level).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    root_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in _build_handlers(log_file):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name, library_level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)

    if settings.is_development:
        logging.getLogger("classified_ad_bot").setLevel(logging.DEBUG)

    logging.info(f"Logging configured - Level: {level_name}, Environment: {settings.environment}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given name."""
    return logging.getLogger(name)
