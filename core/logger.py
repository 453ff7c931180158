"""Logging configuration module."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from core.config import LoggingConfig


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup logging with console and optional file handlers.

    Args:
        config: Logging configuration
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    # Remove existing handlers
    root_logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S'
    )

    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # File handler with rotation
        file_handler = RotatingFileHandler(
            filename=config.file,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(config.level)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    # Console handler on stderr, stdout carries the report
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(config.level)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    # Suppress verbose loggers
    logging.getLogger('aiohttp').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)
