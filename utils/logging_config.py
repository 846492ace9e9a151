"""
Centralized logging configuration for the scheduling engine.
Console output always; an optional rotating file per component.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from config import settings

DEFAULT_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(filename)s:%(lineno)d] - %(message)s"
)


def setup_logging(
    name: str,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Setup logging for a module.

    Args:
        name: Logger name (typically __name__)
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: settings.log_level)
        log_file: Optional log file name, created under log_dir
        log_dir: Directory for log files (default: settings.log_dir)
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep
        format_string: Custom format string

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    logger.setLevel(level)

    formatter = logging.Formatter(
        format_string or DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_dir_path = Path(log_dir or settings.log_dir)
        log_dir_path.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_dir_path / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
