"""
Logging utility module.

This module provides consistent logging configuration across the application:
one console handler and, optionally, a dated file handler.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_file_logging(log_dir: str = "logs") -> logging.Handler:
    """
    Set up file logging in addition to console logging.

    Args:
        log_dir: Directory to store log files
    """
    # Create log directory if it doesn't exist
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d")
    file_handler = logging.FileHandler(
        log_path / f"app_{timestamp}.log",
        encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.getLogger().addHandler(file_handler)
    return file_handler


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure the root logger once at startup.

    Args:
        level: Name of the log level (DEBUG, INFO, ...)
        log_dir: When given, also write to a dated file in this directory
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    if log_dir:
        setup_file_logging(log_dir)

    # Third-party clients are chatty at INFO
    for noisy in ("botocore", "aiobotocore", "httpx", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
