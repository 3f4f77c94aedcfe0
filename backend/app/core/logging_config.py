"""
Logging configuration for the application.
"""

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = None, to_file: bool = True):
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for rotating log files
        to_file: Whether to write app.log / errors.log next to console output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Clear any existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if to_file:
        directory = Path(log_dir) if log_dir else Path(__file__).parent.parent.parent / "logs"
        directory.mkdir(parents=True, exist_ok=True)

        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # All logs
        file_handler = RotatingFileHandler(
            directory / "app.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)

        # Errors only
        error_handler = RotatingFileHandler(
            directory / "errors.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(file_formatter)

        root_logger.addHandler(file_handler)
        root_logger.addHandler(error_handler)

    # Set logging levels for third-party libraries
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("minio").setLevel(logging.INFO)
    logging.getLogger("passlib").setLevel(logging.ERROR)

    root_logger.info(f"Logging initialized - Level: {log_level}")

    return root_logger


@contextmanager
def trace_storage_operation(
    operation: str,
    bucket: str,
    filename: str,
    file_size: Optional[int] = None,
):
    """Log timing and outcome of a single object storage call."""
    logger = logging.getLogger("app.storage")
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.error(
            f"Storage {operation} failed: bucket={bucket} key={filename} "
            f"after {elapsed_ms:.1f}ms: {e}"
        )
        raise
    else:
        elapsed_ms = (time.perf_counter() - started) * 1000
        size = f" size={file_size}" if file_size is not None else ""
        logger.debug(
            f"Storage {operation}: bucket={bucket} key={filename}{size} in {elapsed_ms:.1f}ms"
        )
