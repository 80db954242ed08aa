"""
Structured logging with upload event logging.
"""

import os
import logging
import logging.handlers
import time
from functools import wraps


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure structured logging for the application."""
    # Clean console format, compact and readable
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    # Verbose format for log file
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-28s | %(threadName)-14s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Remove existing handlers
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    # File handler (rotating)
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    # Keep HTTP connection chatter out of the console
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return root_logger


class UploadLogger:
    """Specialized logger for sample upload outcomes."""

    def __init__(self, max_history: int = 500):
        self.logger = logging.getLogger("upload_events")
        self._history = []
        self._max_history = max_history

    def log_upload(self, label, size_bytes, success=True, latency_ms=None, detail=""):
        """Log one upload attempt."""
        entry = {
            "timestamp": time.time(),
            "label": label,
            "size_bytes": size_bytes,
            "success": success,
            "latency_ms": latency_ms,
            "detail": detail,
        }
        self._history.append(entry)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        log = self.logger.info if success else self.logger.warning
        log(
            "Upload: %-6s | %7d bytes | Success: %-5s | Latency: %s | %s",
            label,
            size_bytes,
            success,
            f"{latency_ms:.1f}ms" if latency_ms is not None else "N/A",
            detail,
        )

    def get_history(self, last_n=None):
        """Get recent upload history."""
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()

    @property
    def total_uploads(self):
        return len(self._history)

    @property
    def failed_uploads(self):
        return sum(1 for e in self._history if not e["success"])


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
