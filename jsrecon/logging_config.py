"""
Logging configuration for analysis runs.

This module provides structured JSON logging of scan events: per-stage
progress, skipped files, rejected detectors and written artifacts.
"""

import json
import logging
from logging.handlers import TimedRotatingFileHandler
from typing import Any

# Extra record attributes copied into the JSON entry when present
_EVENT_FIELDS = ("event", "site", "stage", "file", "detector", "count", "artifact", "error")


class ScanEventFormatter(logging.Formatter):
    """Custom formatter for scan event logs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log records with structured data."""
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _EVENT_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def configure_scan_logging(
    log_file: str | None = None,
    log_level: str = "INFO",
    enable_console: bool = True,
) -> logging.Logger:
    """
    Configure logging for the ``jsrecon`` logger hierarchy.

    Args:
        log_file: Path to a JSON log file (optional)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_console: Whether to also log to console

    Returns:
        The configured ``jsrecon`` logger.
    """
    logger = logging.getLogger("jsrecon")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.propagate = False

    logger.handlers.clear()

    formatter = ScanEventFormatter()

    if log_file:
        # Rotate daily, keep a week
        file_handler = TimedRotatingFileHandler(
            log_file,
            when="D",
            interval=1,
            backupCount=7,
            encoding="utf-8",
            utc=False,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_scan_logger() -> logging.Logger:
    """Get the logger used for pipeline stage events."""
    return logging.getLogger("jsrecon.events")
