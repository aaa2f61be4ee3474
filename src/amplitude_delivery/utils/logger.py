"""
Module: logger.py
Description: Structured logging configuration for the delivery client.

Configures structlog for JSON output so delivery attempts, retries and
swallowed failures can be shipped to any log aggregator as-is.

Key Components:
- JSON output with timestamp and level processors
- configure_logging(): Level filtering, AMPLITUDE_LOG_LEVEL at import
- get_logger() helper function

Dependencies: structlog, logging, os, datetime
Author: Analytics Platform Team
"""

import logging
import os
from datetime import datetime, timezone

import structlog


def _add_timestamp(logger, method_name, event_dict):
    """
    Add ISO 8601 timestamp to log entries.

    Args:
        logger: Logger instance
        method_name: Log method name (info, error, etc.)
        event_dict: Current log event dictionary

    Returns:
        Updated event dictionary with timestamp
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def _add_log_level(logger, method_name, event_dict):
    """Add log level to event dictionary."""
    event_dict["level"] = method_name.upper()
    return event_dict


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: str = "INFO") -> None:
    """
    Configure structlog JSON output filtered at the given level.

    Loggers are not cached on first use, so module-level loggers follow
    later reconfiguration.

    Args:
        level: Standard level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    structlog.configure(
        processors=[
            _add_timestamp,
            _add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.WriteLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(level)),
        cache_logger_on_first_use=False,
    )


configure_logging(os.environ.get("AMPLITUDE_LOG_LEVEL", "INFO"))


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Chunk delivered", chunk_index=0, events=1000)
        {"chunk_index": 0, "events": 1000, "event": "Chunk delivered", "timestamp": "...", "level": "INFO"}
    """
    return structlog.get_logger(name)
