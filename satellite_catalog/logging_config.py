"""
Logging Configuration

Centralized logging configuration for the satellite catalog.
All modules should use this logger for consistent, structured output.

Usage:
    from satellite_catalog.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Fetched satellites", source="celestrak", count=8123)
    logger.warning("TLE checksum mismatch", name="ISS (ZARYA)", line=1)
    logger.error("Provider unavailable", provider="space-track")

Log records are rendered as JSON by structlog and handed to the standard
library ``logging`` module, so handlers, levels and test capture work as usual.
"""

import logging
import os
import sys
from typing import Optional

import structlog

# Default logging format (the structlog JSON payload is the message)
LOG_FORMAT = "%(message)s"


def configure_logging(level: Optional[int] = None, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the entire application.

    Parameters
    ----------
    level : int, optional
        Logging level (e.g., logging.DEBUG, logging.INFO). Defaults to the
        ``LOG_LEVEL`` environment variable, then INFO.
    log_file : str, optional
        Path to log file. If None, logs only to console.
    """
    if level is None:
        level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers
    )
    # basicConfig is a no-op once handlers exist; reconfiguration still changes the level
    logging.getLogger().setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(default=str)
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Parameters
    ----------
    name : str
        Name of the logger (typically __name__)

    Returns
    -------
    structlog.stdlib.BoundLogger
        Structured logger bound to the stdlib logger of the same name
    """
    return structlog.get_logger(name)


# Configure default logging on module import
configure_logging()
