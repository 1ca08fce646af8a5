"""
Logging utilities with prefixed loggers for easier debugging.

Usage:
    from medisafe.utils.logging import get_logger

    logger = get_logger(__name__, prefix="Share")
    logger.info("Link created")  # Output: [Share] Link created
"""

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class PrefixedLogger(logging.LoggerAdapter):
    """Logger adapter that adds a prefix to all log messages."""

    def __init__(self, logger: logging.Logger, prefix: str):
        super().__init__(logger, {})
        self.prefix = f"[{prefix}]"

    def process(self, msg, kwargs):
        """Add prefix to the message."""
        return f"{self.prefix} {msg}", kwargs


def get_logger(name: str, prefix: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with an optional prefix.

    Args:
        name: Logger name (typically __name__)
        prefix: Optional prefix to add to all messages (e.g., "Share", "Ingest")

    Returns:
        Logger instance (with prefix adapter if prefix is provided)
    """
    base_logger = logging.getLogger(name)

    if prefix:
        return PrefixedLogger(base_logger, prefix)

    return base_logger


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at application start."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
