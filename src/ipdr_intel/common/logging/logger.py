"""Centralized logging configuration."""

import logging
from typing import Optional

PACKAGE_LOGGER = "ipdr_intel"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_logger(name: str, level: str = "INFO") -> logging.Logger:
    """Get a configured logger instance."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(LOG_FORMAT)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def configure_logging(level: str = "INFO", name: Optional[str] = None) -> logging.Logger:
    """Configure the package root logger.

    Module loggers created with ``logging.getLogger(__name__)`` propagate
    to this logger, so one call at startup covers the whole package.
    """
    return get_logger(name or PACKAGE_LOGGER, level)
