"""Logging helpers."""

from ipdr_intel.common.logging.logger import get_logger, configure_logging

__all__ = ["get_logger", "configure_logging"]
