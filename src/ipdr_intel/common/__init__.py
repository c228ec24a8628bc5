"""Common utilities - logging, config, exceptions."""

from ipdr_intel.common.logging.logger import get_logger, configure_logging
from ipdr_intel.common.config import Config, load_config
from ipdr_intel.common.exceptions import (
    IPDRIntelError,
    ConfigurationError,
    RecordValidationError,
    DuplicateRecordError,
    StoreError,
    StoreFatalError,
    StoreUnavailableError,
    StoreIntegrityError,
    BatchAbortedError,
    BatchCancelledError,
    QueryTimeoutError,
    InvalidQueryError,
)

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    # Config
    "Config",
    "load_config",
    # Exceptions
    "IPDRIntelError",
    "ConfigurationError",
    "RecordValidationError",
    "DuplicateRecordError",
    "StoreError",
    "StoreFatalError",
    "StoreUnavailableError",
    "StoreIntegrityError",
    "BatchAbortedError",
    "BatchCancelledError",
    "QueryTimeoutError",
    "InvalidQueryError",
]
