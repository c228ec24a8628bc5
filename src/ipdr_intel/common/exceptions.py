"""Custom exceptions for IPDR Intel.

Provides a hierarchy of exceptions for different error types.
All IPDR Intel exceptions inherit from IPDRIntelError.

Per-row failures (validation, conflict, row-level store errors) are
recovered by the ingestion pipeline and reported in the batch summary.
Subclasses of StoreFatalError abort the whole batch or query.
"""

from typing import Any, Dict, Optional


class IPDRIntelError(Exception):
    """Base exception for all IPDR Intel errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: str = "IPDR_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(IPDRIntelError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIG_ERROR", details=details)


class RecordValidationError(IPDRIntelError):
    """Raised when a raw record fails field validation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class DuplicateRecordError(IPDRIntelError):
    """Raised when a record collides with an existing natural key."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFLICT_ERROR", details=details)


class StoreError(IPDRIntelError):
    """Raised when a single store write or read fails (recoverable per row)."""

    def __init__(
        self,
        message: str,
        code: str = "STORE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code=code, details=details)


class StoreFatalError(StoreError):
    """Base for store failures that abort the whole batch or query."""
    pass


class StoreUnavailableError(StoreFatalError):
    """Raised on timeout or connection loss. Retryable by the caller."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="STORE_UNAVAILABLE", details=details)


class StoreIntegrityError(StoreFatalError):
    """Raised on schema mismatch or corrupt data. Not retryable."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="STORE_INTEGRITY", details=details)


class BatchAbortedError(IPDRIntelError):
    """Raised when a systemic store failure aborts an ingestion batch.

    The partial IngestionResult collected before the abort is attached
    as ``result``.
    """

    def __init__(
        self,
        message: str,
        result: Any = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.result = result
        super().__init__(message, code="BATCH_ABORTED", details=details)


class BatchCancelledError(IPDRIntelError):
    """Raised when an ingestion batch is cancelled between rows."""

    def __init__(
        self,
        message: str,
        result: Any = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.result = result
        super().__init__(message, code="BATCH_CANCELLED", details=details)


class QueryTimeoutError(IPDRIntelError):
    """Raised when an analytical query exceeds the caller's timeout."""

    def __init__(
        self,
        message: str,
        query_name: str,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["query_name"] = query_name
        super().__init__(message, code="QUERY_TIMEOUT", details=details)


class InvalidQueryError(IPDRIntelError):
    """Raised when query arguments are malformed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INVALID_QUERY", details=details)
