"""IPDR Intel - IP detail record ingestion, classification and analytics engine."""

__version__ = "0.1.0"
__author__ = "IPDR Intel Team"

# Core exports
from ipdr_intel.core.types import (
    AccessType,
    AnomalyStatus,
    ReasonCode,
    Severity,
    StrengthTier,
    TrendGranularity,
)

__all__ = [
    "AccessType",
    "AnomalyStatus",
    "ReasonCode",
    "Severity",
    "StrengthTier",
    "TrendGranularity",
]
