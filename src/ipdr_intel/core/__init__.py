"""Core enums shared across the engine."""

from ipdr_intel.core.types import (
    AccessType,
    ReasonCode,
    Severity,
    AnomalyStatus,
    StrengthTier,
    TrendGranularity,
)

__all__ = [
    "AccessType",
    "ReasonCode",
    "Severity",
    "AnomalyStatus",
    "StrengthTier",
    "TrendGranularity",
]
