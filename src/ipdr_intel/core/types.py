"""Core types and enums."""

from enum import Enum


class AccessType(str, Enum):
    """Radio access technology of a session."""
    G2 = "2G"
    G3 = "3G"
    G4 = "4G"
    G5 = "5G"


class ReasonCode(str, Enum):
    """Anomaly reason codes.

    Only the first three are produced by the single-record classifier.
    The rest need cross-record state and are extension points.
    """
    HIGH_NIGHT_ACTIVITY = "HIGH_NIGHT_ACTIVITY"
    UNUSUAL_DATA_VOLUME = "UNUSUAL_DATA_VOLUME"
    SHORT_DURATION_FREQUENT = "SHORT_DURATION_FREQUENT"
    MULTIPLE_DEVICES = "MULTIPLE_DEVICES"
    LOCATION_ANOMALY = "LOCATION_ANOMALY"
    FOREIGN_IP_COMMUNICATION = "FOREIGN_IP_COMMUNICATION"
    BURST_COMMUNICATION = "BURST_COMMUNICATION"
    PATTERN_DEVIATION = "PATTERN_DEVIATION"
    ENCRYPTION_DETECTED = "ENCRYPTION_DETECTED"


class Severity(str, Enum):
    """Severity levels, ordered LOW < MEDIUM < HIGH < CRITICAL."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class AnomalyStatus(str, Enum):
    """Workflow status of an anomaly event. Set to NEW by the core only."""
    NEW = "NEW"
    FLAGGED = "FLAGGED"
    UNDER_INVESTIGATION = "UNDER_INVESTIGATION"
    RESOLVED = "RESOLVED"
    FALSE_POSITIVE = "FALSE_POSITIVE"


class StrengthTier(str, Enum):
    """Coarse bucketing of contact frequency."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class TrendGranularity(str, Enum):
    """Bucket size for activity trends."""
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
