"""Reason taxonomy - explicit reason code to severity/description mapping.

Every ReasonCode must have an entry. The table is checked when this
module is imported so a missing entry fails at startup, not at the first
suspicious record.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from ipdr_intel.common.exceptions import ConfigurationError
from ipdr_intel.core.types import ReasonCode, Severity
from ipdr_intel.data.schemas import DetailRecord


@dataclass(frozen=True)
class ReasonSpec:
    """Static facts about one reason code."""
    severity: Severity
    description_template: str
    # False for codes that need cross-record state (extension points)
    implemented: bool = False


REASON_TAXONOMY: Dict[ReasonCode, ReasonSpec] = {
    ReasonCode.HIGH_NIGHT_ACTIVITY: ReasonSpec(
        severity=Severity.MEDIUM,
        description_template="High frequency communications during night hours ({local_hour:02d}:00)",
        implemented=True,
    ),
    ReasonCode.UNUSUAL_DATA_VOLUME: ReasonSpec(
        severity=Severity.HIGH,
        description_template="Unusual data volume: {total_bytes} bytes",
        implemented=True,
    ),
    ReasonCode.SHORT_DURATION_FREQUENT: ReasonSpec(
        severity=Severity.HIGH,
        description_template="Short duration session: {duration_ms}ms",
        implemented=True,
    ),
    ReasonCode.MULTIPLE_DEVICES: ReasonSpec(
        severity=Severity.CRITICAL,
        description_template="Multiple device usage detected for {subscriber_number}",
    ),
    ReasonCode.LOCATION_ANOMALY: ReasonSpec(
        severity=Severity.MEDIUM,
        description_template="Location anomaly near cell {cell_id}",
    ),
    ReasonCode.FOREIGN_IP_COMMUNICATION: ReasonSpec(
        severity=Severity.MEDIUM,
        description_template="Communication with foreign address {dest_address}",
    ),
    ReasonCode.BURST_COMMUNICATION: ReasonSpec(
        severity=Severity.MEDIUM,
        description_template="Burst of sessions from {subscriber_number}",
    ),
    ReasonCode.PATTERN_DEVIATION: ReasonSpec(
        severity=Severity.MEDIUM,
        description_template="Deviation from usual pattern for {subscriber_number}",
    ),
    ReasonCode.ENCRYPTION_DETECTED: ReasonSpec(
        severity=Severity.MEDIUM,
        description_template="Encrypted traffic to {dest_address}:{dest_port}",
    ),
}


def validate_taxonomy(taxonomy: Dict[ReasonCode, ReasonSpec] = REASON_TAXONOMY) -> None:
    """Fail fast if any reason code lacks a mapping entry.

    Raises:
        ConfigurationError: Listing the unmapped codes
    """
    missing = [code.value for code in ReasonCode if code not in taxonomy]
    if missing:
        raise ConfigurationError(
            f"Reason taxonomy is missing entries for: {', '.join(missing)}",
            details={"missing": missing},
        )


def severity_for(reason: ReasonCode) -> Severity:
    return REASON_TAXONOMY[reason].severity


def describe(reason: ReasonCode, record: DetailRecord, local_hour: Optional[int] = None) -> str:
    """Render the description of a detection for one record.

    local_hour defaults to the hour of start_time as stored.
    """
    if local_hour is None:
        local_hour = record.start_time.hour
    template = REASON_TAXONOMY[reason].description_template
    return template.format(
        local_hour=local_hour,
        total_bytes=record.total_bytes,
        duration_ms=record.duration_ms,
        subscriber_number=record.subscriber_number,
        cell_id=record.cell_id,
        dest_address=record.dest_address,
        dest_port=record.dest_port,
    )


validate_taxonomy()
