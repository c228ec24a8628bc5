"""DetailRecord schema - canonical definition of one IPDR session.

RawDetailRecord holds the fields a caller supplies and enforces every
per-field rule. DetailRecord adds the derived fields; it is only ever
built by the normalizer, which recomputes them from the raw fields.
"""

import ipaddress
from datetime import datetime
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ipdr_intel.common.constants import ValidationConstants
from ipdr_intel.core.types import AccessType, ReasonCode


PROVENANCE_FIELDS = frozenset({"record_id", "created_by", "created_at"})


class GeoPoint(BaseModel):
    """Point location, stored longitude first like a GeoJSON point."""
    model_config = ConfigDict(frozen=True)

    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)

    @property
    def coordinates(self) -> Tuple[float, float]:
        return (self.longitude, self.latitude)


class RawDetailRecord(BaseModel):
    """User-supplied IPDR fields.

    Accepts snake_case names or the camelCase headers used by IPDR
    exports (privateIP, phoneNumber, imei, originLat, ...).
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
        frozen=True,
    )

    # Network endpoints
    private_address: str = Field(..., alias="privateIP", description="Private (NAT inside) IP address")
    private_port: int = Field(
        ..., alias="privatePort",
        ge=ValidationConstants.PORT_MIN, le=ValidationConstants.PORT_MAX,
    )
    public_address: str = Field(..., alias="publicIP", description="Public (NAT outside) IP address")
    public_port: int = Field(
        ..., alias="publicPort",
        ge=ValidationConstants.PORT_MIN, le=ValidationConstants.PORT_MAX,
    )
    dest_address: str = Field(..., alias="destIP", description="Counterpart IP address")
    dest_port: int = Field(
        ..., alias="destPort",
        ge=ValidationConstants.PORT_MIN, le=ValidationConstants.PORT_MAX,
    )

    # Identifiers
    subscriber_number: str = Field(
        ..., alias="phoneNumber",
        pattern=ValidationConstants.SUBSCRIBER_NUMBER_PATTERN,
        description="Subscriber phone number, 10-15 digits",
    )
    device_id: str = Field(
        ..., alias="imei",
        pattern=ValidationConstants.DEVICE_ID_PATTERN,
        description="Device identifier (IMEI), 15 digits",
    )
    subscriber_id: str = Field(
        ..., alias="imsi",
        pattern=ValidationConstants.SUBSCRIBER_ID_PATTERN,
        description="Subscriber identity (IMSI), 15 digits",
    )

    # Time window
    start_time: datetime = Field(..., alias="startTime")
    end_time: datetime = Field(..., alias="endTime")

    # Location
    cell_id: str = Field(..., alias="originCellID", min_length=1)
    latitude: float = Field(..., alias="originLat", ge=-90, le=90)
    longitude: float = Field(..., alias="originLong", ge=-180, le=180)

    # Volume
    uplink_bytes: int = Field(..., alias="uplinkVolume", ge=0)
    downlink_bytes: int = Field(..., alias="downlinkVolume", ge=0)

    access_type: AccessType = Field(..., alias="accessType")

    @field_validator("subscriber_number", "device_id", "subscriber_id", "cell_id", mode="before")
    @classmethod
    def _identifier_as_text(cls, value: Any) -> Any:
        # Spreadsheet exports often hand identifiers over as integers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("private_address", "public_address", "dest_address")
    @classmethod
    def _valid_address(cls, value: str) -> str:
        try:
            return str(ipaddress.ip_address(value))
        except ValueError:
            raise ValueError(f"Invalid IP address format: {value!r}")

    @model_validator(mode="after")
    def _valid_time_window(self) -> "RawDetailRecord":
        start_aware = self.start_time.tzinfo is not None
        end_aware = self.end_time.tzinfo is not None
        if start_aware != end_aware:
            raise ValueError("start_time and end_time must both carry a timezone or neither")
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self

    def raw_fields(self) -> dict:
        """Raw field values keyed by field name."""
        return {name: getattr(self, name) for name in RawDetailRecord.model_fields}


class DetailRecord(RawDetailRecord):
    """Normalized (and possibly classified) IPDR session.

    Derived fields are always consistent with the raw fields because the
    normalizer is the only producer of this type.
    """

    # Derived
    duration_ms: int = Field(..., ge=1, description="end_time - start_time in milliseconds")
    total_bytes: int = Field(..., ge=0, description="uplink_bytes + downlink_bytes")
    location: GeoPoint = Field(..., description="(longitude, latitude) point")
    suspicious: bool = Field(default=False)
    suspicious_reasons: List[ReasonCode] = Field(default_factory=list)

    # Provenance
    record_id: Optional[str] = Field(default=None, description="Store-assigned identifier")
    created_by: Optional[str] = Field(default=None, description="Ingesting actor (provenance only)")
    created_at: Optional[datetime] = Field(default=None, description="Ingestion timestamp")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "private_address": "10.0.0.12",
                "private_port": 40512,
                "public_address": "203.0.113.7",
                "public_port": 61000,
                "dest_address": "198.51.100.20",
                "dest_port": 443,
                "subscriber_number": "919876543210",
                "device_id": "356938035643809",
                "subscriber_id": "404450123456789",
                "start_time": "2026-01-25T23:10:00Z",
                "end_time": "2026-01-25T23:10:20Z",
                "cell_id": "CELL-DEL-0042",
                "latitude": 28.6139,
                "longitude": 77.209,
                "uplink_bytes": 2048,
                "downlink_bytes": 8192,
                "access_type": "4G",
                "duration_ms": 20000,
                "total_bytes": 10240,
                "location": {"longitude": 77.209, "latitude": 28.6139},
                "suspicious": True,
                "suspicious_reasons": ["HIGH_NIGHT_ACTIVITY", "SHORT_DURATION_FREQUENT"],
            }
        }
    )

    @property
    def duration_minutes(self) -> int:
        """Session length rounded to whole minutes."""
        return round(self.duration_ms / 60_000)

    @property
    def natural_key(self) -> Tuple[str, str, str, int, int]:
        """Business key used by stores that enforce uniqueness."""
        return (
            self.subscriber_number,
            self.start_time.isoformat(),
            self.dest_address,
            self.dest_port,
            self.private_port,
        )

    @property
    def endpoint_addresses(self) -> Tuple[str, str, str]:
        return (self.private_address, self.public_address, self.dest_address)
