"""Query objects for the record store boundary.

Stores receive these plain predicates and decide how to evaluate them
(index lookups, scans with filter expressions, in-memory matching).
The matches() helpers define the reference semantics every backend
must agree with.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ipdr_intel.core.types import AccessType, AnomalyStatus, ReasonCode
from ipdr_intel.data.schemas import AnomalyEvent, DetailRecord


def as_utc(moment: datetime) -> datetime:
    """Comparable UTC form of a timestamp; naive values are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class TimeWindow(BaseModel):
    """Closed time interval [start, end]."""
    model_config = ConfigDict(frozen=True)

    start: datetime = Field(..., description="Inclusive lower bound")
    end: datetime = Field(..., description="Inclusive upper bound")

    @model_validator(mode="after")
    def _ordered(self) -> "TimeWindow":
        if as_utc(self.end) < as_utc(self.start):
            raise ValueError("window end must not precede window start")
        return self

    @classmethod
    def trailing(cls, days: int, now: Optional[datetime] = None) -> "TimeWindow":
        """Window covering the last `days` days up to now (UTC)."""
        end = now or datetime.now(timezone.utc)
        return cls(start=end - timedelta(days=days), end=end)

    @property
    def days(self) -> int:
        """Whole days spanned, rounded up."""
        span = as_utc(self.end) - as_utc(self.start)
        whole = span.days
        return whole + 1 if span - timedelta(days=whole) > timedelta(0) else whole

    def contains(self, moment: datetime) -> bool:
        value = as_utc(moment)
        return as_utc(self.start) <= value <= as_utc(self.end)


class GeoBounds(BaseModel):
    """Rectangular latitude/longitude bounding box."""
    model_config = ConfigDict(frozen=True)

    south: float = Field(..., ge=-90, le=90)
    west: float = Field(..., ge=-180, le=180)
    north: float = Field(..., ge=-90, le=90)
    east: float = Field(..., ge=-180, le=180)

    @model_validator(mode="after")
    def _ordered(self) -> "GeoBounds":
        if self.north < self.south:
            raise ValueError("north must not be below south")
        return self

    def contains(self, latitude: float, longitude: float) -> bool:
        if not self.south <= latitude <= self.north:
            return False
        if self.west <= self.east:
            return self.west <= longitude <= self.east
        # Box crossing the antimeridian
        return longitude >= self.west or longitude <= self.east


class RecordSortField(str, Enum):
    START_TIME = "start_time"
    CREATED_AT = "created_at"


class RecordQuery(BaseModel):
    """Predicate over DetailRecords. Unset filters match everything."""

    subscriber_numbers: Optional[List[str]] = None
    exclude_subscriber: Optional[str] = None
    dest_addresses: Optional[List[str]] = None
    # Matches private, public or destination address
    any_addresses: Optional[List[str]] = None
    device_ids: Optional[List[str]] = None
    subscriber_ids: Optional[List[str]] = None
    cell_ids: Optional[List[str]] = None
    access_types: Optional[List[AccessType]] = None
    window: Optional[TimeWindow] = Field(default=None, description="Filter on start_time")
    bounds: Optional[GeoBounds] = None
    suspicious: Optional[bool] = None
    min_bytes: Optional[int] = Field(default=None, ge=0)
    max_bytes: Optional[int] = Field(default=None, ge=0)
    min_duration_ms: Optional[int] = Field(default=None, ge=0)
    max_duration_ms: Optional[int] = Field(default=None, ge=0)

    sort_by: RecordSortField = RecordSortField.START_TIME
    descending: bool = False
    limit: Optional[int] = Field(default=None, ge=1)

    def matches(self, record: DetailRecord) -> bool:
        if self.subscriber_numbers is not None and record.subscriber_number not in self.subscriber_numbers:
            return False
        if self.exclude_subscriber is not None and record.subscriber_number == self.exclude_subscriber:
            return False
        if self.dest_addresses is not None and record.dest_address not in self.dest_addresses:
            return False
        if self.any_addresses is not None and not (
            set(record.endpoint_addresses) & set(self.any_addresses)
        ):
            return False
        if self.device_ids is not None and record.device_id not in self.device_ids:
            return False
        if self.subscriber_ids is not None and record.subscriber_id not in self.subscriber_ids:
            return False
        if self.cell_ids is not None and record.cell_id not in self.cell_ids:
            return False
        if self.access_types is not None and record.access_type not in self.access_types:
            return False
        if self.window is not None and not self.window.contains(record.start_time):
            return False
        if self.bounds is not None and not self.bounds.contains(record.latitude, record.longitude):
            return False
        if self.suspicious is not None and record.suspicious != self.suspicious:
            return False
        if self.min_bytes is not None and record.total_bytes < self.min_bytes:
            return False
        if self.max_bytes is not None and record.total_bytes > self.max_bytes:
            return False
        if self.min_duration_ms is not None and record.duration_ms < self.min_duration_ms:
            return False
        if self.max_duration_ms is not None and record.duration_ms > self.max_duration_ms:
            return False
        return True

    def sort_key(self, record: DetailRecord):
        if self.sort_by == RecordSortField.CREATED_AT:
            moment = record.created_at or record.start_time
        else:
            moment = record.start_time
        # record_id breaks ties so ordering is stable across backends
        return (as_utc(moment), record.record_id or "")

    def apply(self, records: List[DetailRecord]) -> List[DetailRecord]:
        """Filter, sort and limit an in-memory list of records."""
        selected = [r for r in records if self.matches(r)]
        selected.sort(key=self.sort_key, reverse=self.descending)
        if self.limit is not None:
            selected = selected[: self.limit]
        return selected

    def unbounded(self) -> "RecordQuery":
        """Same predicate without the limit (for counts)."""
        return self.model_copy(update={"limit": None})


class EventQuery(BaseModel):
    """Predicate over AnomalyEvents. Unset filters match everything."""

    window: Optional[TimeWindow] = Field(default=None, description="Filter on detected_at")
    subscriber_number: Optional[str] = None
    statuses: Optional[List[AnomalyStatus]] = None
    reason_codes: Optional[List[ReasonCode]] = None
    limit: Optional[int] = Field(default=None, ge=1)

    def matches(self, event: AnomalyEvent) -> bool:
        if self.window is not None and not self.window.contains(event.detected_at):
            return False
        if self.subscriber_number is not None and event.subscriber_number != self.subscriber_number:
            return False
        if self.statuses is not None and event.status not in self.statuses:
            return False
        if self.reason_codes is not None and event.reason_code not in self.reason_codes:
            return False
        return True

    def apply(self, events: List[AnomalyEvent]) -> List[AnomalyEvent]:
        """Filter, order newest first and limit."""
        selected = [e for e in events if self.matches(e)]
        selected.sort(key=lambda e: (as_utc(e.detected_at), e.event_id), reverse=True)
        if self.limit is not None:
            selected = selected[: self.limit]
        return selected
