"""Record Store - Abstraction for detail record and anomaly event persistence.

This module provides the interface the ingestion pipeline and the
analytics layer consume, decoupling them from a storage engine.

Design principles:
- Each write is a single-document atomic operation; no cross-record
  transactions are assumed
- Backends own their locking; callers never lock the store
- Per-write failures raise StoreError, DuplicateRecordError;
  systemic failures raise a StoreFatalError subclass
"""

from abc import ABC, abstractmethod
from typing import List, Set

from ipdr_intel.data.schemas import AnomalyEvent, DetailRecord
from ipdr_intel.storage.query import EventQuery, RecordQuery


# Fields distinct_values() accepts
DISTINCT_FIELDS = frozenset({
    "subscriber_number",
    "device_id",
    "subscriber_id",
    "private_address",
    "public_address",
    "dest_address",
    "cell_id",
})


class RecordStore(ABC):
    """Abstract base class for record store backends."""

    @abstractmethod
    def add_record(self, record: DetailRecord) -> DetailRecord:
        """Persist one normalized, classified record.

        Args:
            record: Record with provenance fields populated

        Returns:
            The stored record

        Raises:
            DuplicateRecordError: If the backend enforces natural-key
                uniqueness and the key already exists
            StoreError: If this single write fails
            StoreFatalError: If the store is unavailable or corrupt
        """
        pass

    @abstractmethod
    def add_event(self, event: AnomalyEvent) -> AnomalyEvent:
        """Persist one anomaly event."""
        pass

    @abstractmethod
    def find_records(self, query: RecordQuery) -> List[DetailRecord]:
        """Return records matching the query, sorted and limited as requested."""
        pass

    @abstractmethod
    def count_records(self, query: RecordQuery) -> int:
        """Count records matching the query, ignoring its limit."""
        pass

    @abstractmethod
    def distinct_values(self, field: str, query: RecordQuery) -> Set[str]:
        """Distinct values of one record field among matching records.

        Raises:
            InvalidQueryError: If field is not in DISTINCT_FIELDS
        """
        pass

    @abstractmethod
    def find_events(self, query: EventQuery) -> List[AnomalyEvent]:
        """Return events matching the query, newest detected_at first."""
        pass

    @abstractmethod
    def assign_case(self, event_id: str, case_id: str) -> AnomalyEvent:
        """Attach an event to a case. Only the reference is written.

        Raises:
            StoreError: If the event does not exist
        """
        pass
