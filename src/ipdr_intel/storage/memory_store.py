"""In-memory record store.

Thread-safe dictionary backend used by the CLI, demos and tests.
Optionally enforces uniqueness on DetailRecord.natural_key.
"""

import logging
import threading
from typing import Dict, List, Set, Tuple
from uuid import uuid4

from ipdr_intel.common.exceptions import (
    DuplicateRecordError,
    InvalidQueryError,
    StoreError,
)
from ipdr_intel.data.schemas import AnomalyEvent, DetailRecord
from ipdr_intel.storage.query import EventQuery, RecordQuery
from ipdr_intel.storage.store import DISTINCT_FIELDS, RecordStore

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore):
    """Record store backed by process memory."""

    def __init__(self, enforce_unique: bool = True):
        """Initialize the store.

        Args:
            enforce_unique: Reject a second record with the same natural key
        """
        self.enforce_unique = enforce_unique
        self._lock = threading.Lock()
        self._records: Dict[str, DetailRecord] = {}
        self._keys: Dict[Tuple, str] = {}
        self._events: Dict[str, AnomalyEvent] = {}

    def add_record(self, record: DetailRecord) -> DetailRecord:
        if record.record_id is None:
            record = record.model_copy(update={"record_id": f"ipdr_{uuid4().hex[:12]}"})

        key = record.natural_key
        with self._lock:
            if record.record_id in self._records:
                raise StoreError(
                    f"Record id already exists: {record.record_id}",
                    details={"record_id": record.record_id},
                )
            if self.enforce_unique and key in self._keys:
                raise DuplicateRecordError(
                    "Record with the same natural key already exists",
                    details={
                        "natural_key": list(key),
                        "existing_record_id": self._keys[key],
                    },
                )
            self._records[record.record_id] = record
            self._keys.setdefault(key, record.record_id)
        return record

    def add_event(self, event: AnomalyEvent) -> AnomalyEvent:
        with self._lock:
            if event.event_id in self._events:
                raise StoreError(
                    f"Event id already exists: {event.event_id}",
                    details={"event_id": event.event_id},
                )
            self._events[event.event_id] = event
        return event

    def _snapshot(self) -> List[DetailRecord]:
        with self._lock:
            return list(self._records.values())

    def find_records(self, query: RecordQuery) -> List[DetailRecord]:
        return query.apply(self._snapshot())

    def count_records(self, query: RecordQuery) -> int:
        return sum(1 for r in self._snapshot() if query.matches(r))

    def distinct_values(self, field: str, query: RecordQuery) -> Set[str]:
        if field not in DISTINCT_FIELDS:
            raise InvalidQueryError(
                f"Unsupported distinct field: {field}",
                details={"field": field, "allowed": sorted(DISTINCT_FIELDS)},
            )
        return {getattr(r, field) for r in self._snapshot() if query.matches(r)}

    def find_events(self, query: EventQuery) -> List[AnomalyEvent]:
        with self._lock:
            events = list(self._events.values())
        return query.apply(events)

    def assign_case(self, event_id: str, case_id: str) -> AnomalyEvent:
        with self._lock:
            event = self._events.get(event_id)
            if event is None:
                raise StoreError(
                    f"Event not found: {event_id}",
                    details={"event_id": event_id},
                )
            updated = event.model_copy(update={"case_id": case_id})
            self._events[event_id] = updated
        logger.info(f"Event {event_id} attached to case {case_id}")
        return updated

    def get_record(self, record_id: str) -> DetailRecord:
        with self._lock:
            record = self._records.get(record_id)
        if record is None:
            raise StoreError(f"Record not found: {record_id}", details={"record_id": record_id})
        return record

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def event_count(self) -> int:
        with self._lock:
            return len(self._events)
