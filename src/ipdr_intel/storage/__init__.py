"""Storage - record store boundary and backends."""

from ipdr_intel.common.config import Config, StoreType
from ipdr_intel.storage.query import (
    EventQuery,
    GeoBounds,
    RecordQuery,
    RecordSortField,
    TimeWindow,
    as_utc,
)
from ipdr_intel.storage.store import DISTINCT_FIELDS, RecordStore
from ipdr_intel.storage.memory_store import InMemoryRecordStore
from ipdr_intel.storage.cases import CaseStore, StaticCaseStore


def create_record_store(config: Config) -> RecordStore:
    """Build the record store backend selected by config.store_type."""
    if config.store_type == StoreType.DYNAMODB:
        from ipdr_intel.storage.dynamodb_store import DynamoDBRecordStore
        return DynamoDBRecordStore.from_config(config)
    return InMemoryRecordStore()


__all__ = [
    "EventQuery",
    "GeoBounds",
    "RecordQuery",
    "RecordSortField",
    "TimeWindow",
    "as_utc",
    "DISTINCT_FIELDS",
    "RecordStore",
    "InMemoryRecordStore",
    "CaseStore",
    "StaticCaseStore",
    "create_record_store",
]
