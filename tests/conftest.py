"""Shared fixtures for IPDR Intel tests."""

from datetime import timedelta

import pytest

from ipdr_intel.common.config import Config, Environment, StoreType
from ipdr_intel.detection import RecordClassifier, apply, normalize_record
from ipdr_intel.storage import InMemoryRecordStore, TimeWindow

from tests.fixtures.ipdr_rows import BASE_START, build_row


@pytest.fixture
def config():
    """Deterministic configuration independent of the environment."""
    return Config(
        environment=Environment.DEVELOPMENT,
        timezone="UTC",
        store_type=StoreType.MEMORY,
        ingestion_workers=1,
        relationship_depth=1,
    )


@pytest.fixture
def store():
    """Empty in-memory store."""
    return InMemoryRecordStore()


@pytest.fixture
def classifier():
    return RecordClassifier(timezone="UTC")


@pytest.fixture
def window():
    """Window covering the default fixture rows."""
    return TimeWindow(start=BASE_START - timedelta(days=30), end=BASE_START + timedelta(days=30))


@pytest.fixture
def make_record(classifier):
    """Factory for normalized, classified, stored-shape records."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        record = normalize_record(build_row(**overrides))
        record = apply(record, classifier.classify(record))
        return record.model_copy(update={
            "record_id": f"ipdr_test{counter['n']:06d}",
            "created_by": "tester",
            "created_at": record.start_time,
        })

    return _make
