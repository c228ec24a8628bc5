"""Unit tests for the batch ingestion pipeline."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from ipdr_intel.common.config import Config, Environment, StoreType
from ipdr_intel.common.exceptions import (
    BatchAbortedError,
    BatchCancelledError,
    StoreError,
    StoreUnavailableError,
)
from ipdr_intel.core.types import AnomalyStatus, ReasonCode
from ipdr_intel.ingestion import IngestionPipeline
from ipdr_intel.storage import EventQuery, InMemoryRecordStore, RecordQuery, TimeWindow

from tests.fixtures.ipdr_rows import BASE_START, build_row, build_rows


class FailingRecordStore(InMemoryRecordStore):
    """Store that goes down after a number of successful record writes."""

    def __init__(self, fail_after: int):
        super().__init__()
        self.fail_after = fail_after
        self.record_writes = 0

    def add_record(self, record):
        if self.record_writes >= self.fail_after:
            raise StoreUnavailableError("connection reset by peer")
        self.record_writes += 1
        return super().add_record(record)


class EventRejectingStore(InMemoryRecordStore):
    """Store that rejects every event write individually."""

    def add_event(self, event):
        raise StoreError("item too large", details={"event_id": event.event_id})


@pytest.fixture
def pipeline(store, classifier, config):
    return IngestionPipeline(store, classifier=classifier, config=config)


def _night_row(**overrides):
    return build_row(startTime=datetime(2026, 1, 25, 23, 10, tzinfo=timezone.utc), **overrides)


class TestRowIsolation:
    """A malformed row is reported and never affects the others."""

    def test_malformed_row_reported_at_its_index(self, pipeline, store):
        rows = build_rows(5)
        rows[2]["destIP"] = "999.1.1.1"

        result = pipeline.ingest(rows, actor_id="analyst_1")

        assert result.processed_count == 5
        assert result.created_count == 4
        assert result.failure_count == 1
        failure = result.failures[0]
        assert failure.row_index == 2
        assert failure.error_code == "VALIDATION_ERROR"
        assert failure.raw_row is rows[2]
        assert len(store) == 4

    def test_sub_millisecond_session_is_row_failure(self, pipeline, store):
        """End after start but under 1 ms apart cannot yield a duration."""
        rows = build_rows(3)
        rows[1] = build_row(startTime=rows[1]["startTime"], duration=timedelta(microseconds=500))

        result = pipeline.ingest(rows, actor_id="analyst_1")

        assert result.processed_count == 3
        assert result.created_count == 2
        assert [f.row_index for f in result.failures] == [1]
        assert result.failures[0].error_code == "VALIDATION_ERROR"
        assert len(store) == 2

    def test_all_rows_failing(self, pipeline):
        rows = [{"phoneNumber": "1"}, "not a row", {}]

        result = pipeline.ingest(rows, actor_id="analyst_1")

        assert result.processed_count == 3
        assert result.created_count == 0
        assert [f.row_index for f in result.failures] == [0, 1, 2]

    def test_empty_batch(self, pipeline):
        result = pipeline.ingest([], actor_id="analyst_1")

        assert result.processed_count == 0
        assert result.to_summary()["errors"] == 0

    def test_duplicate_row_is_conflict(self, pipeline):
        row = build_row()
        result = pipeline.ingest([row, dict(row)], actor_id="analyst_1")

        assert result.created_count == 1
        assert result.failures[0].row_index == 1
        assert result.failures[0].error_code == "CONFLICT_ERROR"

    def test_provenance_stamped(self, pipeline, store):
        result = pipeline.ingest([build_row()], actor_id="analyst_7")

        record = store.get_record(result.created_record_ids[0])
        assert record.created_by == "analyst_7"
        assert record.created_at is not None
        assert record.record_id.startswith("ipdr_")


class TestEvents:
    """One event per triggered reason."""

    def test_clean_row_creates_no_event(self, pipeline, store):
        result = pipeline.ingest([build_row()], actor_id="analyst_1")

        assert result.event_ids == []
        assert store.event_count == 0

    def test_event_per_reason(self, pipeline, store):
        row = _night_row(duration=timedelta(seconds=5), downlinkVolume=50_000_000)

        result = pipeline.ingest([row], actor_id="analyst_1")

        events = store.find_events(EventQuery())
        assert len(result.event_ids) == 3
        assert {e.reason_code for e in events} == {
            ReasonCode.HIGH_NIGHT_ACTIVITY,
            ReasonCode.UNUSUAL_DATA_VOLUME,
            ReasonCode.SHORT_DURATION_FREQUENT,
        }

    def test_event_fields(self, pipeline, store):
        result = pipeline.ingest([_night_row()], actor_id="analyst_1")

        event = store.find_events(EventQuery())[0]
        record_id = result.created_record_ids[0]
        assert event.status == AnomalyStatus.NEW
        assert event.record_ids == [record_id]
        assert event.related_addresses == ["198.51.100.20"]
        assert event.algorithm == "rule:HIGH_NIGHT_ACTIVITY"
        assert event.risk_score == 40.0
        assert event.case_id is None

    def test_record_flags_match_events(self, pipeline, store):
        pipeline.ingest([_night_row()], actor_id="analyst_1")

        record = store.find_records(RecordQuery())[0]
        assert record.suspicious is True
        assert record.suspicious_reasons == [ReasonCode.HIGH_NIGHT_ACTIVITY]

    def test_rejected_event_is_dropped_not_fatal(self, classifier, config):
        store = EventRejectingStore()
        pipeline = IngestionPipeline(store, classifier=classifier, config=config)

        result = pipeline.ingest([_night_row(), build_row()], actor_id="analyst_1")

        assert result.created_count == 2
        assert result.failure_count == 0
        assert result.dropped_event_count == 1
        assert result.to_summary()["dropped_events"] == 1


class TestSystemicFailure:
    """StoreFatalError aborts the batch with the partial result."""

    def test_abort_carries_partial_result(self, classifier, config):
        store = FailingRecordStore(fail_after=2)
        pipeline = IngestionPipeline(store, classifier=classifier, config=config)

        with pytest.raises(BatchAbortedError) as exc_info:
            pipeline.ingest(build_rows(5), actor_id="analyst_1")

        error = exc_info.value
        assert error.code == "BATCH_ABORTED"
        assert error.details["cause"] == "STORE_UNAVAILABLE"
        partial = error.result
        assert partial.created_count == 2
        assert partial.processed_count == 3
        assert partial.failures[0].row_index == 2
        assert partial.failures[0].error_code == "STORE_UNAVAILABLE"

    def test_parallel_abort(self, classifier):
        config = Config(timezone="UTC", store_type=StoreType.MEMORY, ingestion_workers=4)
        store = FailingRecordStore(fail_after=0)
        pipeline = IngestionPipeline(store, classifier=classifier, config=config)

        with pytest.raises(BatchAbortedError) as exc_info:
            pipeline.ingest(build_rows(10), actor_id="analyst_1")

        assert exc_info.value.result.created_count == 0


class TestCancellation:

    def test_cancel_before_start(self, pipeline):
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(BatchCancelledError) as exc_info:
            pipeline.ingest(build_rows(3), actor_id="analyst_1", cancel_event=cancel)

        assert exc_info.value.result.processed_count == 0

    def test_cancel_between_rows(self, pipeline, store):
        cancel = threading.Event()

        def rows():
            yield build_row()
            cancel.set()
            yield build_row(startTime=BASE_START + timedelta(hours=1))

        with pytest.raises(BatchCancelledError) as exc_info:
            pipeline.ingest(rows(), actor_id="analyst_1", cancel_event=cancel)

        assert exc_info.value.result.created_count == 1
        assert len(store) == 1


class TestParallelIngestion:

    @pytest.fixture
    def parallel_pipeline(self, classifier):
        config = Config(timezone="UTC", store_type=StoreType.MEMORY, ingestion_workers=4)
        return IngestionPipeline(InMemoryRecordStore(), classifier=classifier, config=config)

    def test_failures_reported_in_row_order(self, parallel_pipeline):
        rows = build_rows(20)
        for index in (3, 11, 17):
            rows[index]["destPort"] = 0

        result = parallel_pipeline.ingest(rows, actor_id="analyst_1")

        assert result.processed_count == 20
        assert result.created_count == 17
        assert [f.row_index for f in result.failures] == [3, 11, 17]
        assert len(parallel_pipeline.store) == 17

    def test_same_outcome_as_sequential(self, parallel_pipeline, pipeline):
        rows = build_rows(8)
        rows[5]["imei"] = "123"

        parallel = parallel_pipeline.ingest(rows, actor_id="a").to_summary()
        sequential = pipeline.ingest(rows, actor_id="a").to_summary()

        for key in ("processed", "created", "errors", "events"):
            assert parallel[key] == sequential[key]


class TestSummary:

    def test_preview_is_bounded(self, pipeline):
        rows = [{"bad": i} for i in range(15)]

        result = pipeline.ingest(rows, actor_id="analyst_1")
        summary = result.to_summary()

        assert summary["errors"] == 15
        assert len(summary["error_details"]) == 10
        assert summary["error_details"][0]["row_index"] == 0
        assert result.failure_count == 15


class TestNaiveTimestamps:
    """Naive export times are read in the configured zone."""

    @pytest.fixture
    def kolkata_pipeline(self, store):
        config = Config(
            environment=Environment.DEVELOPMENT,
            timezone="Asia/Kolkata",
            store_type=StoreType.MEMORY,
            ingestion_workers=1,
        )
        return IngestionPipeline(store, config=config)

    def test_stored_with_configured_offset(self, kolkata_pipeline, store):
        kolkata_pipeline.ingest([build_row(startTime=datetime(2026, 1, 25, 23, 0))], actor_id="analyst_1")

        record = store.find_records(RecordQuery())[0]

        assert record.start_time.utcoffset() == timedelta(hours=5, minutes=30)
        assert record.start_time == datetime(2026, 1, 25, 17, 30, tzinfo=timezone.utc)
        assert record.suspicious_reasons == [ReasonCode.HIGH_NIGHT_ACTIVITY]

    def test_window_queries_agree_with_classification(self, kolkata_pipeline, store):
        kolkata_pipeline.ingest([build_row(startTime=datetime(2026, 1, 25, 23, 0))], actor_id="analyst_1")
        utc_hour = TimeWindow(
            start=datetime(2026, 1, 25, 17, 0, tzinfo=timezone.utc),
            end=datetime(2026, 1, 25, 18, 0, tzinfo=timezone.utc),
        )

        assert store.count_records(RecordQuery(window=utc_hour, suspicious=True)) == 1
