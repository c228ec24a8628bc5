"""Ingestion Pipeline - batch normalize, classify and persist IPDR rows.

Each row is handled independently:
  normalize -> classify -> persist record -> persist one event per reason

A bad row is reported and skipped; it never affects other rows.
Only systemic store failures (StoreFatalError) stop the batch.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional
from uuid import uuid4

from ipdr_intel.common.config import Config
from ipdr_intel.common.exceptions import (
    BatchAbortedError,
    BatchCancelledError,
    IPDRIntelError,
    StoreError,
    StoreFatalError,
)
from ipdr_intel.data.schemas import AnomalyEvent, DetailRecord
from ipdr_intel.detection.classifier import RecordClassifier, apply
from ipdr_intel.detection.normalizer import normalize_record
from ipdr_intel.detection.schema import Classification
from ipdr_intel.ingestion.result import IngestionResult, RowFailure
from ipdr_intel.storage.store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class _RowOutcome:
    """What happened to one row."""
    row_index: int
    record_id: Optional[str] = None
    event_ids: List[str] = field(default_factory=list)
    dropped_events: int = 0
    failure: Optional[RowFailure] = None
    fatal: Optional[StoreFatalError] = None
    skipped: bool = False


class IngestionPipeline:
    """Batch ingestion over a RecordStore.

    Holds no per-batch state, so one pipeline can run several batches
    concurrently.
    """

    def __init__(
        self,
        store: RecordStore,
        classifier: Optional[RecordClassifier] = None,
        config: Optional[Config] = None,
    ):
        """Initialize the pipeline.

        Args:
            store: Record store receiving records and events
            classifier: Classifier to use; built from config when omitted
            config: Configuration (workers, timezone). Loaded from the
                environment when omitted
        """
        self.config = config or Config()
        self.store = store
        self.classifier = classifier or RecordClassifier.from_config(self.config)

    def _build_events(
        self,
        record: DetailRecord,
        classification: Classification,
        detected_at: datetime,
    ) -> List[AnomalyEvent]:
        return [
            AnomalyEvent(
                reason_code=detection.reason,
                severity=detection.severity,
                confidence=detection.confidence,
                subscriber_number=record.subscriber_number,
                device_id=record.device_id,
                subscriber_id=record.subscriber_id,
                related_addresses=[record.dest_address],
                description=detection.description,
                detected_at=detected_at,
                first_occurrence=record.start_time,
                last_occurrence=record.end_time,
                record_ids=[record.record_id],
                algorithm=f"rule:{detection.reason.value}",
            )
            for detection in classification.detections
        ]

    def process_row(self, row_index: int, row: Any, actor_id: str) -> _RowOutcome:
        """Run one row through the pipeline.

        Per-row failures are returned in the outcome. A StoreFatalError is
        returned too so the caller can abort with the partial result.
        """
        outcome = _RowOutcome(row_index=row_index)

        try:
            record = normalize_record(row, self.config.tzinfo)
        except IPDRIntelError as e:
            logger.debug(f"Row {row_index} rejected: {e.message}")
            outcome.failure = RowFailure(row_index, e.code, e.message, row, e.details)
            return outcome

        classification = self.classifier.classify(record)
        now = datetime.now(timezone.utc)
        record = apply(record, classification).model_copy(update={
            "record_id": f"ipdr_{uuid4().hex[:12]}",
            "created_by": actor_id,
            "created_at": now,
        })

        try:
            record = self.store.add_record(record)
        except StoreFatalError as e:
            outcome.failure = RowFailure(row_index, e.code, e.message, row, e.details)
            outcome.fatal = e
            return outcome
        except StoreError as e:
            logger.debug(f"Row {row_index} not stored: {e.message}")
            outcome.failure = RowFailure(row_index, e.code, e.message, row, e.details)
            return outcome
        except IPDRIntelError as e:
            # DuplicateRecordError and other row-level conflicts
            logger.debug(f"Row {row_index} not stored: {e.message}")
            outcome.failure = RowFailure(row_index, e.code, e.message, row, e.details)
            return outcome

        outcome.record_id = record.record_id

        for event in self._build_events(record, classification, now):
            try:
                self.store.add_event(event)
            except StoreFatalError as e:
                outcome.fatal = e
                return outcome
            except StoreError as e:
                logger.error(
                    f"Dropped {event.reason_code.value} event for record "
                    f"{record.record_id}: {e.message}"
                )
                outcome.dropped_events += 1
                continue
            outcome.event_ids.append(event.event_id)

        return outcome

    @staticmethod
    def _merge(result: IngestionResult, outcome: _RowOutcome) -> None:
        result.processed_count += 1
        if outcome.record_id is not None:
            result.created_count += 1
            result.created_record_ids.append(outcome.record_id)
        result.event_ids.extend(outcome.event_ids)
        result.dropped_event_count += outcome.dropped_events
        if outcome.failure is not None:
            result.failures.append(outcome.failure)

    def ingest(
        self,
        rows: Iterable[Any],
        actor_id: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> IngestionResult:
        """Ingest a batch of raw rows.

        Args:
            rows: Iterable of row mappings (any source)
            actor_id: Identity of the submitter, stored as created_by
            cancel_event: Set to stop the batch before the next row

        Returns:
            IngestionResult with counts and every row failure

        Raises:
            BatchAbortedError: On a systemic store failure; carries the
                partial result
            BatchCancelledError: When cancel_event is set; carries the
                partial result
        """
        workers = self.config.ingestion_workers
        logger.info(f"Ingestion started by {actor_id} (workers={workers})")

        if workers > 1:
            result = self._ingest_parallel(rows, actor_id, cancel_event, workers)
        else:
            result = self._ingest_sequential(rows, actor_id, cancel_event)

        logger.info(
            f"Ingestion finished: processed={result.processed_count} "
            f"created={result.created_count} failed={result.failure_count} "
            f"events={len(result.event_ids)}"
        )
        return result

    def _abort(self, result: IngestionResult, error: StoreFatalError) -> BatchAbortedError:
        logger.error(
            f"Ingestion aborted after {result.processed_count} rows: {error.message}"
        )
        return BatchAbortedError(
            f"Batch aborted: {error.message}",
            result=result,
            details={"cause": error.code, **error.details},
        )

    @staticmethod
    def _cancelled(result: IngestionResult) -> BatchCancelledError:
        logger.info(f"Ingestion cancelled after {result.processed_count} rows")
        return BatchCancelledError(
            f"Batch cancelled after {result.processed_count} rows",
            result=result,
        )

    def _ingest_sequential(
        self,
        rows: Iterable[Any],
        actor_id: str,
        cancel_event: Optional[threading.Event],
    ) -> IngestionResult:
        result = IngestionResult()
        for row_index, row in enumerate(rows):
            if cancel_event is not None and cancel_event.is_set():
                raise self._cancelled(result)
            outcome = self.process_row(row_index, row, actor_id)
            self._merge(result, outcome)
            if outcome.fatal is not None:
                raise self._abort(result, outcome.fatal)
        return result

    def _ingest_parallel(
        self,
        rows: Iterable[Any],
        actor_id: str,
        cancel_event: Optional[threading.Event],
        workers: int,
    ) -> IngestionResult:
        stop = threading.Event()

        def run(row_index: int, row: Any) -> _RowOutcome:
            if stop.is_set() or (cancel_event is not None and cancel_event.is_set()):
                return _RowOutcome(row_index=row_index, skipped=True)
            outcome = self.process_row(row_index, row, actor_id)
            if outcome.fatal is not None:
                stop.set()
            return outcome

        outcomes: List[_RowOutcome] = []
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ipdr-ingest") as executor:
            futures = [
                executor.submit(run, row_index, row)
                for row_index, row in enumerate(rows)
            ]
            for future in as_completed(futures):
                outcomes.append(future.result())

        # Completion order is arbitrary; report in row order
        outcomes.sort(key=lambda o: o.row_index)
        result = IngestionResult()
        fatal: Optional[StoreFatalError] = None
        cancelled = False
        for outcome in outcomes:
            if outcome.skipped:
                cancelled = True
                continue
            self._merge(result, outcome)
            if outcome.fatal is not None and fatal is None:
                fatal = outcome.fatal

        if fatal is not None:
            raise self._abort(result, fatal)
        if cancelled:
            raise self._cancelled(result)
        return result
