"""DynamoDB record store for detail records and anomaly events."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Set

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import (
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from pydantic import ValidationError

from ipdr_intel.common.config import Config
from ipdr_intel.common.exceptions import (
    DuplicateRecordError,
    InvalidQueryError,
    IPDRIntelError,
    StoreError,
    StoreIntegrityError,
    StoreUnavailableError,
)
from ipdr_intel.data.schemas import AnomalyEvent, DetailRecord
from ipdr_intel.storage.query import EventQuery, RecordQuery, as_utc
from ipdr_intel.storage.store import DISTINCT_FIELDS, RecordStore

logger = logging.getLogger(__name__)

# Error codes that mean the service cannot take requests right now
TRANSIENT_ERROR_CODES = frozenset({
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "ServiceUnavailable",
    "InternalServerError",
})

# Error codes that mean the table or item shape is wrong
SYSTEMIC_ERROR_CODES = frozenset({
    "ResourceNotFoundException",
    "ValidationException",
})

CONNECTION_ERRORS = (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)


def _epoch_ms(moment: datetime) -> int:
    return int(as_utc(moment).timestamp() * 1000)


def _to_dynamo(value: Any) -> Any:
    """Convert JSON-mode values to DynamoDB-safe types (floats -> Decimal)."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamo(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_to_dynamo(v) for v in value]
    return value


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


class DynamoDBRecordStore(RecordStore):
    """DynamoDB store for detail records and anomaly events.

    Records are keyed by their natural key so a conditional put enforces
    uniqueness. Queries scan with a filter expression on the indexed
    attributes and finish matching, sorting and limiting in process.
    """

    DEFAULT_REGION = "us-east-1"

    def __init__(
        self,
        records_table: str,
        events_table: str,
        region: Optional[str] = None,
        aws_profile: Optional[str] = None,
    ):
        if not records_table or not events_table:
            raise ValueError("records_table and events_table are required")

        self.region = region or self.DEFAULT_REGION

        if aws_profile:
            session = boto3.Session(profile_name=aws_profile)
            self.dynamodb = session.resource("dynamodb", region_name=self.region)
        else:
            self.dynamodb = boto3.resource("dynamodb", region_name=self.region)

        self.records = self.dynamodb.Table(records_table)
        self.events = self.dynamodb.Table(events_table)
        logger.info(
            f"DynamoDB initialized: records={records_table} events={events_table} ({self.region})"
        )

    @classmethod
    def from_config(cls, config: Config) -> "DynamoDBRecordStore":
        return cls(
            records_table=config.dynamodb_records_table,
            events_table=config.dynamodb_events_table,
            region=config.aws_region,
        )

    # ========== ERROR MAPPING ==========

    @staticmethod
    def _map_client_error(e: ClientError, operation: str) -> IPDRIntelError:
        code = e.response.get("Error", {}).get("Code", "Unknown")
        message = e.response.get("Error", {}).get("Message", str(e))
        details = {"operation": operation, "aws_error": code}

        if code == "ConditionalCheckFailedException":
            return DuplicateRecordError(
                "Record with the same natural key already exists", details=details
            )
        if code in TRANSIENT_ERROR_CODES:
            return StoreUnavailableError(f"{operation} failed: {message}", details=details)
        if code in SYSTEMIC_ERROR_CODES:
            return StoreIntegrityError(f"{operation} failed: {message}", details=details)
        return StoreError(f"{operation} failed: {message}", details=details)

    def _call(self, operation: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except ClientError as e:
            mapped = self._map_client_error(e, operation)
            logger.error(f"{operation} failed: {mapped.message}")
            raise mapped from e
        except CONNECTION_ERRORS as e:
            logger.error(f"{operation} failed: {e}")
            raise StoreUnavailableError(
                f"{operation} failed: {e}", details={"operation": operation}
            ) from e

    # ========== ITEM CODEC ==========

    def _build_record_item(self, record: DetailRecord) -> Dict[str, Any]:
        data = _to_dynamo(record.model_dump(mode="json"))
        return {
            "pk": f"IPDR#{record.subscriber_number}#{record.start_time.isoformat()}",
            "sk": f"DEST#{record.dest_address}#{record.dest_port}#{record.private_port}",
            "entity_type": "RECORD",
            "start_epoch_ms": _epoch_ms(record.start_time),
            **data,
        }

    def _build_event_item(self, event: AnomalyEvent) -> Dict[str, Any]:
        data = _to_dynamo(event.model_dump(mode="json"))
        return {
            "pk": f"EVENT#{event.event_id}",
            "sk": "SK#EVENT",
            "entity_type": "EVENT",
            "detected_epoch_ms": _epoch_ms(event.detected_at),
            **data,
        }

    @staticmethod
    def _decode(model, item: Dict[str, Any]):
        try:
            return model.model_validate(_from_dynamo(dict(item)))
        except ValidationError as e:
            raise StoreIntegrityError(
                f"Stored {model.__name__} item could not be decoded",
                details={"pk": item.get("pk"), "errors": e.error_count()},
            ) from e

    # ========== WRITES ==========

    def add_record(self, record: DetailRecord) -> DetailRecord:
        if record.record_id is None:
            raise StoreError("record_id must be assigned before persisting")
        item = self._build_record_item(record)
        self._call(
            "add_record",
            lambda: self.records.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(pk)",
            ),
        )
        return record

    def add_event(self, event: AnomalyEvent) -> AnomalyEvent:
        item = self._build_event_item(event)
        self._call("add_event", lambda: self.events.put_item(Item=item))
        return event

    def assign_case(self, event_id: str, case_id: str) -> AnomalyEvent:
        try:
            response = self.events.update_item(
                Key={"pk": f"EVENT#{event_id}", "sk": "SK#EVENT"},
                UpdateExpression="SET case_id = :case_id",
                ConditionExpression="attribute_exists(pk)",
                ExpressionAttributeValues={":case_id": case_id},
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise StoreError(f"Event not found: {event_id}", details={"event_id": event_id}) from e
            mapped = self._map_client_error(e, "assign_case")
            logger.error(f"assign_case failed: {mapped.message}")
            raise mapped from e
        except CONNECTION_ERRORS as e:
            raise StoreUnavailableError(f"assign_case failed: {e}") from e
        return self._decode(AnomalyEvent, response["Attributes"])

    # ========== READS ==========

    def _scan(self, table, operation: str, filter_expression=None) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        kwargs: Dict[str, Any] = {}
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression
        while True:
            response = self._call(operation, lambda: table.scan(**kwargs))
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    @staticmethod
    def _record_filter(query: RecordQuery):
        conditions = [Attr("entity_type").eq("RECORD")]
        if query.window is not None:
            conditions.append(Attr("start_epoch_ms").between(
                _epoch_ms(query.window.start), _epoch_ms(query.window.end)
            ))
        if query.subscriber_numbers is not None:
            conditions.append(Attr("subscriber_number").is_in(list(query.subscriber_numbers)))
        if query.dest_addresses is not None:
            conditions.append(Attr("dest_address").is_in(list(query.dest_addresses)))
        if query.suspicious is not None:
            conditions.append(Attr("suspicious").eq(query.suspicious))

        expression = conditions[0]
        for condition in conditions[1:]:
            expression = expression & condition
        return expression

    def _matching_records(self, query: RecordQuery) -> List[DetailRecord]:
        items = self._scan(self.records, "find_records", self._record_filter(query))
        records = [self._decode(DetailRecord, item) for item in items]
        return [r for r in records if query.matches(r)]

    def find_records(self, query: RecordQuery) -> List[DetailRecord]:
        return query.apply(self._matching_records(query))

    def count_records(self, query: RecordQuery) -> int:
        return len(self._matching_records(query.unbounded()))

    def distinct_values(self, field: str, query: RecordQuery) -> Set[str]:
        if field not in DISTINCT_FIELDS:
            raise InvalidQueryError(
                f"Unsupported distinct field: {field}",
                details={"field": field, "allowed": sorted(DISTINCT_FIELDS)},
            )
        return {getattr(r, field) for r in self._matching_records(query.unbounded())}

    def find_events(self, query: EventQuery) -> List[AnomalyEvent]:
        expression = Attr("entity_type").eq("EVENT")
        if query.window is not None:
            expression = expression & Attr("detected_epoch_ms").between(
                _epoch_ms(query.window.start), _epoch_ms(query.window.end)
            )
        if query.subscriber_number is not None:
            expression = expression & Attr("subscriber_number").eq(query.subscriber_number)
        items = self._scan(self.events, "find_events", expression)
        return query.apply([self._decode(AnomalyEvent, item) for item in items])

    def health_check(self) -> bool:
        try:
            self.records.table_status
            self.events.table_status
            return True
        except (ClientError, *CONNECTION_ERRORS) as e:
            logger.error(f"DynamoDB health check failed: {e}")
            return False
