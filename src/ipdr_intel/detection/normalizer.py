"""Normalizer - raw IPDR fields to a fully derived DetailRecord.

Pure and deterministic: the same input always yields the same record,
and normalizing an already-normalized record is a no-op. Derived fields
supplied by the caller are ignored and recomputed.
"""

from datetime import timedelta, timezone, tzinfo
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from ipdr_intel.common.exceptions import RecordValidationError
from ipdr_intel.data.schemas import (
    PROVENANCE_FIELDS,
    DetailRecord,
    GeoPoint,
    RawDetailRecord,
)

RawInput = Union[Mapping[str, Any], RawDetailRecord, DetailRecord]

_ONE_MS = timedelta(milliseconds=1)


def _field_errors(error: ValidationError) -> List[Dict[str, Any]]:
    """Flatten a pydantic ValidationError into field/message pairs."""
    errors = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item.get("loc", ())) or "__record__"
        errors.append({"field": loc, "message": item.get("msg", "invalid value")})
    return errors


def _invalid(error: ValidationError) -> RecordValidationError:
    errors = _field_errors(error)
    summary = "; ".join(f"{err['field']}: {err['message']}" for err in errors)
    return RecordValidationError(f"Invalid record: {summary}", details={"errors": errors})


def validate_raw(raw: Mapping[str, Any]) -> RawDetailRecord:
    """Validate a raw row mapping.

    Raises:
        RecordValidationError: With every failing field in details["errors"]
    """
    if not isinstance(raw, Mapping):
        raise RecordValidationError(
            f"Expected a mapping of raw fields, got {type(raw).__name__}",
            details={"errors": [{"field": "__record__", "message": "not a mapping"}]},
        )
    try:
        return RawDetailRecord.model_validate(dict(raw))
    except ValidationError as e:
        raise _invalid(e)


def derive_fields(raw: RawDetailRecord) -> Dict[str, Any]:
    """Compute the derived fields for a validated raw record."""
    return {
        "duration_ms": (raw.end_time - raw.start_time) // _ONE_MS,
        "total_bytes": raw.uplink_bytes + raw.downlink_bytes,
        "location": GeoPoint(longitude=raw.longitude, latitude=raw.latitude),
    }


def localize(raw: RawDetailRecord, zone: Optional[tzinfo] = None) -> RawDetailRecord:
    """Attach zone (default UTC) to naive start/end times.

    Timestamps that already carry an offset are left as they are.
    """
    if raw.start_time.tzinfo is not None:
        return raw
    zone = zone or timezone.utc
    return raw.model_copy(update={
        "start_time": raw.start_time.replace(tzinfo=zone),
        "end_time": raw.end_time.replace(tzinfo=zone),
    })


def normalize_record(raw: RawInput, zone: Optional[tzinfo] = None) -> DetailRecord:
    """Normalize one raw record.

    Args:
        raw: Mapping of raw fields (snake_case or IPDR camelCase headers),
            a RawDetailRecord, or a previously normalized DetailRecord
        zone: Zone of naive timestamps in the input (default UTC). Stored
            records always carry an offset

    Returns:
        DetailRecord with derived fields computed and classification
        fields reset; provenance is kept when the input already had it

    Raises:
        RecordValidationError: If any field fails validation, including
            sessions shorter than one millisecond
    """
    provenance: Dict[str, Any] = {}

    if isinstance(raw, DetailRecord):
        base = RawDetailRecord.model_validate(raw.raw_fields())
        provenance = {
            name: getattr(raw, name)
            for name in PROVENANCE_FIELDS
            if getattr(raw, name) is not None
        }
    elif isinstance(raw, RawDetailRecord):
        base = raw
    else:
        base = validate_raw(raw)

    base = localize(base, zone)
    try:
        return DetailRecord(
            **base.raw_fields(),
            **derive_fields(base),
            **provenance,
        )
    except ValidationError as e:
        raise _invalid(e)
