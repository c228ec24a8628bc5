"""AnomalyEvent schema - canonical definition.

One event is created per triggered reason when a record is ingested.
The core creates events with status NEW and never changes the status
afterwards; case workflow owns every later transition.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from ipdr_intel.core.scoring import compute_risk_score
from ipdr_intel.core.types import AnomalyStatus, ReasonCode, Severity


class AnomalyEvent(BaseModel):
    """A detected-reason instance tied to one or more detail records."""

    event_id: str = Field(
        default_factory=lambda: f"evt_{uuid4().hex[:12]}",
        description="Unique event identifier"
    )
    reason_code: ReasonCode = Field(..., description="Reason that triggered the event")
    severity: Severity = Field(default=Severity.MEDIUM)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    risk_score: Optional[float] = Field(
        default=None, ge=0.0, le=100.0,
        description="severity_weight(severity) * confidence; computed when omitted"
    )

    # Subject
    subscriber_number: str = Field(..., description="Subject identifier")
    device_id: Optional[str] = Field(default=None)
    subscriber_id: Optional[str] = Field(default=None)
    related_addresses: List[str] = Field(default_factory=list)

    description: str = Field(..., max_length=1000)

    # Time
    detected_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    first_occurrence: datetime = Field(...)
    last_occurrence: datetime = Field(...)

    # Workflow references
    status: AnomalyStatus = Field(default=AnomalyStatus.NEW)
    record_ids: List[str] = Field(default_factory=list)
    case_id: Optional[str] = Field(default=None, description="Associated case, if any")

    automatic_detection: bool = Field(default=True)
    algorithm: Optional[str] = Field(default=None)

    model_config = {
        "json_schema_extra": {
            "example": {
                "event_id": "evt_3f9a0c1b2d4e",
                "reason_code": "UNUSUAL_DATA_VOLUME",
                "severity": "HIGH",
                "confidence": 0.8,
                "risk_score": 60.0,
                "subscriber_number": "919876543210",
                "device_id": "356938035643809",
                "subscriber_id": "404450123456789",
                "related_addresses": ["198.51.100.20"],
                "description": "Unusual data volume: 12582912 bytes",
                "first_occurrence": "2026-01-25T14:30:00Z",
                "last_occurrence": "2026-01-25T14:45:00Z",
                "status": "NEW",
                "record_ids": ["ipdr_8c1d2e3f4a5b"],
                "algorithm": "rule:UNUSUAL_DATA_VOLUME",
            }
        }
    }

    @model_validator(mode="after")
    def _consistent(self) -> "AnomalyEvent":
        expected = compute_risk_score(self.severity, self.confidence)
        if self.risk_score is None:
            self.risk_score = expected
        elif abs(self.risk_score - expected) > 1e-6:
            raise ValueError(
                f"risk_score {self.risk_score} does not match "
                f"severity {self.severity.value} x confidence {self.confidence}"
            )
        if self.last_occurrence < self.first_occurrence:
            raise ValueError("last_occurrence must not precede first_occurrence")
        return self

    @property
    def is_open(self) -> bool:
        """Open events are every status except RESOLVED."""
        return self.status != AnomalyStatus.RESOLVED
