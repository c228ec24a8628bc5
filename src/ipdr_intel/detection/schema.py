"""Classifier Output Schema.

Pydantic models for structured classification output.
Pure data validation, no store access.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from ipdr_intel.core.scoring import compute_risk_score
from ipdr_intel.core.types import ReasonCode, Severity


class ReasonDetection(BaseModel):
    """One triggered reason with its severity, confidence and risk."""

    reason: ReasonCode = Field(..., description="Triggered reason code")
    severity: Severity = Field(..., description="Severity from the reason taxonomy")
    confidence: float = Field(..., ge=0.0, le=1.0)
    risk_score: float = Field(
        default=0.0, ge=0.0, le=100.0,
        description="severity_weight(severity) * confidence"
    )
    description: str = Field(default="", description="Rendered description template")

    @model_validator(mode="after")
    def _score(self) -> "ReasonDetection":
        self.risk_score = compute_risk_score(self.severity, self.confidence)
        return self


class Classification(BaseModel):
    """Output from RecordClassifier.

    suspicious is true exactly when at least one reason triggered.
    Record-level severity and risk come from the highest-severity detection.
    """

    suspicious: bool = Field(default=False)
    reasons: List[ReasonCode] = Field(
        default_factory=list,
        description="Triggered reason codes, sorted"
    )
    detections: List[ReasonDetection] = Field(default_factory=list)
    severity: Optional[Severity] = Field(
        default=None,
        description="Highest severity among detections; None when clean"
    )
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    risk_score: float = Field(default=0.0, ge=0.0, le=100.0)
    local_hour: Optional[int] = Field(
        default=None, ge=0, le=23,
        description="Hour of start_time in the classifier's timezone"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "suspicious": True,
                "reasons": ["HIGH_NIGHT_ACTIVITY", "UNUSUAL_DATA_VOLUME"],
                "detections": [
                    {
                        "reason": "HIGH_NIGHT_ACTIVITY",
                        "severity": "MEDIUM",
                        "confidence": 0.8,
                        "risk_score": 40.0,
                        "description": "High frequency communications during night hours (23:00)",
                    },
                    {
                        "reason": "UNUSUAL_DATA_VOLUME",
                        "severity": "HIGH",
                        "confidence": 0.8,
                        "risk_score": 60.0,
                        "description": "Unusual data volume: 12582912 bytes",
                    },
                ],
                "severity": "HIGH",
                "confidence": 0.8,
                "risk_score": 60.0,
                "local_hour": 23,
            }
        }
    }

    @model_validator(mode="after")
    def _consistent(self) -> "Classification":
        if self.suspicious != bool(self.reasons):
            raise ValueError("suspicious must be true exactly when reasons is non-empty")
        if {d.reason for d in self.detections} != set(self.reasons):
            raise ValueError("detections must match reasons")
        return self

    def detection_for(self, reason: ReasonCode) -> Optional[ReasonDetection]:
        for detection in self.detections:
            if detection.reason == reason:
                return detection
        return None
