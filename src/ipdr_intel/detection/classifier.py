"""Record Classifier - rule-based suspicious-session detection.

Evaluates each rule independently against one normalized record:
  - HIGH_NIGHT_ACTIVITY: local start hour >= 22 or <= 6
  - UNUSUAL_DATA_VOLUME: total_bytes > 10 MiB
  - SHORT_DURATION_FREQUENT: duration_ms < 30 s

Reasons that need a window of earlier records for the same subject are
supplied by optional WindowedDetector plug-ins; none ship with the core.
"""

import logging
from datetime import datetime, tzinfo
from typing import Dict, List, Optional, Protocol, Sequence, Union, runtime_checkable
from zoneinfo import ZoneInfo

from ipdr_intel.common.config import Config
from ipdr_intel.common.constants import DetectionConstants
from ipdr_intel.core.scoring import compute_risk_score
from ipdr_intel.core.types import ReasonCode
from ipdr_intel.data.schemas import DetailRecord
from ipdr_intel.detection.schema import Classification, ReasonDetection
from ipdr_intel.detection.taxonomy import describe, severity_for

logger = logging.getLogger(__name__)


@runtime_checkable
class WindowedDetector(Protocol):
    """Detector for reasons that need earlier records of the same subject."""

    def detect(
        self,
        record: DetailRecord,
        history: Sequence[DetailRecord],
    ) -> List[ReasonDetection]:
        ...


class RecordClassifier:
    """Classify normalized records under the fixed rule set.

    Stateless apart from its configuration; safe to share between threads.
    """

    CONFIDENCE = DetectionConstants.RULE_CONFIDENCE

    def __init__(
        self,
        timezone: Union[str, tzinfo, None] = None,
        detectors: Sequence[WindowedDetector] = (),
    ):
        """Initialize the classifier.

        Args:
            timezone: Zone used for the local start hour (name or tzinfo).
                Defaults to UTC.
            detectors: Optional cross-record detectors run after the rules
        """
        if timezone is None:
            timezone = "UTC"
        self._tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
        self._detectors = tuple(detectors)

    @classmethod
    def from_config(
        cls,
        config: Config,
        detectors: Sequence[WindowedDetector] = (),
    ) -> "RecordClassifier":
        return cls(timezone=config.tzinfo, detectors=detectors)

    def local_hour(self, moment: datetime) -> int:
        """Hour of a timestamp in the classifier's zone.

        Naive timestamps are taken as already local.
        """
        if moment.tzinfo is None:
            return moment.hour
        return moment.astimezone(self._tz).hour

    @staticmethod
    def is_night_hour(hour: int) -> bool:
        return (
            hour >= DetectionConstants.NIGHT_START_HOUR
            or hour <= DetectionConstants.NIGHT_END_HOUR
        )

    def _rule_reasons(self, record: DetailRecord, hour: int) -> List[ReasonCode]:
        reasons = []
        if self.is_night_hour(hour):
            reasons.append(ReasonCode.HIGH_NIGHT_ACTIVITY)
        if record.total_bytes > DetectionConstants.SUSPICIOUS_DATA_VOLUME_BYTES:
            reasons.append(ReasonCode.UNUSUAL_DATA_VOLUME)
        if record.duration_ms < DetectionConstants.SHORT_DURATION_MS:
            reasons.append(ReasonCode.SHORT_DURATION_FREQUENT)
        return reasons

    def classify(
        self,
        record: DetailRecord,
        history: Sequence[DetailRecord] = (),
    ) -> Classification:
        """Classify one normalized record.

        Args:
            record: Output of normalize_record
            history: Earlier records of the same subject, only consulted
                by windowed detectors

        Returns:
            Classification with one detection per triggered reason
        """
        hour = self.local_hour(record.start_time)

        detections: Dict[ReasonCode, ReasonDetection] = {}
        for reason in self._rule_reasons(record, hour):
            detections[reason] = ReasonDetection(
                reason=reason,
                severity=severity_for(reason),
                confidence=self.CONFIDENCE,
                description=describe(reason, record, local_hour=hour),
            )

        for detector in self._detectors:
            for detection in detector.detect(record, history):
                current = detections.get(detection.reason)
                if current is None or detection.risk_score > current.risk_score:
                    detections[detection.reason] = detection

        if not detections:
            return Classification(local_hour=hour)

        reasons = sorted(detections, key=lambda r: r.value)
        ordered = [detections[r] for r in reasons]
        top = max(ordered, key=lambda d: (d.severity.rank, d.risk_score))

        logger.debug(
            f"Record {record.subscriber_number}@{record.start_time.isoformat()} "
            f"flagged: {', '.join(r.value for r in reasons)}"
        )

        return Classification(
            suspicious=True,
            reasons=reasons,
            detections=ordered,
            severity=top.severity,
            confidence=top.confidence,
            risk_score=compute_risk_score(top.severity, top.confidence),
            local_hour=hour,
        )


def apply(record: DetailRecord, classification: Classification) -> DetailRecord:
    """Return a copy of record carrying the classification flags."""
    return record.model_copy(update={
        "suspicious": classification.suspicious,
        "suspicious_reasons": list(classification.reasons),
    })
