"""Risk scoring primitives shared by the classifier and the event schema."""

from ipdr_intel.common.constants import DetectionConstants
from ipdr_intel.core.types import Severity


def severity_weight(severity: Severity) -> int:
    """Weight of a severity level (LOW 25 ... CRITICAL 100)."""
    return DetectionConstants.SEVERITY_WEIGHTS[Severity(severity).value]


def compute_risk_score(severity: Severity, confidence: float) -> float:
    """risk = severity_weight(severity) * confidence.

    Args:
        severity: Severity level of the detection
        confidence: Detection confidence in [0, 1]

    Returns:
        Risk score in [0, 100], rounded to 4 decimals

    Raises:
        ValueError: If confidence is outside [0, 1]
    """
    if not 0.0 <= confidence <= 1.0:
        raise ValueError(f"confidence must be within [0, 1], got {confidence}")
    return round(severity_weight(severity) * confidence, 4)
