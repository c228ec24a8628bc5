"""Centralized constants for IPDR Intel detection and analytics."""


# ===== DETECTION RULES =====
class DetectionConstants:
    # Night window: hour >= NIGHT_START_HOUR or hour <= NIGHT_END_HOUR
    NIGHT_START_HOUR = 22
    NIGHT_END_HOUR = 6

    SUSPICIOUS_DATA_VOLUME_BYTES = 10_485_760  # 10 MiB
    SHORT_DURATION_MS = 30_000

    # Rule-based detections carry a fixed confidence
    RULE_CONFIDENCE = 0.8

    SEVERITY_WEIGHTS = {
        "LOW": 25,
        "MEDIUM": 50,
        "HIGH": 75,
        "CRITICAL": 100,
    }


# ===== INPUT VALIDATION =====
class ValidationConstants:
    SUBSCRIBER_NUMBER_PATTERN = r"^[0-9]{10,15}$"
    DEVICE_ID_PATTERN = r"^[0-9]{15}$"
    SUBSCRIBER_ID_PATTERN = r"^[0-9]{15}$"
    PORT_MIN = 1
    PORT_MAX = 65535


# ===== RELATIONSHIP GRAPH =====
class RelationshipConstants:
    DEFAULT_LIMIT = 50
    B_PARTY_CAP = 5
    MAX_DEPTH = 3

    # frequency > HIGH -> HIGH, frequency > MEDIUM -> MEDIUM, else LOW
    STRENGTH_HIGH_ABOVE = 10
    STRENGTH_MEDIUM_ABOVE = 5


# ===== ANALYTICS =====
class AnalyticsConstants:
    DEFAULT_WINDOW_DAYS = 30
    GEO_RECORD_CAP = 5000
    RECENT_ACTIVITY_LIMIT = 10
    TOP_COMMUNICATORS_LIMIT = 10
    TOP_ANOMALY_SUBJECTS = 10
    QUERY_TIMEOUT_SECONDS = 30.0

    # Top communicator risk = suspicious * WEIGHT + sessions / DIVISOR
    COMMUNICATOR_SUSPICIOUS_WEIGHT = 10
    COMMUNICATOR_SESSION_DIVISOR = 100


# ===== INGESTION =====
class IngestionConstants:
    FAILURE_PREVIEW_LIMIT = 10
    DEFAULT_WORKERS = 1
    CSV_CHUNK_ROWS = 5000


# ===== SEARCH =====
class SearchConstants:
    MAX_RESULTS = 1000
    GLOBAL_HITS_PER_TYPE = 20
    SUGGESTION_LIMIT = 10
    PHONE_SUGGESTIONS = 5
    ADDRESS_SUGGESTIONS = 5
    CELL_SUGGESTIONS = 3
    EXPORT_LIMIT = 10_000
    PAGE_SIZE = 50
    RELATED_RECORDS_LIMIT = 10
