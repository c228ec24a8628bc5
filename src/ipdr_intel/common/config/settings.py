"""Configuration management - Centralized configuration for IPDR Intel.

Provides environment-aware configuration with sensible defaults.
All configuration is loaded from environment variables with fallbacks.

There is deliberately no module-level configuration instance: callers
build a Config (or call load_config()) and hand it to the components
that need it.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ipdr_intel.common.constants import (
    AnalyticsConstants,
    IngestionConstants,
    RelationshipConstants,
)
from ipdr_intel.common.exceptions import ConfigurationError


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StoreType(str, Enum):
    """Record store backend types."""
    MEMORY = "memory"
    DYNAMODB = "dynamodb"


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass
class Config:
    """Central configuration object for IPDR Intel.

    All settings can be overridden via environment variables prefixed with IPDR_.

    Example:
        IPDR_ENVIRONMENT=production
        IPDR_TIMEZONE=Asia/Kolkata
        IPDR_STORE_TYPE=dynamodb
    """

    # Core settings
    environment: Environment = field(
        default_factory=lambda: Environment(
            os.getenv("IPDR_ENVIRONMENT", "development")
        )
    )
    debug: bool = field(
        default_factory=lambda: os.getenv("IPDR_DEBUG", "false").lower() == "true"
    )
    log_level: LogLevel = field(
        default_factory=lambda: LogLevel(os.getenv("IPDR_LOG_LEVEL", "INFO"))
    )

    # Zone used to read the "local hour" of a session start
    timezone: str = field(
        default_factory=lambda: os.getenv("IPDR_TIMEZONE", "UTC")
    )

    # Analytics
    default_window_days: int = field(
        default_factory=lambda: _env_int(
            "IPDR_DEFAULT_WINDOW_DAYS", AnalyticsConstants.DEFAULT_WINDOW_DAYS
        )
    )
    geo_record_cap: int = field(
        default_factory=lambda: _env_int(
            "IPDR_GEO_RECORD_CAP", AnalyticsConstants.GEO_RECORD_CAP
        )
    )
    recent_activity_limit: int = field(
        default_factory=lambda: _env_int(
            "IPDR_RECENT_ACTIVITY_LIMIT", AnalyticsConstants.RECENT_ACTIVITY_LIMIT
        )
    )
    query_timeout_seconds: float = field(
        default_factory=lambda: _env_float(
            "IPDR_QUERY_TIMEOUT_SECONDS", AnalyticsConstants.QUERY_TIMEOUT_SECONDS
        )
    )

    # Relationship graph
    relationship_limit: int = field(
        default_factory=lambda: _env_int(
            "IPDR_RELATIONSHIP_LIMIT", RelationshipConstants.DEFAULT_LIMIT
        )
    )
    relationship_depth: int = field(
        default_factory=lambda: _env_int("IPDR_RELATIONSHIP_DEPTH", 1)
    )
    b_party_cap: int = field(
        default_factory=lambda: _env_int(
            "IPDR_B_PARTY_CAP", RelationshipConstants.B_PARTY_CAP
        )
    )

    # Ingestion
    ingestion_workers: int = field(
        default_factory=lambda: _env_int(
            "IPDR_INGESTION_WORKERS", IngestionConstants.DEFAULT_WORKERS
        )
    )
    failure_preview_limit: int = field(
        default_factory=lambda: _env_int(
            "IPDR_FAILURE_PREVIEW_LIMIT", IngestionConstants.FAILURE_PREVIEW_LIMIT
        )
    )

    # Store settings
    store_type: StoreType = field(
        default_factory=lambda: StoreType(os.getenv("IPDR_STORE_TYPE", "memory"))
    )
    dynamodb_records_table: Optional[str] = field(
        default_factory=lambda: os.getenv("IPDR_DYNAMODB_RECORDS_TABLE")
    )
    dynamodb_events_table: Optional[str] = field(
        default_factory=lambda: os.getenv("IPDR_DYNAMODB_EVENTS_TABLE")
    )
    aws_region: str = field(
        default_factory=lambda: os.getenv("AWS_DEFAULT_REGION", "us-east-1")
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(
                f"Unknown timezone: {self.timezone}",
                details={"timezone": self.timezone, "reason": str(e)},
            )

        for name in (
            "default_window_days",
            "geo_record_cap",
            "recent_activity_limit",
            "relationship_limit",
            "b_party_cap",
            "ingestion_workers",
            "failure_preview_limit",
        ):
            if getattr(self, name) < 1:
                raise ConfigurationError(
                    f"{name} must be a positive integer",
                    details={name: getattr(self, name)},
                )

        if self.query_timeout_seconds <= 0:
            raise ConfigurationError(
                "query_timeout_seconds must be positive",
                details={"query_timeout_seconds": self.query_timeout_seconds},
            )

        # Depth beyond the hard maximum is clamped, not rejected
        self.relationship_depth = max(
            1, min(self.relationship_depth, RelationshipConstants.MAX_DEPTH)
        )

        if self.store_type == StoreType.DYNAMODB:
            if not self.dynamodb_records_table or not self.dynamodb_events_table:
                raise ConfigurationError(
                    "IPDR_DYNAMODB_RECORDS_TABLE and IPDR_DYNAMODB_EVENTS_TABLE "
                    "must be set when using DynamoDB storage"
                )

        # Warn about debug in production
        if self.environment == Environment.PRODUCTION and self.debug:
            import warnings
            warnings.warn(
                "Debug mode is enabled in production environment",
                RuntimeWarning,
                stacklevel=2
            )

    @property
    def tzinfo(self) -> ZoneInfo:
        """Zone object for the configured timezone."""
        return ZoneInfo(self.timezone)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT


def load_config() -> Config:
    """Build a fresh Config from the current environment."""
    return Config()
