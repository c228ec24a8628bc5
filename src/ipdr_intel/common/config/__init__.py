"""Configuration module."""

from ipdr_intel.common.config.settings import (
    Config,
    Environment,
    LogLevel,
    StoreType,
    load_config,
)

__all__ = [
    "Config",
    "Environment",
    "LogLevel",
    "StoreType",
    "load_config",
]
