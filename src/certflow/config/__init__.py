"""Configuration module for certflow."""

from certflow.config.settings import (
    FraudDetectionConfig,
    Settings,
    SmartSearchConfig,
    get_settings,
)

__all__ = ["FraudDetectionConfig", "Settings", "SmartSearchConfig", "get_settings"]
