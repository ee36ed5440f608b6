"""
Configuration Management Package

Provides Pydantic-based configuration models and management for the
chargeback pipeline.
"""

from chargeback.core.config.models import (
    AppConfig, QueryConfig, ReportFormatConfig, PublishConfig, FailureReportingConfig
)
from chargeback.core.config.manager import ConfigManager

__all__ = [
    "AppConfig",
    "QueryConfig",
    "ReportFormatConfig",
    "PublishConfig",
    "FailureReportingConfig",
    "ConfigManager",
]
