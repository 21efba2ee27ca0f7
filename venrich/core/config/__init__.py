"""Configuration management module."""

from venrich.core.config.settings import (
    AuditConfig,
    ConfigManager,
    DownstreamConfig,
    LoggingConfig,
    PipelineConfig,
    SourceConfig,
    load_config_from_env,
)

__all__ = [
    "ConfigManager",
    "PipelineConfig",
    "SourceConfig",
    "DownstreamConfig",
    "AuditConfig",
    "LoggingConfig",
    "load_config_from_env",
]
