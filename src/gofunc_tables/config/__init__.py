"""Configuration management for gofunc-tables."""
from .settings import (
    AppConfig,
    DatabaseConfig,
    ExecutionConfig,
    ScanConfig,
    LoggingConfig,
    load_config,
)

__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "ExecutionConfig",
    "ScanConfig",
    "LoggingConfig",
    "load_config",
]
