"""Configuration management for AWS Cost Monitor."""

from aws_cost_monitor.config.schema import (
    AlertsConfig,
    AnomalyDetectionConfig,
    AWSConfig,
    BudgetDefaultsConfig,
    CacheConfig,
    CircuitBreakerConfig,
    Config,
    DemoConfig,
    RateLimitConfig,
    RefreshConfig,
    SlackConfig,
    StorageConfig,
)
from aws_cost_monitor.config.loader import get_cached_config, load_config

__all__ = [
    "Config",
    "AWSConfig",
    "StorageConfig",
    "CacheConfig",
    "RateLimitConfig",
    "CircuitBreakerConfig",
    "RefreshConfig",
    "BudgetDefaultsConfig",
    "AnomalyDetectionConfig",
    "AlertsConfig",
    "SlackConfig",
    "DemoConfig",
    "load_config",
    "get_cached_config",
]
