"""Pydantic configuration schema for AWS Cost Monitor."""

from typing import Literal

from pydantic import BaseModel, Field


class AWSConfig(BaseModel):
    """AWS account configuration."""

    region: str = "us-east-1"
    default_profile: str | None = None  # Profile refreshed when none is named


class StorageConfig(BaseModel):
    """Persisted state backend configuration."""

    backend: Literal["memory", "dynamodb"] = "memory"
    table_name: str = "aws-cost-monitor"
    audit_ttl_days: int = Field(default=7, ge=1)  # TTL for sent alert records
    # API request log must cover a whole calendar month for spend estimates
    api_log_ttl_days: int = Field(default=35, ge=32)


class CacheConfig(BaseModel):
    """Cost cache validity configuration."""

    default_max_age_minutes: int = Field(default=60, ge=1)  # Used when no budget is set
    max_stale_minutes: int = Field(default=1440, ge=1)  # Never serve older cache when rate limited


class RateLimitConfig(BaseModel):
    """Client-side rate limit for live Cost Explorer calls."""

    min_interval_seconds: int = Field(default=60, ge=0)


class CircuitBreakerConfig(BaseModel):
    """Circuit breaker configuration."""

    failure_threshold: int = Field(default=3, ge=1)
    scope: Literal["global", "profile"] = "global"


class RefreshConfig(BaseModel):
    """Automatic refresh configuration."""

    enabled: bool = True
    max_interval_minutes: int = Field(default=60, ge=1)
    fetch_last_month: bool = True


class BudgetDefaultsConfig(BaseModel):
    """Defaults for lazily created profile budgets."""

    monthly_budget: float | None = Field(default=100.0, ge=0)
    alert_threshold: float = Field(default=0.8, ge=0, le=1)
    api_budget: float = Field(default=5.0, ge=0)
    refresh_interval_minutes: int = Field(default=480, ge=5)
    min_refresh_interval_minutes: int = Field(default=5, ge=1)


class AnomalyDetectionConfig(BaseModel):
    """Anomaly detection configuration."""

    enabled: bool = True
    threshold_percent: float = Field(default=25.0, ge=0)
    window_days: int = Field(default=7, ge=1, le=31)
    top_services: int = Field(default=3, ge=0)
    dominant_service_percent: float = Field(default=30.0, ge=0, le=100)
    dominant_service_critical_percent: float = Field(default=50.0, ge=0, le=100)
    velocity_multiplier: float = Field(default=1.5, ge=1)
    velocity_min_progress: float = Field(default=0.5, ge=0)


class AlertsConfig(BaseModel):
    """Alert policy configuration."""

    enabled: bool = True
    enable_threshold_alerts: bool = True
    enable_budget_exceeded_alerts: bool = True
    enable_anomaly_alerts: bool = True
    cooldown_minutes: int = Field(default=60, ge=0)
    history_hours: int = Field(default=24, ge=1)
    sound_enabled: bool = True


class SlackConfig(BaseModel):
    """Slack webhook notification sink."""

    enabled: bool = False
    secret_name: str = "aws-cost-monitor/config"
    webhook_secret_key: str = "webhook_url"


class DemoConfig(BaseModel):
    """Synthetic data for demo profiles."""

    profile_prefix: str = "demo-"
    base_daily_cost: float = Field(default=42.50, ge=0)
    variance: float = Field(default=15.0, ge=0)


class Config(BaseModel):
    """Root configuration for AWS Cost Monitor."""

    project_name: str = "aws-cost-monitor"
    environment: Literal["dev", "staging", "prod"] = "dev"

    aws: AWSConfig = Field(default_factory=AWSConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    budgets: BudgetDefaultsConfig = Field(default_factory=BudgetDefaultsConfig)
    anomaly_detection: AnomalyDetectionConfig = Field(default_factory=AnomalyDetectionConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)
    demo: DemoConfig = Field(default_factory=DemoConfig)
