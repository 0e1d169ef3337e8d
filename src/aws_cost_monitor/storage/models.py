"""Data models for persisted cost monitor state."""

import datetime as dt
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DailyCost(BaseModel):
    """Cost for a single calendar day."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    amount: Decimal
    currency: str = "USD"


class ServiceCost(BaseModel):
    """Cost for a single service. Ranked by amount descending."""

    model_config = ConfigDict(frozen=True)

    service_name: str
    amount: Decimal
    currency: str = "USD"


class DailyServiceCost(BaseModel):
    """Cost for one service on one day (per-service histograms)."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    service_name: str
    amount: Decimal
    currency: str = "USD"


def sort_service_costs(services: list[ServiceCost]) -> list[ServiceCost]:
    """Sort services by amount descending; ties keep insertion order."""
    return sorted(services, key=lambda s: s.amount, reverse=True)


class CostCacheEntry(BaseModel):
    """
    Result of one successful fetch for a profile.

    Replaced wholesale on every successful fetch and never mutated.

    DynamoDB Key Structure:
    - PK: PROFILE#{profile_name}
    - SK: CACHE
    """

    model_config = ConfigDict(frozen=True)

    profile_name: str
    fetch_date: datetime  # When the fetch happened, not the data date
    mtd_total: Decimal
    currency: str = "USD"
    daily_costs: tuple[DailyCost, ...] = ()
    service_costs: tuple[ServiceCost, ...] = ()
    daily_service_costs: tuple[DailyServiceCost, ...] = ()
    start_date: dt.date
    end_date: dt.date  # Exclusive

    @property
    def pk(self) -> str:
        """Generate partition key."""
        return f"PROFILE#{self.profile_name}"

    @property
    def sk(self) -> str:
        """Generate sort key."""
        return "CACHE"

    def age_seconds(self, now: datetime) -> float:
        """Seconds elapsed since the fetch."""
        return (now - self.fetch_date).total_seconds()

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        data = self.model_dump(mode="json")
        return {
            "PK": self.pk,
            "SK": self.sk,
            "profile_name": self.profile_name,
            "fetch_date": data["fetch_date"],
            "mtd_total": str(self.mtd_total),
            "currency": self.currency,
            "daily_costs": data["daily_costs"],
            "service_costs": data["service_costs"],
            "daily_service_costs": data["daily_service_costs"],
            "start_date": data["start_date"],
            "end_date": data["end_date"],
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "CostCacheEntry":
        """Create from DynamoDB item."""
        return cls.model_validate(
            {
                "profile_name": item["profile_name"],
                "fetch_date": item["fetch_date"],
                "mtd_total": Decimal(str(item["mtd_total"])),
                "currency": item.get("currency", "USD"),
                "daily_costs": item.get("daily_costs", []),
                "service_costs": item.get("service_costs", []),
                "daily_service_costs": item.get("daily_service_costs", []),
                "start_date": item["start_date"],
                "end_date": item["end_date"],
            }
        )


class ProfileBudget(BaseModel):
    """
    Budget configuration for a profile.

    DynamoDB Key Structure:
    - PK: PROFILE#{profile_name}
    - SK: BUDGET
    """

    profile_name: str
    monthly_budget: Decimal | None = Decimal("100")  # None disables budget checks
    alert_threshold: float = Field(default=0.8, ge=0, le=1)
    api_budget: Decimal = Decimal("5")  # Cost Explorer API budget per month
    refresh_interval_minutes: int = Field(default=480, ge=1)

    @property
    def pk(self) -> str:
        """Generate partition key."""
        return f"PROFILE#{self.profile_name}"

    @property
    def sk(self) -> str:
        """Generate sort key."""
        return "BUDGET"

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        item = {
            "PK": self.pk,
            "SK": self.sk,
            "profile_name": self.profile_name,
            "alert_threshold": str(self.alert_threshold),
            "api_budget": str(self.api_budget),
            "refresh_interval_minutes": self.refresh_interval_minutes,
        }
        if self.monthly_budget is not None:
            item["monthly_budget"] = str(self.monthly_budget)
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "ProfileBudget":
        """Create from DynamoDB item."""
        monthly_budget = item.get("monthly_budget")
        return cls(
            profile_name=item["profile_name"],
            monthly_budget=Decimal(str(monthly_budget)) if monthly_budget is not None else None,
            alert_threshold=float(item["alert_threshold"]),
            api_budget=Decimal(str(item.get("api_budget", "0"))),
            refresh_interval_minutes=int(item["refresh_interval_minutes"]),
        )


class BudgetStatus(BaseModel):
    """Budget utilization for a month-to-date total."""

    monthly_budget: Decimal
    monthly_spent: Decimal
    percentage: float  # Fraction of budget used (1.0 == 100%)
    is_over_budget: bool
    is_near_threshold: bool


class HistoricalCostData(BaseModel):
    """
    Month total for a profile. The current month is never complete.

    DynamoDB Key Structure:
    - PK: PROFILE#{profile_name}
    - SK: HISTORY#{YYYY-MM}
    """

    model_config = ConfigDict(frozen=True)

    profile_name: str
    date: dt.date  # First day of the month
    amount: Decimal
    currency: str = "USD"
    is_complete: bool = False

    @property
    def pk(self) -> str:
        """Generate partition key."""
        return f"PROFILE#{self.profile_name}"

    @property
    def sk(self) -> str:
        """Generate sort key."""
        return f"HISTORY#{self.date.strftime('%Y-%m')}"

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        return {
            "PK": self.pk,
            "SK": self.sk,
            "profile_name": self.profile_name,
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "currency": self.currency,
            "is_complete": self.is_complete,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "HistoricalCostData":
        """Create from DynamoDB item."""
        return cls(
            profile_name=item["profile_name"],
            date=dt.date.fromisoformat(item["date"]),
            amount=Decimal(str(item["amount"])),
            currency=item.get("currency", "USD"),
            is_complete=bool(item.get("is_complete", False)),
        )


class LastMonthCosts(BaseModel):
    """
    Previous calendar month total and service breakdown for a profile.

    Fetched at most once per calendar month.

    DynamoDB Key Structure:
    - PK: PROFILE#{profile_name}
    - SK: LASTMONTH
    """

    model_config = ConfigDict(frozen=True)

    profile_name: str
    amount: Decimal
    currency: str = "USD"
    fetch_date: datetime
    service_costs: tuple[ServiceCost, ...] = ()

    @property
    def pk(self) -> str:
        """Generate partition key."""
        return f"PROFILE#{self.profile_name}"

    @property
    def sk(self) -> str:
        """Generate sort key."""
        return "LASTMONTH"

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        data = self.model_dump(mode="json")
        return {
            "PK": self.pk,
            "SK": self.sk,
            "profile_name": self.profile_name,
            "amount": str(self.amount),
            "currency": self.currency,
            "fetch_date": data["fetch_date"],
            "service_costs": data["service_costs"],
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "LastMonthCosts":
        """Create from DynamoDB item."""
        return cls.model_validate(
            {
                "profile_name": item["profile_name"],
                "amount": Decimal(str(item["amount"])),
                "currency": item.get("currency", "USD"),
                "fetch_date": item["fetch_date"],
                "service_costs": item.get("service_costs", []),
            }
        )


class AlertType(str, Enum):
    """Kinds of notification the alert policy can send."""

    THRESHOLD = "threshold"
    BUDGET_EXCEEDED = "budget_exceeded"
    ANOMALY = "anomaly"


class SentAlert(BaseModel):
    """
    Audit record for a delivered notification. Drives cooldowns.

    DynamoDB Key Structure:
    - PK: ALERTS#{profile_name}
    - SK: TS#{timestamp}#{alert_type}
    """

    model_config = ConfigDict(frozen=True)

    profile_name: str
    alert_type: AlertType
    timestamp: datetime = Field(default_factory=_utc_now)

    @property
    def pk(self) -> str:
        """Generate partition key."""
        return f"ALERTS#{self.profile_name}"

    @property
    def sk(self) -> str:
        """Generate sort key."""
        return f"TS#{self.timestamp.isoformat()}#{self.alert_type.value}"

    def to_dynamodb_item(self, ttl: int | None = None) -> dict:
        """Convert to DynamoDB item format."""
        item = {
            "PK": self.pk,
            "SK": self.sk,
            "profile_name": self.profile_name,
            "alert_type": self.alert_type.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if ttl:
            item["ttl"] = ttl
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "SentAlert":
        """Create from DynamoDB item."""
        return cls(
            profile_name=item["profile_name"],
            alert_type=AlertType(item["alert_type"]),
            timestamp=datetime.fromisoformat(item["timestamp"]),
        )


class AlertConfiguration(BaseModel):
    """
    Alert settings for a profile.

    DynamoDB Key Structure:
    - PK: PROFILE#{profile_name}
    - SK: ALERTCONFIG
    """

    enable_threshold_alerts: bool = True
    enable_budget_exceeded_alerts: bool = True
    enable_anomaly_alerts: bool = True
    cooldown_minutes: int = Field(default=60, ge=0)
    sound_enabled: bool = True

    def to_dynamodb_item(self, profile_name: str) -> dict:
        """Convert to DynamoDB item format."""
        return {
            "PK": f"PROFILE#{profile_name}",
            "SK": "ALERTCONFIG",
            **self.model_dump(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "AlertConfiguration":
        """Create from DynamoDB item."""
        return cls(
            enable_threshold_alerts=bool(item.get("enable_threshold_alerts", True)),
            enable_budget_exceeded_alerts=bool(item.get("enable_budget_exceeded_alerts", True)),
            enable_anomaly_alerts=bool(item.get("enable_anomaly_alerts", True)),
            cooldown_minutes=int(item.get("cooldown_minutes", 60)),
            sound_enabled=bool(item.get("sound_enabled", True)),
        )


class APIRequestRecord(BaseModel):
    """
    A live Cost Explorer request. Each one is billed at $0.01.

    DynamoDB Key Structure:
    - PK: APIREQ#{profile_name}
    - SK: TS#{timestamp}
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_utc_now)
    profile_name: str
    endpoint: str
    success: bool
    duration_seconds: float = 0.0
    error_message: str | None = None

    @property
    def pk(self) -> str:
        """Generate partition key."""
        return f"APIREQ#{self.profile_name}"

    @property
    def sk(self) -> str:
        """Generate sort key."""
        return f"TS#{self.timestamp.isoformat()}"

    def to_dynamodb_item(self, ttl: int | None = None) -> dict:
        """Convert to DynamoDB item format."""
        item = {
            "PK": self.pk,
            "SK": self.sk,
            "timestamp": self.timestamp.isoformat(),
            "profile_name": self.profile_name,
            "endpoint": self.endpoint,
            "success": self.success,
            "duration_seconds": str(round(self.duration_seconds, 3)),
        }
        if self.error_message:
            item["error_message"] = self.error_message
        if ttl:
            item["ttl"] = ttl
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "APIRequestRecord":
        """Create from DynamoDB item."""
        return cls(
            timestamp=datetime.fromisoformat(item["timestamp"]),
            profile_name=item["profile_name"],
            endpoint=item["endpoint"],
            success=bool(item["success"]),
            duration_seconds=float(item.get("duration_seconds", 0)),
            error_message=item.get("error_message"),
        )
