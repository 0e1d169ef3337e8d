"""Base class for persisted cost monitor state."""

from abc import ABC, abstractmethod
from datetime import datetime

from aws_cost_monitor.storage.models import (
    AlertConfiguration,
    APIRequestRecord,
    CostCacheEntry,
    HistoricalCostData,
    LastMonthCosts,
    ProfileBudget,
    SentAlert,
)


class Storage(ABC):
    """
    Key-value persistence for everything the fetch pipeline reads or writes.

    Every write replaces a whole record; readers never observe a partially
    written entry.
    """

    # Cost cache

    @abstractmethod
    def get_cache_entry(self, profile_name: str) -> CostCacheEntry | None:
        """Get the cached fetch result for a profile."""

    @abstractmethod
    def put_cache_entry(self, entry: CostCacheEntry) -> None:
        """Replace the cached fetch result for a profile."""

    # Budgets

    @abstractmethod
    def get_budget(self, profile_name: str) -> ProfileBudget | None:
        """Get the stored budget for a profile."""

    @abstractmethod
    def put_budget(self, budget: ProfileBudget) -> None:
        """Store a profile budget."""

    # Historical month totals

    @abstractmethod
    def get_historical_data(self, profile_name: str | None = None) -> list[HistoricalCostData]:
        """Get month totals, oldest first, optionally for one profile."""

    @abstractmethod
    def put_historical_data(self, records: list[HistoricalCostData]) -> None:
        """Upsert month totals keyed by (profile, month)."""

    # Last month totals

    @abstractmethod
    def get_last_month_costs(self, profile_name: str) -> LastMonthCosts | None:
        """Get the previous month's totals for a profile."""

    @abstractmethod
    def put_last_month_costs(self, costs: LastMonthCosts) -> None:
        """Store the previous month's totals for a profile."""

    # Alert audit log

    @abstractmethod
    def get_sent_alerts(self, profile_name: str | None = None) -> list[SentAlert]:
        """Get delivered alerts, oldest first."""

    @abstractmethod
    def add_sent_alert(self, alert: SentAlert) -> None:
        """Append a delivered alert."""

    @abstractmethod
    def prune_sent_alerts(self, older_than: datetime) -> int:
        """Delete alerts with a timestamp before ``older_than``. Returns count removed."""

    @abstractmethod
    def clear_sent_alerts(self, profile_name: str | None = None) -> None:
        """Delete alert history."""

    # Alert configuration

    @abstractmethod
    def get_alert_configuration(self, profile_name: str) -> AlertConfiguration | None:
        """Get alert settings for a profile."""

    @abstractmethod
    def put_alert_configuration(self, profile_name: str, config: AlertConfiguration) -> None:
        """Store alert settings for a profile."""

    # API request log

    @abstractmethod
    def add_api_request(self, record: APIRequestRecord) -> None:
        """Append a live API request record."""

    @abstractmethod
    def get_api_requests(
        self,
        profile_name: str | None = None,
        since: datetime | None = None,
    ) -> list[APIRequestRecord]:
        """Get API request records, oldest first."""
