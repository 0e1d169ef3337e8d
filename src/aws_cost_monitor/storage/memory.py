"""In-process storage backend."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta

from aws_cost_monitor.storage.base import Storage
from aws_cost_monitor.storage.models import (
    AlertConfiguration,
    APIRequestRecord,
    CostCacheEntry,
    HistoricalCostData,
    LastMonthCosts,
    ProfileBudget,
    SentAlert,
)


class InMemoryStorage(Storage):
    """Dictionary-backed storage. Records are immutable, so readers get them as-is."""

    def __init__(self, api_log_ttl_days: int = 35) -> None:
        self.api_log_ttl_days = api_log_ttl_days
        self._lock = threading.Lock()
        self._cache: dict[str, CostCacheEntry] = {}
        self._budgets: dict[str, ProfileBudget] = {}
        self._historical: dict[tuple[str, str], HistoricalCostData] = {}
        self._last_month: dict[str, LastMonthCosts] = {}
        self._sent_alerts: list[SentAlert] = []
        self._alert_configs: dict[str, AlertConfiguration] = {}
        self._api_requests: list[APIRequestRecord] = []

    def get_cache_entry(self, profile_name: str) -> CostCacheEntry | None:
        return self._cache.get(profile_name)

    def put_cache_entry(self, entry: CostCacheEntry) -> None:
        with self._lock:
            self._cache[entry.profile_name] = entry

    def get_budget(self, profile_name: str) -> ProfileBudget | None:
        budget = self._budgets.get(profile_name)
        # ProfileBudget is mutable; hand out copies
        return budget.model_copy() if budget else None

    def put_budget(self, budget: ProfileBudget) -> None:
        with self._lock:
            self._budgets[budget.profile_name] = budget.model_copy()

    def get_historical_data(self, profile_name: str | None = None) -> list[HistoricalCostData]:
        records = [
            r for r in self._historical.values()
            if profile_name is None or r.profile_name == profile_name
        ]
        return sorted(records, key=lambda r: (r.date, r.profile_name))

    def put_historical_data(self, records: list[HistoricalCostData]) -> None:
        with self._lock:
            for record in records:
                self._historical[(record.profile_name, record.sk)] = record

    def get_last_month_costs(self, profile_name: str) -> LastMonthCosts | None:
        return self._last_month.get(profile_name)

    def put_last_month_costs(self, costs: LastMonthCosts) -> None:
        with self._lock:
            self._last_month[costs.profile_name] = costs

    def get_sent_alerts(self, profile_name: str | None = None) -> list[SentAlert]:
        return [
            a for a in self._sent_alerts
            if profile_name is None or a.profile_name == profile_name
        ]

    def add_sent_alert(self, alert: SentAlert) -> None:
        with self._lock:
            self._sent_alerts.append(alert)

    def prune_sent_alerts(self, older_than: datetime) -> int:
        with self._lock:
            before = len(self._sent_alerts)
            self._sent_alerts = [a for a in self._sent_alerts if a.timestamp >= older_than]
            return before - len(self._sent_alerts)

    def clear_sent_alerts(self, profile_name: str | None = None) -> None:
        with self._lock:
            if profile_name is None:
                self._sent_alerts = []
            else:
                self._sent_alerts = [a for a in self._sent_alerts if a.profile_name != profile_name]

    def get_alert_configuration(self, profile_name: str) -> AlertConfiguration | None:
        return self._alert_configs.get(profile_name)

    def put_alert_configuration(self, profile_name: str, config: AlertConfiguration) -> None:
        with self._lock:
            self._alert_configs[profile_name] = config.model_copy()

    def add_api_request(self, record: APIRequestRecord) -> None:
        with self._lock:
            cutoff = record.timestamp - timedelta(days=self.api_log_ttl_days)
            self._api_requests = [r for r in self._api_requests if r.timestamp >= cutoff]
            self._api_requests.append(record)

    def get_api_requests(
        self,
        profile_name: str | None = None,
        since: datetime | None = None,
    ) -> list[APIRequestRecord]:
        return [
            r for r in self._api_requests
            if (profile_name is None or r.profile_name == profile_name)
            and (since is None or r.timestamp >= since)
        ]
