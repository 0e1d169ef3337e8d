"""Derive analytics from a cached fetch result."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from aws_cost_monitor.analysis.anomaly_detector import AnomalyDetector, SpendingAnomaly
from aws_cost_monitor.analysis.history import previous_month_entry
from aws_cost_monitor.analysis.trend import (
    CostTrend,
    calculate_cost_trend,
    calculate_enhanced_projection,
    calculate_projected_monthly_total,
)
from aws_cost_monitor.config import AnomalyDetectionConfig
from aws_cost_monitor.storage.base import Storage
from aws_cost_monitor.storage.budgets import calculate_budget_status
from aws_cost_monitor.storage.models import BudgetStatus, CostCacheEntry, ProfileBudget

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostAnalytics:
    """Everything derived from one cache entry."""

    trend: CostTrend
    projected_total: Decimal | None
    enhanced_projection: Decimal | None
    budget_status: BudgetStatus | None
    anomalies: tuple[SpendingAnomaly, ...] = ()

    @property
    def critical_anomalies(self) -> list[SpendingAnomaly]:
        return [a for a in self.anomalies if a.is_critical]


class AnalyticsEngine:
    """Trend, projections, budget status and anomalies for a profile."""

    def __init__(self, storage: Storage, config: AnomalyDetectionConfig | None = None):
        self.storage = storage
        self.config = config or AnomalyDetectionConfig()
        self.detector = AnomalyDetector(self.config)

    def last_month_total(self, profile_name: str, today: date) -> Decimal | None:
        """Fetched last-month total, else the completed history entry for last month."""
        last_month = self.storage.get_last_month_costs(profile_name)
        if last_month is not None:
            return last_month.amount

        entry = previous_month_entry(self.storage, profile_name, today)
        return entry.amount if entry else None

    def analyze(
        self,
        entry: CostCacheEntry,
        budget: ProfileBudget,
        today: date,
    ) -> CostAnalytics:
        """Recompute every derived value from scratch."""
        last_month = self.storage.get_last_month_costs(entry.profile_name)
        last_month_services = last_month.service_costs if last_month else ()

        anomalies = self.detector.detect(
            daily_costs=entry.daily_costs,
            service_costs=entry.service_costs,
            last_month_services=last_month_services,
            current_total=entry.mtd_total,
            monthly_budget=budget.monthly_budget,
            today=today,
            history=self.storage.get_historical_data(entry.profile_name),
        )
        if anomalies:
            logger.info("Detected %d anomalies for %s", len(anomalies), entry.profile_name)

        return CostAnalytics(
            trend=calculate_cost_trend(
                entry.mtd_total, self.last_month_total(entry.profile_name, today), today
            ),
            projected_total=calculate_projected_monthly_total(entry.mtd_total, today),
            enhanced_projection=calculate_enhanced_projection(
                entry.daily_costs, today, self.config.window_days
            ),
            budget_status=calculate_budget_status(entry.mtd_total, budget),
            anomalies=tuple(anomalies),
        )
