"""Anomaly detection for month-to-date spend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Sequence

from aws_cost_monitor.analysis.periods import days_in_month, same_month
from aws_cost_monitor.config import AnomalyDetectionConfig
from aws_cost_monitor.storage.models import DailyCost, HistoricalCostData, ServiceCost

logger = logging.getLogger(__name__)


class AnomalyType(str, Enum):
    UNUSUAL_SPIKE = "unusual_spike"
    SUDDEN_DROP = "sudden_drop"
    NEW_SERVICE = "new_service"
    BUDGET_VELOCITY = "budget_velocity"


class AnomalySeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class SpendingAnomaly:
    """A detected deviation in spend."""

    type: AnomalyType
    severity: AnomalySeverity
    message: str
    percentage: float | None = None

    @property
    def is_critical(self) -> bool:
        return self.severity == AnomalySeverity.CRITICAL


class AnomalyDetector:
    """
    Detect spending anomalies from a profile's cached series.

    Detection strategies:
    1. Historical deviation - month-to-date spend vs earlier months at the same day
    2. Daily deviation - a day in the trailing window deviates from the window mean
    3. Service deviation - a top service changed vs its last month total
    4. Budget velocity - budget consumed faster than the month is elapsing
    5. Dominant service - one service takes an outsized share of the total

    The detector holds no state between calls; the same inputs always give
    the same list.
    """

    def __init__(self, config: AnomalyDetectionConfig):
        """
        Initialize the anomaly detector.

        Args:
            config: Anomaly detection configuration.
        """
        self.config = config

    def detect(
        self,
        daily_costs: Sequence[DailyCost],
        service_costs: Sequence[ServiceCost],
        last_month_services: Sequence[ServiceCost] = (),
        current_total: Decimal | None = None,
        monthly_budget: Decimal | None = None,
        today: date | None = None,
        history: Sequence[HistoricalCostData] = (),
    ) -> list[SpendingAnomaly]:
        """
        Run every detection strategy.

        Args:
            daily_costs: Month-to-date daily series, ordered by date.
            service_costs: Month-to-date service totals, sorted descending.
            last_month_services: Previous month's service totals.
            current_total: Month-to-date total, for the velocity and historical checks.
            monthly_budget: Profile budget, for the velocity check.
            today: Current date, for the velocity and historical checks.
            history: Month totals for the profile, for the historical check.

        Returns:
            List of detected anomalies. Empty when detection is disabled.
        """
        if not self.config.enabled:
            return []

        anomalies: list[SpendingAnomaly] = []
        if current_total is not None and today is not None:
            historical = self.detect_historical_deviation(current_total, history, today)
            if historical:
                anomalies.append(historical)

        anomalies.extend(self.detect_daily_deviation(daily_costs))
        anomalies.extend(self.detect_service_deviation(service_costs, last_month_services))

        if current_total is not None and today is not None:
            velocity = self.check_budget_velocity(current_total, monthly_budget, today)
            if velocity:
                anomalies.append(velocity)

        anomalies.extend(self.detect_dominant_services(service_costs))
        return anomalies

    def detect_historical_deviation(
        self,
        current_total: Decimal,
        history: Sequence[HistoricalCostData],
        today: date,
    ) -> SpendingAnomaly | None:
        """
        Compare month-to-date spend with earlier months at the same day of month.

        Complete months are scaled to ``today.day`` from their daily average;
        incomplete ones count at face value. Needs at least two earlier months.
        """
        earlier = [h for h in history if not same_month(h.date, today)]
        if len(earlier) < 2:
            return None

        projected = [
            h.amount / days_in_month(h.date) * today.day if h.is_complete else h.amount
            for h in earlier
        ]
        average = sum(projected, Decimal("0")) / len(projected)
        if average == 0:
            return None

        deviation = float((current_total - average) / average * 100)
        if abs(deviation) <= self.config.threshold_percent:
            return None

        higher = deviation > 0
        return SpendingAnomaly(
            type=AnomalyType.UNUSUAL_SPIKE if higher else AnomalyType.SUDDEN_DROP,
            severity=AnomalySeverity.CRITICAL if abs(deviation) > 50 else AnomalySeverity.WARNING,
            message=f"Spending is {int(abs(deviation))}% {'higher' if higher else 'lower'} than usual",
            percentage=abs(deviation),
        )

    def detect_daily_deviation(self, daily_costs: Sequence[DailyCost]) -> list[SpendingAnomaly]:
        """Flag days in the trailing window that stray from the window mean."""
        window = self.config.window_days
        if len(daily_costs) < window:
            return []

        recent = list(daily_costs)[-window:]
        mean = sum((c.amount for c in recent), Decimal("0")) / window
        if mean == 0:
            return []

        anomalies = []
        for cost in recent:
            deviation = float(abs(cost.amount - mean) / mean * 100)
            if deviation <= self.config.threshold_percent:
                continue

            is_spike = cost.amount > mean
            anomalies.append(
                SpendingAnomaly(
                    type=AnomalyType.UNUSUAL_SPIKE if is_spike else AnomalyType.SUDDEN_DROP,
                    severity=AnomalySeverity.CRITICAL if deviation > 50 else AnomalySeverity.WARNING,
                    message=f"Daily spending {'spike' if is_spike else 'drop'} of {int(deviation)}%",
                    percentage=deviation,
                )
            )
        return anomalies

    def detect_service_deviation(
        self,
        service_costs: Sequence[ServiceCost],
        last_month_services: Sequence[ServiceCost],
    ) -> list[SpendingAnomaly]:
        """Compare the top services with their totals from last month."""
        last_month = {s.service_name: s.amount for s in last_month_services}

        anomalies = []
        for service in list(service_costs)[: self.config.top_services]:
            previous = last_month.get(service.service_name)
            if not previous:
                continue

            change = float((service.amount - previous) / previous * 100)
            if abs(change) <= self.config.threshold_percent:
                continue

            anomalies.append(
                SpendingAnomaly(
                    type=AnomalyType.UNUSUAL_SPIKE if change > 0 else AnomalyType.SUDDEN_DROP,
                    severity=AnomalySeverity.CRITICAL if abs(change) > 100 else AnomalySeverity.WARNING,
                    message=f"{service.service_name} cost changed by {int(change)}% vs last month",
                    percentage=abs(change),
                )
            )
        return anomalies

    def check_budget_velocity(
        self,
        current_total: Decimal,
        monthly_budget: Decimal | None,
        today: date,
    ) -> SpendingAnomaly | None:
        """Flag spend running well ahead of the elapsed fraction of the month."""
        if not monthly_budget:
            return None

        total_days = days_in_month(today)
        month_progress = today.day / total_days
        spend_progress = float(current_total / monthly_budget)

        if not (
            spend_progress > month_progress * self.config.velocity_multiplier
            and spend_progress > self.config.velocity_min_progress
        ):
            return None

        days_remaining = total_days - today.day
        if monthly_budget - current_total <= 0:
            message = f"Budget exhausted with {days_remaining} days remaining"
            severity = AnomalySeverity.CRITICAL
        else:
            percent_ahead = (spend_progress / month_progress - 1.0) * 100
            message = f"Spending {percent_ahead:.0f}% faster than expected pace"
            severity = AnomalySeverity.CRITICAL if spend_progress > 0.9 else AnomalySeverity.WARNING

        return SpendingAnomaly(
            type=AnomalyType.BUDGET_VELOCITY,
            severity=severity,
            message=message,
            percentage=spend_progress * 100,
        )

    def detect_dominant_services(self, service_costs: Sequence[ServiceCost]) -> list[SpendingAnomaly]:
        """Flag services that make up a large share of total cost."""
        total = sum((s.amount for s in service_costs), Decimal("0"))
        if total == 0:
            return []

        anomalies = []
        for service in service_costs:
            share = float(service.amount / total * 100)
            if share <= self.config.dominant_service_percent:
                continue

            critical = share > self.config.dominant_service_critical_percent
            anomalies.append(
                SpendingAnomaly(
                    type=AnomalyType.NEW_SERVICE,
                    severity=AnomalySeverity.CRITICAL if critical else AnomalySeverity.WARNING,
                    message=f"{service.service_name} is {int(share)}% of total cost",
                    percentage=share,
                )
            )
        return anomalies
