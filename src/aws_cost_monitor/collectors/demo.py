"""Synthetic cost data for demo profiles."""

from __future__ import annotations

import random
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from aws_cost_monitor.collectors.base import CostProvider, DailyCostRecord, MonthTotal
from aws_cost_monitor.config import DemoConfig
from aws_cost_monitor.storage.models import ServiceCost, sort_service_costs

CENT = Decimal("0.01")

# Share of each day's total per service
SERVICE_SHARES: tuple[tuple[str, Decimal], ...] = (
    ("Amazon Elastic Compute Cloud - Compute", Decimal("0.35")),
    ("Amazon Relational Database Service", Decimal("0.20")),
    ("Amazon Simple Storage Service", Decimal("0.15")),
    ("AWS Lambda", Decimal("0.10")),
    ("Amazon CloudFront", Decimal("0.08")),
    ("Other", Decimal("0.12")),
)


class DemoCostProvider(CostProvider):
    """
    Generates a plausible month of spend around a base daily cost.

    Nothing is cached: every call draws fresh numbers.
    """

    provider_name = "demo"

    def __init__(self, config: DemoConfig | None = None, rng: random.Random | None = None):
        self.config = config or DemoConfig()
        self.rng = rng or random.Random()

    def is_demo_profile(self, profile_name: str) -> bool:
        return profile_name.startswith(self.config.profile_prefix)

    def _daily_total(self) -> Decimal:
        variance = self.rng.uniform(-self.config.variance, self.config.variance)
        cost = max(self.config.base_daily_cost + variance, 0.0)
        return Decimal(str(cost)).quantize(CENT, rounding=ROUND_HALF_UP)

    def _split(self, total: Decimal) -> dict[str, Decimal]:
        return {
            name: (total * share).quantize(CENT, rounding=ROUND_HALF_UP)
            for name, share in SERVICE_SHARES
        }

    def get_daily_service_costs(
        self,
        profile_name: str,
        start: date,
        end: date,
    ) -> list[DailyCostRecord]:
        records = []
        day = start
        while day < end:
            records.append(DailyCostRecord(date=day, costs_by_service=self._split(self._daily_total())))
            day += timedelta(days=1)
        return records

    def get_month_total(self, profile_name: str, start: date, end: date) -> MonthTotal | None:
        days = (end - start).days
        total = sum((self._daily_total() for _ in range(days)), Decimal("0"))
        return MonthTotal(amount=total)

    def get_service_totals(self, profile_name: str, start: date, end: date) -> list[ServiceCost]:
        month = self.get_month_total(profile_name, start, end)
        return sort_service_costs(
            [
                ServiceCost(service_name=name, amount=amount)
                for name, amount in self._split(month.amount).items()
            ]
        )
