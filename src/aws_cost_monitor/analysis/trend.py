"""Month-over-month trend and month-end projections."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Sequence

from aws_cost_monitor.analysis.periods import days_in_month, month_start
from aws_cost_monitor.storage.models import DailyCost

# Changes smaller than this (in percent) are reported as stable
STABLE_BAND_PERCENT = 2.0


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


@dataclass(frozen=True)
class CostTrend:
    """Direction of spend vs last month, with the absolute percentage change."""

    direction: TrendDirection
    percentage: float = 0.0

    @classmethod
    def stable(cls) -> CostTrend:
        return cls(TrendDirection.STABLE)

    @property
    def description(self) -> str:
        if self.direction == TrendDirection.STABLE:
            return "Stable vs last month"
        arrow = "up" if self.direction == TrendDirection.UP else "down"
        return f"{self.percentage:.0f}% {arrow} vs last month"


def classify_trend(change_percent: float) -> CostTrend:
    """Map a signed percentage change to a trend."""
    if abs(change_percent) < STABLE_BAND_PERCENT:
        return CostTrend.stable()
    if change_percent > 0:
        return CostTrend(TrendDirection.UP, change_percent)
    return CostTrend(TrendDirection.DOWN, abs(change_percent))


def projected_last_month_amount(last_month_total: Decimal, today: date) -> Decimal:
    """Last month's daily average times today's day of month."""
    last_month_days = days_in_month(month_start(today) - timedelta(days=1))
    return last_month_total / last_month_days * today.day


def calculate_cost_trend(
    current_total: Decimal,
    last_month_total: Decimal | None,
    today: date,
) -> CostTrend:
    """
    Compare month-to-date spend with last month at the same point in the month.

    Args:
        current_total: Month-to-date total.
        last_month_total: Previous month's total, if known.
        today: Current date.

    Returns:
        CostTrend. Stable when there is no baseline or it is zero.
    """
    if last_month_total is None:
        return CostTrend.stable()

    projected = projected_last_month_amount(last_month_total, today)
    if projected == 0:
        return CostTrend.stable()

    change_percent = float((current_total - projected) / projected * 100)
    return classify_trend(change_percent)


def calculate_projected_monthly_total(current_total: Decimal, today: date) -> Decimal | None:
    """
    Run-rate projection over completed days.

    Undefined on the first of the month, when no day has completed.
    """
    if today.day <= 1:
        return None
    daily_average = current_total / (today.day - 1)
    return daily_average * days_in_month(today)


def calculate_enhanced_projection(
    daily_costs: Sequence[DailyCost],
    today: date,
    window_days: int = 7,
) -> Decimal | None:
    """
    Month-to-date total plus the recent daily average for each remaining day.

    The average covers the last ``window_days`` entries, or fewer when the
    series is shorter. Undefined for an empty series.
    """
    if not daily_costs:
        return None

    recent = list(daily_costs)[-window_days:]
    daily_average = sum((c.amount for c in recent), Decimal("0")) / len(recent)
    remaining_days = days_in_month(today) - today.day

    current_total = sum((c.amount for c in daily_costs), Decimal("0"))
    return current_total + daily_average * remaining_days
