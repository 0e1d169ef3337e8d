"""Notification content for each alert type."""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from aws_cost_monitor.analysis.anomaly_detector import SpendingAnomaly
from aws_cost_monitor.notifications.base import (
    ANOMALY_ALERT_CATEGORY,
    BUDGET_ALERT_CATEGORY,
    Notification,
)


def format_budget_exceeded(
    profile_name: str,
    amount: Decimal,
    budget: Decimal,
    sound: bool = True,
) -> Notification:
    return Notification(
        title="Budget Exceeded",
        subtitle=profile_name,
        body=(
            f"Monthly spending (${float(amount):.2f}) has exceeded "
            f"your budget of ${float(budget):.2f}"
        ),
        category=BUDGET_ALERT_CATEGORY,
        sound=sound,
    )


def format_threshold(profile_name: str, percentage: float, sound: bool = True) -> Notification:
    """``percentage`` is a fraction of the budget (0.85 == 85%)."""
    return Notification(
        title="Approaching Budget Limit",
        subtitle=profile_name,
        body=f"You've used {percentage * 100:.0f}% of your monthly budget",
        category=BUDGET_ALERT_CATEGORY,
        sound=sound,
    )


def format_anomalies(
    profile_name: str,
    anomalies: Sequence[SpendingAnomaly],
    sound: bool = True,
) -> Notification:
    """Lead with the first critical anomaly and count the rest."""
    lead = next((a for a in anomalies if a.is_critical), anomalies[0])
    body = lead.message
    if len(anomalies) > 1:
        body += f" (+{len(anomalies) - 1} more alerts)"

    return Notification(
        title="Unusual Spending Detected",
        subtitle=profile_name,
        body=body,
        category=ANOMALY_ALERT_CATEGORY,
        sound=sound,
    )
