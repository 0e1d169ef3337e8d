"""Month total history per profile."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from aws_cost_monitor.analysis.periods import month_start, previous_month_start
from aws_cost_monitor.storage.base import Storage
from aws_cost_monitor.storage.models import HistoricalCostData

logger = logging.getLogger(__name__)


def update_historical_data(
    storage: Storage,
    profile_name: str,
    amount: Decimal,
    currency: str,
    today: date,
) -> HistoricalCostData:
    """
    Upsert the current month's total and close out past months.

    The current month's entry is overwritten on every call and never
    marked complete.
    """
    record = HistoricalCostData(
        profile_name=profile_name,
        date=month_start(today),
        amount=amount,
        currency=currency,
        is_complete=False,
    )
    storage.put_historical_data([record])
    mark_completed_months(storage, today)
    return record


def mark_completed_months(storage: Storage, today: date) -> list[HistoricalCostData]:
    """Mark every entry for a month before the current one as complete."""
    current = month_start(today)
    completed = [
        record.model_copy(update={"is_complete": True})
        for record in storage.get_historical_data()
        if not record.is_complete and record.date < current
    ]
    if completed:
        storage.put_historical_data(completed)
        logger.info("Marked %d historical months complete", len(completed))
    return completed


def previous_month_entry(
    storage: Storage,
    profile_name: str,
    today: date,
) -> HistoricalCostData | None:
    """The completed entry for the month before ``today``, if recorded."""
    target = previous_month_start(today)
    for record in storage.get_historical_data(profile_name):
        if record.date == target and record.is_complete:
            return record
    return None
