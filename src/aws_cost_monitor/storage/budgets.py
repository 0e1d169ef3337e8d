"""Profile budgets and the API request log."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Callable

from aws_cost_monitor.config import BudgetDefaultsConfig
from aws_cost_monitor.storage.base import Storage
from aws_cost_monitor.storage.models import APIRequestRecord, BudgetStatus, ProfileBudget

logger = logging.getLogger(__name__)

# Cost Explorer bills each request
API_REQUEST_COST = Decimal("0.01")

# Budgets written before API budgets existed carry a zero value
LEGACY_API_BUDGET = Decimal("5")
LEGACY_REFRESH_INTERVAL_MINUTES = 480


def _utc_now() -> datetime:
    return datetime.now(UTC)


def calculate_budget_status(cost: Decimal, budget: ProfileBudget) -> BudgetStatus | None:
    """
    Budget utilization for a month-to-date total.

    Returns None when the profile has no monthly budget.
    """
    if not budget.monthly_budget:
        return None

    percentage = float(cost / budget.monthly_budget)
    return BudgetStatus(
        monthly_budget=budget.monthly_budget,
        monthly_spent=cost,
        percentage=percentage,
        is_over_budget=percentage >= 1.0,
        is_near_threshold=percentage >= budget.alert_threshold,
    )


class BudgetManager:
    """Creates, migrates and updates per-profile budgets."""

    def __init__(
        self,
        storage: Storage,
        defaults: BudgetDefaultsConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.storage = storage
        self.defaults = defaults or BudgetDefaultsConfig()
        self.clock = clock

    def _new_budget(self, profile_name: str) -> ProfileBudget:
        monthly = self.defaults.monthly_budget
        return ProfileBudget(
            profile_name=profile_name,
            monthly_budget=Decimal(str(monthly)) if monthly is not None else None,
            alert_threshold=self.defaults.alert_threshold,
            api_budget=Decimal(str(self.defaults.api_budget)),
            refresh_interval_minutes=self.defaults.refresh_interval_minutes,
        )

    def get_budget(self, profile_name: str) -> ProfileBudget:
        """
        Get the budget for a profile, creating it with defaults on first access.

        A stored budget with a zero API budget predates API budgets and is
        migrated once to the legacy defaults.
        """
        budget = self.storage.get_budget(profile_name)

        if budget is None:
            budget = self._new_budget(profile_name)
            self.storage.put_budget(budget)
            logger.info("Created default budget for %s", profile_name)
            return budget

        if budget.api_budget == 0:
            budget.api_budget = LEGACY_API_BUDGET
            budget.refresh_interval_minutes = LEGACY_REFRESH_INTERVAL_MINUTES
            self.storage.put_budget(budget)
            logger.info("Migrated legacy budget for %s", profile_name)

        return budget

    def update_budget(
        self,
        profile_name: str,
        monthly_budget: Decimal | None,
        alert_threshold: float,
    ) -> ProfileBudget:
        """Set the monthly budget and alert threshold."""
        budget = self.get_budget(profile_name)
        updated = ProfileBudget.model_validate(
            {
                **budget.model_dump(),
                "monthly_budget": monthly_budget,
                "alert_threshold": alert_threshold,
            }
        )
        self.storage.put_budget(updated)
        return updated

    def update_api_budget_and_refresh(
        self,
        profile_name: str,
        api_budget: Decimal,
        refresh_interval_minutes: int,
    ) -> ProfileBudget:
        """
        Set the API budget and the automatic refresh interval.

        Raises:
            ValueError: If the interval is below the configured floor.
        """
        floor = self.defaults.min_refresh_interval_minutes
        if refresh_interval_minutes < floor:
            raise ValueError(
                f"refresh_interval_minutes must be at least {floor}, got {refresh_interval_minutes}"
            )

        budget = self.get_budget(profile_name)
        updated = ProfileBudget.model_validate(
            {
                **budget.model_dump(),
                "api_budget": api_budget,
                "refresh_interval_minutes": refresh_interval_minutes,
            }
        )
        self.storage.put_budget(updated)
        return updated

    def status_for(self, profile_name: str, cost: Decimal) -> BudgetStatus | None:
        """Budget status for a profile's month-to-date total."""
        return calculate_budget_status(cost, self.get_budget(profile_name))

    # =========================================================================
    # API request log
    # =========================================================================

    def record_api_request(
        self,
        profile_name: str,
        endpoint: str,
        success: bool,
        duration_seconds: float,
        error_message: str | None = None,
    ) -> APIRequestRecord:
        """Append a live provider call to the request log."""
        record = APIRequestRecord(
            timestamp=self.clock(),
            profile_name=profile_name,
            endpoint=endpoint,
            success=success,
            duration_seconds=duration_seconds,
            error_message=error_message,
        )
        self.storage.add_api_request(record)

        if success:
            logger.info(
                "API request to %s for %s succeeded in %.2fs", endpoint, profile_name, duration_seconds
            )
        else:
            logger.error(
                "API request to %s for %s failed: %s",
                endpoint,
                profile_name,
                error_message or "Unknown error",
            )
        return record

    def request_count(self, profile_name: str, window: timedelta) -> int:
        """Number of live requests for a profile within the trailing window."""
        cutoff = self.clock() - window
        return sum(
            1 for r in self.storage.get_api_requests(profile_name, since=cutoff) if r.timestamp > cutoff
        )

    def estimated_api_spend(self, profile_name: str, since: datetime | None = None) -> Decimal:
        """Metered cost of live requests, by default for the current calendar month."""
        if since is None:
            since = self.clock().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        count = len(self.storage.get_api_requests(profile_name, since=since))
        return API_REQUEST_COST * count

    def last_successful_request(self, profile_name: str) -> APIRequestRecord | None:
        """Most recent successful live request for a profile."""
        successes = [r for r in self.storage.get_api_requests(profile_name) if r.success]
        return max(successes, key=lambda r: r.timestamp, default=None)
