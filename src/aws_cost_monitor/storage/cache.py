"""Budget-aware cost cache."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Callable

from aws_cost_monitor.config import CacheConfig
from aws_cost_monitor.storage.base import Storage
from aws_cost_monitor.storage.models import CostCacheEntry, ProfileBudget

logger = logging.getLogger(__name__)

# (budget fraction lower bound, max age in minutes), checked in order
BUDGET_TIERS: tuple[tuple[Decimal, int], ...] = (
    (Decimal("0.95"), 15),
    (Decimal("0.8"), 30),
    (Decimal("0.5"), 60),
)
LOWEST_TIER_MINUTES = 120


def _utc_now() -> datetime:
    return datetime.now(UTC)


class CostCache:
    """
    Most recent fetch result per profile, with budget-adaptive validity.

    The closer month-to-date spend is to the budget, the shorter an entry
    stays valid:

    - more than 95% of budget: 15 minutes
    - more than 80%: 30 minutes
    - more than 50%: 60 minutes
    - otherwise, or when the profile has no monthly budget: 120 minutes

    Without a budget record at all the flat ``default_max_age_minutes``
    window applies.
    """

    def __init__(
        self,
        storage: Storage,
        config: CacheConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.storage = storage
        self.config = config or CacheConfig()
        self.clock = clock

    def get(self, profile_name: str) -> CostCacheEntry | None:
        """Look up the cached entry. No side effects."""
        return self.storage.get_cache_entry(profile_name)

    def put(self, entry: CostCacheEntry) -> None:
        """Replace the profile's entry wholesale."""
        self.storage.put_cache_entry(entry)
        logger.debug(
            "Cached %s: mtd=%s %s, %d days",
            entry.profile_name,
            entry.mtd_total,
            entry.currency,
            len(entry.daily_costs),
        )

    def max_age(self, entry: CostCacheEntry, budget: ProfileBudget | None = None) -> timedelta:
        """Validity window for an entry given the profile budget."""
        if budget is None:
            return timedelta(minutes=self.config.default_max_age_minutes)

        if not budget.monthly_budget:
            return timedelta(minutes=LOWEST_TIER_MINUTES)

        pct = entry.mtd_total / budget.monthly_budget
        for lower_bound, minutes in BUDGET_TIERS:
            if pct > lower_bound:
                return timedelta(minutes=minutes)
        return timedelta(minutes=LOWEST_TIER_MINUTES)

    def is_valid(
        self,
        entry: CostCacheEntry,
        budget: ProfileBudget | None = None,
        now: datetime | None = None,
    ) -> bool:
        """True while the entry is younger than its validity window."""
        now = now or self.clock()
        return now - entry.fetch_date < self.max_age(entry, budget)

    def within_stale_ceiling(self, entry: CostCacheEntry, now: datetime | None = None) -> bool:
        """True if an expired entry is still young enough to serve as a fallback."""
        now = now or self.clock()
        return now - entry.fetch_date < timedelta(minutes=self.config.max_stale_minutes)
