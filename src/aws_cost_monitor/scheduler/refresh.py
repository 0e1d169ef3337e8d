"""Budget-adaptive automatic refresh."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable

from aws_cost_monitor.config import RefreshConfig
from aws_cost_monitor.orchestrator import FetchOrchestrator
from aws_cost_monitor.storage.budgets import calculate_budget_status

logger = logging.getLogger(__name__)

# (budget fraction lower bound, interval in minutes), checked in order
INTERVAL_TIERS: tuple[tuple[float, int], ...] = (
    (1.0, 5),
    (0.9, 10),
    (0.8, 15),
    (0.7, 30),
)

TimerFactory = Callable[[float, Callable[[], None]], Any]


def _daemon_timer(interval: float, function: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class RefreshScheduler:
    """
    Refreshes one profile on a single-shot timer.

    Each firing fetches, then works out the next interval from how close
    spend is to budget and arms a new timer, so the cadence tightens on its
    own as spend climbs. ``start`` and ``stop`` are idempotent.
    """

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        profile_name: str,
        config: RefreshConfig | None = None,
        timer_factory: TimerFactory = _daemon_timer,
    ):
        self.orchestrator = orchestrator
        self.profile_name = profile_name
        self.config = config or RefreshConfig()
        self.timer_factory = timer_factory
        self.clock = orchestrator.clock

        self._timer: Any = None
        self._generation = 0
        self._next_refresh_at: datetime | None = None
        self._lock = threading.Lock()

    @property
    def next_refresh_at(self) -> datetime | None:
        return self._next_refresh_at

    @property
    def is_running(self) -> bool:
        return self._timer is not None

    def next_interval(self) -> int:
        """Minutes until the next refresh, tighter as spend nears budget."""
        budget = self.orchestrator.budgets.get_budget(self.profile_name)
        configured = min(budget.refresh_interval_minutes, self.config.max_interval_minutes)

        entry = self.orchestrator.cache.get(self.profile_name)
        if entry is None:
            return configured

        status = calculate_budget_status(entry.mtd_total, budget)
        if status is None:
            return configured

        for lower_bound, minutes in INTERVAL_TIERS:
            if status.percentage >= lower_bound:
                return minutes
        return configured

    def check_for_startup_refresh(self) -> bool:
        """
        Whether the profile's data is too old to wait for the first tick.

        Uses the cache entry when there is one, otherwise the last successful
        request in the API log.
        """
        now = self.clock()
        budget = self.orchestrator.budgets.get_budget(self.profile_name)
        interval = timedelta(minutes=budget.refresh_interval_minutes)

        entry = self.orchestrator.cache.get(self.profile_name)
        if entry is not None:
            age = now - entry.fetch_date
            if age > interval:
                logger.info(
                    "Cache is stale (%d min old vs %d min interval) - triggering refresh",
                    age.total_seconds() // 60,
                    budget.refresh_interval_minutes,
                )
                return True
            if not self.orchestrator.cache.is_valid(entry, budget, now):
                logger.info("Cache is outside its budget window - triggering refresh")
                return True
            return False

        last = self.orchestrator.budgets.last_successful_request(self.profile_name)
        if last is None:
            logger.info("No cache for %s - fetching immediately", self.profile_name)
            return True
        return now - last.timestamp > interval

    def start(self) -> None:
        """Arm the timer, firing immediately if the data is already stale."""
        if not self.config.enabled:
            logger.info("Automatic refresh disabled")
            return

        self.stop()
        if self.check_for_startup_refresh():
            self._arm(0)
        else:
            self._arm(self.next_interval() * 60)

    def stop(self) -> None:
        with self._lock:
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                logger.info("Refresh timer cancelled for %s", self.profile_name)
            self._timer = None
            self._next_refresh_at = None

    def _arm(self, delay_seconds: float) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._timer = self.timer_factory(delay_seconds, lambda: self._fire(generation))
            self._next_refresh_at = self.clock() + timedelta(seconds=delay_seconds)
            self._timer.start()

        logger.info(
            "Scheduled next refresh for %s at %s",
            self.profile_name,
            self._next_refresh_at.isoformat(),
        )

    def _fire(self, generation: int) -> None:
        """Timer callback: fetch, then arm the next single-shot timer."""
        if generation != self._generation:
            return

        logger.info("Refresh timer fired for %s", self.profile_name)
        try:
            result = self.orchestrator.fetch_cost(self.profile_name)
            if not result.success:
                logger.warning("Scheduled refresh for %s failed: %s", self.profile_name, result.message)
        except Exception:
            logger.exception("Scheduled refresh for %s raised", self.profile_name)
        finally:
            # stop() or start() may have run while the fetch was in flight
            if generation == self._generation:
                self._arm(self.next_interval() * 60)
