"""Fetch pipeline: cache, gates, provider, analytics and alerts."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable

from aws_cost_monitor.analysis.engine import AnalyticsEngine, CostAnalytics
from aws_cost_monitor.analysis.history import update_historical_data
from aws_cost_monitor.analysis.periods import month_to_date_range, previous_month_range, same_month
from aws_cost_monitor.collectors.base import CostProvider, DailyCostRecord
from aws_cost_monitor.collectors.demo import DemoCostProvider
from aws_cost_monitor.config import Config
from aws_cost_monitor.errors import (
    CircuitOpenError,
    ConfigurationError,
    CostMonitorError,
    NoCostDataError,
    RateLimitedError,
)
from aws_cost_monitor.notifications.base import LoggingSink, NotificationSink
from aws_cost_monitor.notifications.policy import AlertDecision, AlertPolicy
from aws_cost_monitor.resilience.circuit_breaker import CircuitBreakerRegistry
from aws_cost_monitor.resilience.rate_limiter import RateLimiter
from aws_cost_monitor.resilience.single_flight import SingleFlight
from aws_cost_monitor.state import CostMonitorState
from aws_cost_monitor.storage.base import Storage
from aws_cost_monitor.storage.budgets import BudgetManager
from aws_cost_monitor.storage.cache import CostCache
from aws_cost_monitor.storage.models import (
    CostCacheEntry,
    DailyCost,
    DailyServiceCost,
    LastMonthCosts,
    ProfileBudget,
    ServiceCost,
    sort_service_costs,
)

logger = logging.getLogger(__name__)

DAILY_ENDPOINT = "GetCostAndUsage-Daily"
LAST_MONTH_ENDPOINT = "GetCostAndUsage-LastMonth"
CIRCUIT_TRIPPED_MESSAGE = "Multiple API failures detected. Circuit breaker active."


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _run_in_thread(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True).start()


class FetchStatus(str, Enum):
    FRESH = "fresh"  # Live provider call succeeded
    CACHED = "cached"  # Valid cache entry served
    STALE = "stale"  # Expired entry served because of rate limiting
    DEMO = "demo"  # Synthetic data
    FAILED = "failed"


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    RATE_LIMITED = "rate_limited"
    CIRCUIT_OPEN = "circuit_open"
    PROVIDER = "provider"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one fetch_cost call."""

    profile_name: str
    status: FetchStatus
    entry: CostCacheEntry | None = None
    analytics: CostAnalytics | None = None
    message: str | None = None
    error_kind: ErrorKind | None = None
    rate_limited: bool = False
    wait_seconds: int | None = None
    alerts: tuple[AlertDecision, ...] = ()

    @property
    def success(self) -> bool:
        return self.status != FetchStatus.FAILED


def build_cache_entry(
    profile_name: str,
    records: Iterable[DailyCostRecord],
    fetch_date: datetime,
    start: date,
    end: date,
) -> CostCacheEntry:
    """
    Aggregate provider rows into a cache entry.

    Days with a non-positive total are left out of the daily series and the
    month-to-date total; services only accumulate positive amounts.
    """
    currency = "USD"
    mtd_total = Decimal("0")
    daily_costs: list[DailyCost] = []
    daily_service_costs: list[DailyServiceCost] = []
    service_totals: dict[str, Decimal] = {}

    for record in records:
        currency = record.currency
        for service_name, amount in record.costs_by_service.items():
            if amount > 0:
                service_totals[service_name] = service_totals.get(service_name, Decimal("0")) + amount
                daily_service_costs.append(
                    DailyServiceCost(
                        date=record.date,
                        service_name=service_name,
                        amount=amount,
                        currency=record.currency,
                    )
                )

        day_total = record.total
        if day_total > 0:
            daily_costs.append(DailyCost(date=record.date, amount=day_total, currency=record.currency))
            mtd_total += day_total

    services = sort_service_costs(
        [
            ServiceCost(service_name=name, amount=amount, currency=currency)
            for name, amount in service_totals.items()
        ]
    )

    return CostCacheEntry(
        profile_name=profile_name,
        fetch_date=fetch_date,
        mtd_total=mtd_total,
        currency=currency,
        daily_costs=tuple(sorted(daily_costs, key=lambda c: c.date)),
        service_costs=tuple(services),
        daily_service_costs=tuple(daily_service_costs),
        start_date=start,
        end_date=end,
    )


class FetchOrchestrator:
    """
    Coordinates every cost fetch for every profile.

    Sequence for ``fetch_cost``:
    1. Valid cache entry (unless forced): serve it.
    2. Circuit breaker open (unless forced): fail fast.
    3. Rate limited (unless forced): serve the stale entry if one exists
       within the staleness ceiling, otherwise fail with the wait time.
    4. Call the provider. Passing the gate in step 3 already recorded the
       call time; all profiles share one gate.
    5. Success: replace the cache entry, close the breaker, update history,
       run analytics and alerts.
    6. Failure: count it against the breaker and leave the cache alone.

    Concurrent calls for the same profile share one execution.
    """

    def __init__(
        self,
        config: Config,
        provider: CostProvider,
        storage: Storage,
        sink: NotificationSink | None = None,
        demo_provider: DemoCostProvider | None = None,
        state: CostMonitorState | None = None,
        clock: Callable[[], datetime] = _utc_now,
        sleep: Callable[[float], None] = time.sleep,
        run_in_background: Callable[[Callable[[], None]], None] = _run_in_thread,
    ):
        self.config = config
        self.provider = provider
        self.storage = storage
        self.demo_provider = demo_provider or DemoCostProvider(config.demo)
        self.state = state or CostMonitorState()
        self.clock = clock
        self.run_in_background = run_in_background

        self.cache = CostCache(storage, config.cache, clock)
        self.budgets = BudgetManager(storage, config.budgets, clock)
        self.rate_limiter = RateLimiter(config.rate_limit.min_interval_seconds, clock, sleep)
        self.breakers = CircuitBreakerRegistry(
            config.circuit_breaker.failure_threshold, config.circuit_breaker.scope
        )
        self.analytics = AnalyticsEngine(storage, config.anomaly_detection)
        self.alerts = AlertPolicy(storage, sink or LoggingSink(), config.alerts, clock)
        self._in_flight: SingleFlight[FetchResult] = SingleFlight()

    # =========================================================================
    # Public API
    # =========================================================================

    def fetch_cost(self, profile_name: str | None, force: bool = False) -> FetchResult:
        """
        Fetch month-to-date cost for a profile.

        Args:
            profile_name: Profile to fetch. Falls back to ``aws.default_profile``.
            force: Skip the cache, the circuit breaker and the rate limiter.

        Returns:
            FetchResult. Errors are reported in the result, never raised.
        """
        profile_name = profile_name or self.config.aws.default_profile
        if not profile_name:
            return self._fail("", ConfigurationError("No profile selected."))

        result, shared = self._in_flight.do(profile_name, lambda: self._fetch(profile_name, force))
        if shared:
            logger.info("Joined in-flight fetch for %s", profile_name)
        return result

    def refresh_all(self, profile_names: Iterable[str], force: bool = False) -> list[FetchResult]:
        return [self.fetch_cost(name, force=force) for name in profile_names]

    def fetch_last_month(self, profile_name: str, force: bool = False) -> LastMonthCosts | None:
        """
        Fetch the previous month's total and service breakdown.

        Runs at most once per calendar month unless forced. Waits for the rate
        limiter instead of failing; the wait only blocks the calling thread.
        """
        now = self.clock()
        existing = self.storage.get_last_month_costs(profile_name)
        if not force and existing and same_month(existing.fetch_date.date(), now.date()):
            logger.info("Using cached last month data for %s", profile_name)
            return existing

        self.rate_limiter.acquire()
        start, end = previous_month_range(self.clock().date())
        started = time.monotonic()

        try:
            total = self.provider.get_month_total(profile_name, start, end)
            if total is None:
                raise NoCostDataError()
            services = self.provider.get_service_totals(profile_name, start, end)
        except CostMonitorError as e:
            self.budgets.record_api_request(
                profile_name, LAST_MONTH_ENDPOINT, False, time.monotonic() - started, e.message
            )
            logger.error("Error fetching last month cost for %s: %s", profile_name, e.message)
            return None

        costs = LastMonthCosts(
            profile_name=profile_name,
            amount=total.amount,
            currency=total.currency,
            fetch_date=self.clock(),
            service_costs=tuple(services),
        )
        self.storage.put_last_month_costs(costs)
        self.budgets.record_api_request(
            profile_name, LAST_MONTH_ENDPOINT, True, time.monotonic() - started
        )
        logger.info("Fetched last month cost for %s: %s", profile_name, costs.amount)

        self._refresh_analytics(profile_name)
        return costs

    # =========================================================================
    # Pipeline
    # =========================================================================

    def _fetch(self, profile_name: str, force: bool) -> FetchResult:
        if self.demo_provider.is_demo_profile(profile_name):
            return self._load_demo(profile_name)

        now = self.clock()
        budget = self.budgets.get_budget(profile_name)
        cached = self.cache.get(profile_name)

        if not force and cached and self.cache.is_valid(cached, budget, now):
            logger.info(
                "Using cached data for %s, age: %d minutes",
                profile_name,
                cached.age_seconds(now) // 60,
            )
            return self._serve_cache(cached, budget, FetchStatus.CACHED)

        breaker = self.breakers.get(profile_name)
        if breaker.is_open:
            if not force:
                logger.warning("Circuit breaker tripped. Skipping API call for %s", profile_name)
                return self._fail(profile_name, CircuitOpenError())
            logger.info("Circuit breaker is active but bypassing due to force refresh")

        if not self.rate_limiter.try_acquire(now, force):
            wait = self.rate_limiter.seconds_until_next_allowed(now)
            logger.warning("Rate limited. Need to wait %d seconds", wait)
            if cached and self.cache.within_stale_ceiling(cached, now):
                return self._serve_cache(
                    cached, budget, FetchStatus.STALE, rate_limited=True, wait_seconds=wait
                )
            return self._fail(profile_name, RateLimitedError(wait))

        return self._fetch_live(profile_name, budget)

    def _fetch_live(self, profile_name: str, budget: ProfileBudget) -> FetchResult:
        now = self.clock()
        start, end = month_to_date_range(now.date())
        self.state.update(profile_name, is_loading=True, error_message=None, is_rate_limited=False)

        started = time.monotonic()
        logger.info("Fetching cost data for profile: %s", profile_name)

        try:
            records = self.provider.get_daily_service_costs(profile_name, start, end)
            if not records:
                raise NoCostDataError()
        except CostMonitorError as e:
            if not e.counts_as_failure:
                logger.error("Configuration error for %s: %s", profile_name, e.message)
                return self._fail(profile_name, e)
            return self._handle_provider_failure(profile_name, e, time.monotonic() - started)

        duration = time.monotonic() - started
        entry = build_cache_entry(profile_name, records, self.clock(), start, end)
        self.cache.put(entry)
        self.breakers.get(profile_name).record_success()
        self.budgets.record_api_request(profile_name, DAILY_ENDPOINT, True, duration)
        logger.info(
            "Fetched MTD: %s, Daily entries: %d, Services: %d",
            entry.mtd_total,
            len(entry.daily_costs),
            len(entry.service_costs),
        )

        today = self.clock().date()
        update_historical_data(self.storage, profile_name, entry.mtd_total, entry.currency, today)
        analytics = self.analytics.analyze(entry, budget, today)
        decisions = self.alerts.evaluate(profile_name, analytics.budget_status, analytics.anomalies)

        self.state.update(
            profile_name,
            entry=entry,
            analytics=analytics,
            is_loading=False,
            error_message=None,
            is_rate_limited=False,
            rate_limit_wait_seconds=None,
            is_stale=False,
            updated_at=self.clock(),
        )

        if self.config.refresh.fetch_last_month:
            self.run_in_background(lambda: self.fetch_last_month(profile_name))

        return FetchResult(
            profile_name=profile_name,
            status=FetchStatus.FRESH,
            entry=entry,
            analytics=analytics,
            alerts=tuple(decisions),
        )

    def _handle_provider_failure(
        self,
        profile_name: str,
        error: CostMonitorError,
        duration: float,
    ) -> FetchResult:
        self.budgets.record_api_request(profile_name, DAILY_ENDPOINT, False, duration, error.message)
        logger.error("Error fetching cost for profile %s: %s", profile_name, error.message)

        if self.breakers.get(profile_name).record_failure():
            return self._fail(profile_name, CircuitOpenError(CIRCUIT_TRIPPED_MESSAGE))
        return self._fail(profile_name, error)

    def _serve_cache(
        self,
        entry: CostCacheEntry,
        budget: ProfileBudget,
        status: FetchStatus,
        rate_limited: bool = False,
        wait_seconds: int | None = None,
    ) -> FetchResult:
        analytics = self.analytics.analyze(entry, budget, self.clock().date())
        self.state.update(
            entry.profile_name,
            entry=entry,
            analytics=analytics,
            is_loading=False,
            error_message=None,
            is_rate_limited=rate_limited,
            rate_limit_wait_seconds=wait_seconds,
            is_stale=status == FetchStatus.STALE,
            updated_at=self.clock(),
        )
        return FetchResult(
            profile_name=entry.profile_name,
            status=status,
            entry=entry,
            analytics=analytics,
            rate_limited=rate_limited,
            wait_seconds=wait_seconds,
        )

    def _load_demo(self, profile_name: str) -> FetchResult:
        """Synthetic data, regenerated every call and never cached."""
        now = self.clock()
        start, end = month_to_date_range(now.date())
        records = self.demo_provider.get_daily_service_costs(profile_name, start, end)
        entry = build_cache_entry(profile_name, records, now, start, end)

        budget = self.budgets.get_budget(profile_name)
        analytics = self.analytics.analyze(entry, budget, now.date())
        self.state.update(
            profile_name,
            entry=entry,
            analytics=analytics,
            is_loading=False,
            error_message=None,
            is_rate_limited=False,
            is_stale=False,
            updated_at=now,
        )
        return FetchResult(
            profile_name=profile_name,
            status=FetchStatus.DEMO,
            entry=entry,
            analytics=analytics,
        )

    def _fail(self, profile_name: str, error: CostMonitorError) -> FetchResult:
        if isinstance(error, CircuitOpenError):
            kind = ErrorKind.CIRCUIT_OPEN
            message = error.message
        elif isinstance(error, RateLimitedError):
            kind = ErrorKind.RATE_LIMITED
            message = error.message
        elif isinstance(error, ConfigurationError):
            kind = ErrorKind.CONFIGURATION
            message = error.message
        else:
            kind = ErrorKind.PROVIDER
            message = f"API request failed: {error.message}"

        if profile_name:
            self.state.update(
                profile_name,
                is_loading=False,
                error_message=message,
                is_rate_limited=kind == ErrorKind.RATE_LIMITED,
                rate_limit_wait_seconds=getattr(error, "wait_seconds", None),
                updated_at=self.clock(),
            )

        return FetchResult(
            profile_name=profile_name,
            status=FetchStatus.FAILED,
            message=message,
            error_kind=kind,
            rate_limited=kind == ErrorKind.RATE_LIMITED,
            wait_seconds=getattr(error, "wait_seconds", None),
        )

    def _refresh_analytics(self, profile_name: str) -> None:
        """Recompute analytics for the cached entry, e.g. once last month arrives."""
        entry = self.cache.get(profile_name)
        if entry is None:
            return
        budget = self.budgets.get_budget(profile_name)
        analytics = self.analytics.analyze(entry, budget, self.clock().date())
        self.state.update(profile_name, analytics=analytics)
