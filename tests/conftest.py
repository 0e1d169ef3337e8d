"""Pytest configuration and fixtures."""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest

from aws_cost_monitor.collectors.base import CostProvider, DailyCostRecord, MonthTotal
from aws_cost_monitor.config.schema import Config
from aws_cost_monitor.notifications.base import Notification, NotificationSink
from aws_cost_monitor.orchestrator import FetchOrchestrator
from aws_cost_monitor.storage.memory import InMemoryStorage
from aws_cost_monitor.storage.models import ServiceCost


class FakeClock:
    """Settable clock. ``sleep`` advances time instead of blocking."""

    def __init__(self, now: datetime):
        self.now = now
        self.slept: list[float] = []

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def sleep(self, seconds: float) -> None:
        self.slept.append(seconds)
        self.now += timedelta(seconds=seconds)


class FakeProvider(CostProvider):
    """
    Scripted cost provider.

    Queued errors are raised one per call before records are returned.
    """

    provider_name = "fake"

    def __init__(self, records: list[DailyCostRecord] | None = None):
        self.records = records or []
        self.errors: list[Exception] = []
        self.calls: list[tuple[str, date, date]] = []
        self.month_total: MonthTotal | None = MonthTotal(amount=Decimal("900"))
        self.service_totals = [
            ServiceCost(service_name="Amazon EC2", amount=Decimal("600")),
            ServiceCost(service_name="Amazon S3", amount=Decimal("300")),
        ]
        self.month_calls = 0

    def get_daily_service_costs(self, profile_name, start, end):
        self.calls.append((profile_name, start, end))
        if self.errors:
            raise self.errors.pop(0)
        return list(self.records)

    def get_month_total(self, profile_name, start, end):
        self.month_calls += 1
        return self.month_total

    def get_service_totals(self, profile_name, start, end):
        return list(self.service_totals)


class RecordingSink(NotificationSink):
    """Keeps every delivered notification."""

    def __init__(self, granted: bool = True):
        self.granted = granted
        self.delivered: list[Notification] = []

    def permission_granted(self) -> bool:
        return self.granted

    def deliver(self, notification: Notification) -> None:
        self.delivered.append(notification)


def make_records(start: date, daily: list[dict[str, str]]) -> list[DailyCostRecord]:
    """One record per entry in ``daily``, on consecutive days from ``start``."""
    return [
        DailyCostRecord(
            date=start + timedelta(days=i),
            costs_by_service={name: Decimal(amount) for name, amount in services.items()},
        )
        for i, services in enumerate(daily)
    ]


@pytest.fixture
def clock():
    """Clock fixed mid-month."""
    return FakeClock(datetime(2026, 10, 15, 12, 0, tzinfo=UTC))


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def provider():
    """Provider returning a small, low-spend month."""
    return FakeProvider(
        make_records(
            date(2026, 10, 1),
            [
                {"Amazon EC2": "2.00", "Amazon S3": "1.00", "AWS Lambda": "1.00"},
                {"Amazon EC2": "2.00", "Amazon S3": "1.00", "AWS Lambda": "1.00"},
                {"Amazon EC2": "1.00", "Amazon S3": "1.00", "AWS Lambda": "0.00"},
            ],
        )
    )


@pytest.fixture
def config():
    return Config(refresh={"fetch_last_month": False})


@pytest.fixture
def orchestrator(config, provider, storage, sink, clock):
    return FetchOrchestrator(
        config=config,
        provider=provider,
        storage=storage,
        sink=sink,
        clock=clock,
        sleep=clock.sleep,
        run_in_background=lambda fn: fn(),
    )


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary."""
    return {
        "project_name": "test-monitor",
        "environment": "dev",
        "aws": {
            "region": "us-east-1",
            "default_profile": "prod",
        },
        "storage": {
            "backend": "memory",
        },
        "cache": {
            "max_stale_minutes": 720,
        },
        "circuit_breaker": {
            "failure_threshold": 3,
            "scope": "profile",
        },
        "budgets": {
            "monthly_budget": 250,
            "alert_threshold": 0.75,
        },
        "anomaly_detection": {
            "enabled": True,
            "threshold_percent": 30,
            "window_days": 7,
        },
        "alerts": {
            "cooldown_minutes": 30,
        },
        "slack": {
            "enabled": False,
            "secret_name": "cost-monitor/test",
        },
    }
