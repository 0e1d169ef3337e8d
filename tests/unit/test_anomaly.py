"""Tests for anomaly detection module."""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest

from aws_cost_monitor.analysis.anomaly_detector import (
    AnomalyDetector,
    AnomalySeverity,
    AnomalyType,
)
from aws_cost_monitor.analysis.engine import AnalyticsEngine
from aws_cost_monitor.config.schema import AnomalyDetectionConfig
from aws_cost_monitor.storage.memory import InMemoryStorage
from aws_cost_monitor.storage.models import (
    CostCacheEntry,
    DailyCost,
    HistoricalCostData,
    ProfileBudget,
    ServiceCost,
)


def create_daily(amounts: list[str]) -> list[DailyCost]:
    """Helper to create a daily series starting on the 1st."""
    start = date(2026, 10, 1)
    return [DailyCost(date=start + timedelta(days=i), amount=Decimal(a)) for i, a in enumerate(amounts)]


def create_services(amounts: dict[str, str]) -> list[ServiceCost]:
    return [ServiceCost(service_name=name, amount=Decimal(a)) for name, a in amounts.items()]


@pytest.fixture
def detector():
    return AnomalyDetector(AnomalyDetectionConfig())


class TestDailyDeviation:
    """Tests for deviation from the trailing window mean."""

    def test_needs_full_window(self, detector):
        assert detector.detect_daily_deviation(create_daily(["10"] * 6 + ["100"])[:6]) == []

    def test_flat_series(self, detector):
        assert detector.detect_daily_deviation(create_daily(["10"] * 7)) == []

    def test_spike(self, detector):
        # Mean 20: the 80 day is +300%, the 10 days are -50%
        anomalies = detector.detect_daily_deviation(create_daily(["10"] * 6 + ["80"]))

        spikes = [a for a in anomalies if a.type == AnomalyType.UNUSUAL_SPIKE]
        drops = [a for a in anomalies if a.type == AnomalyType.SUDDEN_DROP]
        assert len(spikes) == 1
        assert spikes[0].severity == AnomalySeverity.CRITICAL
        assert spikes[0].message == "Daily spending spike of 300%"
        assert len(drops) == 6
        assert all(d.severity == AnomalySeverity.WARNING for d in drops)

    def test_zero_mean(self, detector):
        assert detector.detect_daily_deviation(create_daily(["0"] * 7)) == []

    def test_only_trailing_window_counts(self, detector):
        series = create_daily(["500"] + ["10"] * 7)
        assert detector.detect_daily_deviation(series) == []


class TestServiceDeviation:
    """Tests for change vs last month per service."""

    def test_top_service_doubled(self, detector):
        anomalies = detector.detect_service_deviation(
            create_services({"Amazon EC2": "250"}),
            create_services({"Amazon EC2": "100"}),
        )
        assert len(anomalies) == 1
        assert anomalies[0].type == AnomalyType.UNUSUAL_SPIKE
        assert anomalies[0].severity == AnomalySeverity.CRITICAL
        assert anomalies[0].message == "Amazon EC2 cost changed by 150% vs last month"

    def test_drop_is_warning(self, detector):
        anomalies = detector.detect_service_deviation(
            create_services({"Amazon RDS": "40"}),
            create_services({"Amazon RDS": "100"}),
        )
        assert anomalies[0].type == AnomalyType.SUDDEN_DROP
        assert anomalies[0].severity == AnomalySeverity.WARNING

    def test_only_top_services(self, detector):
        current = create_services({"A": "100", "B": "90", "C": "80", "D": "70"})
        last_month = create_services({"D": "1"})
        assert detector.detect_service_deviation(current, last_month) == []

    def test_service_missing_last_month(self, detector):
        assert detector.detect_service_deviation(create_services({"New": "50"}), []) == []


class TestBudgetVelocity:
    """Tests for spend running ahead of the month."""

    def test_no_budget(self, detector):
        assert detector.check_budget_velocity(Decimal("100"), None, date(2026, 10, 10)) is None

    def test_on_pace(self, detector):
        # Halfway through the month, 50% spent
        assert detector.check_budget_velocity(Decimal("50"), Decimal("100"), date(2026, 10, 16)) is None

    def test_ahead_of_pace(self, detector):
        # Day 10 of 31: month progress ~0.32, spend 0.6
        anomaly = detector.check_budget_velocity(Decimal("60"), Decimal("100"), date(2026, 10, 10))
        assert anomaly.type == AnomalyType.BUDGET_VELOCITY
        assert anomaly.severity == AnomalySeverity.WARNING
        assert anomaly.message == "Spending 86% faster than expected pace"

    def test_nearly_exhausted_is_critical(self, detector):
        anomaly = detector.check_budget_velocity(Decimal("95"), Decimal("100"), date(2026, 10, 10))
        assert anomaly.severity == AnomalySeverity.CRITICAL

    def test_exhausted(self, detector):
        anomaly = detector.check_budget_velocity(Decimal("120"), Decimal("100"), date(2026, 10, 10))
        assert anomaly.severity == AnomalySeverity.CRITICAL
        assert anomaly.message == "Budget exhausted with 21 days remaining"


class TestDominantServices:
    """Tests for outsized service share."""

    def test_dominant_service(self, detector):
        anomalies = detector.detect_dominant_services(
            create_services({"Amazon EC2": "60", "Amazon S3": "25", "AWS Lambda": "15"})
        )
        assert len(anomalies) == 1
        assert anomalies[0].severity == AnomalySeverity.CRITICAL
        assert anomalies[0].message == "Amazon EC2 is 60% of total cost"

    def test_warning_share(self, detector):
        anomalies = detector.detect_dominant_services(
            create_services({"A": "40", "B": "30", "C": "30"})
        )
        assert [a.severity for a in anomalies] == [AnomalySeverity.WARNING]

    def test_empty(self, detector):
        assert detector.detect_dominant_services([]) == []


class TestDetect:
    """Tests for the combined run."""

    def test_disabled(self):
        detector = AnomalyDetector(AnomalyDetectionConfig(enabled=False))
        daily = create_daily(["10"] * 6 + ["80"])
        assert detector.detect(daily, create_services({"A": "100"})) == []

    def test_same_inputs_same_output(self, detector):
        daily = create_daily(["10"] * 6 + ["80"])
        services = create_services({"Amazon EC2": "70", "Amazon S3": "30"})
        kwargs = dict(
            last_month_services=create_services({"Amazon EC2": "20"}),
            current_total=Decimal("140"),
            monthly_budget=Decimal("150"),
            today=date(2026, 10, 7),
        )

        first = detector.detect(daily, services, **kwargs)
        second = detector.detect(daily, services, **kwargs)

        assert first == second
        assert len(first) > 0


def month(start: date, amount: str, complete: bool = True) -> HistoricalCostData:
    return HistoricalCostData(
        profile_name="prod", date=start, amount=Decimal(amount), is_complete=complete
    )


# August (31 days) and September (30 days) both run at 10 a day
STEADY_HISTORY = [month(date(2026, 8, 1), "310"), month(date(2026, 9, 1), "300")]
TODAY = date(2026, 10, 15)


class TestHistoricalDeviation:
    """Tests for month-to-date spend vs earlier months at the same day."""

    def test_needs_two_earlier_months(self, detector):
        history = [month(date(2026, 9, 1), "300"), month(date(2026, 10, 1), "10", complete=False)]
        assert detector.detect_historical_deviation(Decimal("900"), history, TODAY) is None

    def test_in_line_with_history(self, detector):
        # Both months project to 150 by the 15th
        assert detector.detect_historical_deviation(Decimal("170"), STEADY_HISTORY, TODAY) is None

    def test_spike_is_warning_up_to_fifty_percent(self, detector):
        anomaly = detector.detect_historical_deviation(Decimal("200"), STEADY_HISTORY, TODAY)

        assert anomaly.type == AnomalyType.UNUSUAL_SPIKE
        assert anomaly.severity == AnomalySeverity.WARNING
        assert anomaly.message == "Spending is 33% higher than usual"

    def test_large_spike_is_critical(self, detector):
        anomaly = detector.detect_historical_deviation(Decimal("240"), STEADY_HISTORY, TODAY)

        assert anomaly.severity == AnomalySeverity.CRITICAL
        assert anomaly.percentage == pytest.approx(60.0)

    def test_drop(self, detector):
        anomaly = detector.detect_historical_deviation(Decimal("90"), STEADY_HISTORY, TODAY)

        assert anomaly.type == AnomalyType.SUDDEN_DROP
        assert anomaly.message == "Spending is 40% lower than usual"

    def test_incomplete_month_counts_at_face_value(self, detector):
        history = [month(date(2026, 8, 1), "310"), month(date(2026, 9, 1), "250", complete=False)]
        # Average of 150 and 250
        assert detector.detect_historical_deviation(Decimal("200"), history, TODAY) is None

    def test_current_month_is_ignored(self, detector):
        history = STEADY_HISTORY + [month(date(2026, 10, 1), "5000", complete=False)]
        assert detector.detect_historical_deviation(Decimal("150"), history, TODAY) is None

    def test_zero_average(self, detector):
        history = [month(date(2026, 8, 1), "0"), month(date(2026, 9, 1), "0")]
        assert detector.detect_historical_deviation(Decimal("50"), history, TODAY) is None


class TestAnalyticsEngineHistory:
    def test_history_feeds_anomalies(self):
        storage = InMemoryStorage()
        storage.put_historical_data(STEADY_HISTORY)
        entry = CostCacheEntry(
            profile_name="prod",
            fetch_date=datetime(2026, 10, 15, 12, 0, tzinfo=UTC),
            mtd_total=Decimal("240"),
            start_date=date(2026, 10, 1),
            end_date=date(2026, 10, 16),
        )
        budget = ProfileBudget(profile_name="prod", monthly_budget=None)

        analytics = AnalyticsEngine(storage).analyze(entry, budget, TODAY)

        assert [a.message for a in analytics.anomalies] == ["Spending is 60% higher than usual"]
        assert analytics.critical_anomalies
