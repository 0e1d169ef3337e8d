"""Tests for the Cost Explorer provider."""

from datetime import date
from decimal import Decimal

import boto3
import pytest
from botocore.exceptions import NoCredentialsError, ProfileNotFound
from botocore.stub import Stubber

from aws_cost_monitor.collectors.aws_cost_explorer import (
    METRIC,
    SERVICE_GROUP_BY,
    CostExplorerCollector,
    translate_error,
)
from aws_cost_monitor.errors import (
    ConfigurationError,
    ProviderAuthError,
    ProviderError,
    ProviderThrottledError,
)

START = date(2026, 10, 1)
END = date(2026, 10, 3)


def group(service: str, amount: str) -> dict:
    return {"Keys": [service], "Metrics": {METRIC: {"Amount": amount, "Unit": "USD"}}}


def daily_result(day: str, next_day: str, groups: list[dict]) -> dict:
    return {
        "TimePeriod": {"Start": day, "End": next_day},
        "Total": {},
        "Groups": groups,
        "Estimated": False,
    }


def daily_params(**extra) -> dict:
    params = {
        "TimePeriod": {"Start": START.isoformat(), "End": END.isoformat()},
        "Granularity": "DAILY",
        "Metrics": [METRIC],
        "GroupBy": SERVICE_GROUP_BY,
    }
    params.update(extra)
    return params


@pytest.fixture
def ce_client():
    return boto3.client(
        "ce",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def collector(ce_client):
    return CostExplorerCollector(client_factory=lambda profile_name: ce_client)


class TestDailyServiceCosts:
    """Tests for daily cost parsing."""

    def test_groups_by_day_and_service(self, collector, ce_client):
        with Stubber(ce_client) as stubber:
            stubber.add_response(
                "get_cost_and_usage",
                {
                    "ResultsByTime": [
                        daily_result(
                            "2026-10-01",
                            "2026-10-02",
                            [
                                group("Amazon EC2", "12.50"),
                                group("Amazon S3", "0"),
                                group("Credits", "-2.00"),
                            ],
                        ),
                        daily_result("2026-10-02", "2026-10-03", [group("Amazon EC2", "7.25")]),
                    ]
                },
                daily_params(),
            )

            records = collector.get_daily_service_costs("prod", START, END)

        assert [r.date for r in records] == [date(2026, 10, 1), date(2026, 10, 2)]
        assert records[0].costs_by_service == {
            "Amazon EC2": Decimal("12.50"),
            "Credits": Decimal("-2.00"),
        }
        assert records[0].total == Decimal("10.50")
        assert records[1].currency == "USD"

    def test_follows_next_page_token(self, collector, ce_client):
        with Stubber(ce_client) as stubber:
            stubber.add_response(
                "get_cost_and_usage",
                {
                    "ResultsByTime": [
                        daily_result("2026-10-01", "2026-10-02", [group("Amazon EC2", "1")])
                    ],
                    "NextPageToken": "page-2",
                },
                daily_params(),
            )
            stubber.add_response(
                "get_cost_and_usage",
                {
                    "ResultsByTime": [
                        daily_result("2026-10-01", "2026-10-02", [group("AWS Lambda", "2")])
                    ]
                },
                daily_params(NextPageToken="page-2"),
            )

            records = collector.get_daily_service_costs("prod", START, END)
            stubber.assert_no_pending_responses()

        assert len(records) == 1
        assert records[0].costs_by_service == {"Amazon EC2": Decimal("1"), "AWS Lambda": Decimal("2")}

    def test_empty_result(self, collector, ce_client):
        with Stubber(ce_client) as stubber:
            stubber.add_response("get_cost_and_usage", {"ResultsByTime": []}, daily_params())
            assert collector.get_daily_service_costs("prod", START, END) == []


class TestMonthlyQueries:
    """Tests for the last-month queries."""

    def test_month_total(self, collector, ce_client):
        with Stubber(ce_client) as stubber:
            stubber.add_response(
                "get_cost_and_usage",
                {
                    "ResultsByTime": [
                        {
                            "TimePeriod": {"Start": "2026-09-01", "End": "2026-10-01"},
                            "Total": {METRIC: {"Amount": "912.34", "Unit": "USD"}},
                            "Groups": [],
                            "Estimated": False,
                        }
                    ]
                },
            )

            total = collector.get_month_total("prod", date(2026, 9, 1), date(2026, 10, 1))

        assert total.amount == Decimal("912.34")
        assert total.currency == "USD"

    def test_service_totals_sorted_and_positive(self, collector, ce_client):
        with Stubber(ce_client) as stubber:
            stubber.add_response(
                "get_cost_and_usage",
                {
                    "ResultsByTime": [
                        daily_result(
                            "2026-09-01",
                            "2026-10-01",
                            [
                                group("Amazon S3", "40"),
                                group("Amazon EC2", "400"),
                                group("Credits", "-20"),
                            ],
                        )
                    ]
                },
            )

            services = collector.get_service_totals("prod", date(2026, 9, 1), date(2026, 10, 1))

        assert [s.service_name for s in services] == ["Amazon EC2", "Amazon S3"]
        assert services[0].amount == Decimal("400")


class TestErrors:
    """Tests for error translation."""

    @pytest.mark.parametrize(
        "code,expected",
        [
            ("ThrottlingException", ProviderThrottledError),
            ("LimitExceededException", ProviderThrottledError),
            ("AccessDeniedException", ProviderAuthError),
            ("ExpiredTokenException", ProviderAuthError),
            ("DataUnavailableException", ProviderError),
        ],
    )
    def test_client_errors(self, collector, ce_client, code, expected):
        with Stubber(ce_client) as stubber:
            stubber.add_client_error("get_cost_and_usage", service_error_code=code, service_message="nope")

            with pytest.raises(expected) as exc_info:
                collector.get_daily_service_costs("prod", START, END)

        assert exc_info.value.message == "nope"

    def test_profile_not_found(self):
        error = translate_error(ProfileNotFound(profile="missing"), "missing")
        assert isinstance(error, ConfigurationError)
        assert error.message == "AWS profile 'missing' not found"

    def test_no_credentials(self):
        assert isinstance(translate_error(NoCredentialsError(), "prod"), ConfigurationError)

    def test_client_factory_failure(self):
        def factory(profile_name):
            raise ProfileNotFound(profile=profile_name)

        collector = CostExplorerCollector(client_factory=factory)
        with pytest.raises(ConfigurationError):
            collector.get_daily_service_costs("missing", START, END)

    def test_client_is_cached_per_profile(self):
        created = []

        def factory(profile_name):
            created.append(profile_name)
            return object()

        collector = CostExplorerCollector(client_factory=factory)
        collector.client_for("prod")
        collector.client_for("prod")
        collector.client_for("staging")

        assert created == ["prod", "staging"]
