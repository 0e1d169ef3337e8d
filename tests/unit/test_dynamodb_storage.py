"""Tests for DynamoDB storage."""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from aws_cost_monitor.storage.dynamodb import DynamoDBStorage
from aws_cost_monitor.storage.models import (
    AlertType,
    APIRequestRecord,
    CostCacheEntry,
    DailyCost,
    ProfileBudget,
    SentAlert,
    ServiceCost,
)

NOW = datetime(2026, 10, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def table():
    return MagicMock()


@pytest.fixture
def dynamodb_storage(table):
    resource = MagicMock()
    resource.Table.return_value = table
    return DynamoDBStorage("cost-monitor-test", dynamodb_resource=resource, audit_ttl_days=7)


def written_item(table) -> dict:
    return table.put_item.call_args.kwargs["Item"]


class TestCacheEntries:
    def test_round_trip(self, dynamodb_storage, table):
        entry = CostCacheEntry(
            profile_name="prod",
            fetch_date=NOW,
            mtd_total=Decimal("42.10"),
            daily_costs=(DailyCost(date=date(2026, 10, 1), amount=Decimal("42.10")),),
            service_costs=(ServiceCost(service_name="Amazon EC2", amount=Decimal("42.10")),),
            start_date=date(2026, 10, 1),
            end_date=date(2026, 10, 16),
        )

        dynamodb_storage.put_cache_entry(entry)
        item = written_item(table)
        assert item["PK"] == "PROFILE#prod"
        assert item["SK"] == "CACHE"

        table.get_item.return_value = {"Item": item}
        assert dynamodb_storage.get_cache_entry("prod") == entry

    def test_missing(self, dynamodb_storage, table):
        table.get_item.return_value = {}
        assert dynamodb_storage.get_cache_entry("prod") is None


class TestBudgets:
    def test_round_trip_without_monthly_budget(self, dynamodb_storage, table):
        budget = ProfileBudget(profile_name="prod", monthly_budget=None)

        dynamodb_storage.put_budget(budget)
        item = written_item(table)
        assert "monthly_budget" not in item

        # Numbers come back from DynamoDB as Decimal
        item["refresh_interval_minutes"] = Decimal(item["refresh_interval_minutes"])
        table.get_item.return_value = {"Item": item}
        assert dynamodb_storage.get_budget("prod") == budget


class TestAuditRecords:
    def test_sent_alert_has_ttl(self, dynamodb_storage, table):
        dynamodb_storage.add_sent_alert(
            SentAlert(profile_name="prod", alert_type=AlertType.THRESHOLD, timestamp=NOW)
        )

        item = written_item(table)
        assert item["PK"] == "ALERTS#prod"
        assert item["ttl"] == int((NOW + timedelta(days=7)).timestamp())

    def test_api_request_outlives_the_month(self, dynamodb_storage, table):
        dynamodb_storage.add_api_request(
            APIRequestRecord(
                timestamp=NOW, profile_name="prod", endpoint="GetCostAndUsage-Daily", success=True
            )
        )

        item = written_item(table)
        assert item["PK"] == "APIREQ#prod"
        assert item["ttl"] == int((NOW + timedelta(days=35)).timestamp())

    def test_prune_deletes_old_alerts(self, dynamodb_storage, table):
        old = SentAlert(profile_name="prod", alert_type=AlertType.ANOMALY, timestamp=NOW - timedelta(hours=30))
        recent = SentAlert(profile_name="prod", alert_type=AlertType.THRESHOLD, timestamp=NOW)
        table.scan.return_value = {
            "Items": [old.to_dynamodb_item(), recent.to_dynamodb_item()]
        }
        batch = table.batch_writer.return_value.__enter__.return_value

        pruned = dynamodb_storage.prune_sent_alerts(NOW - timedelta(hours=24))

        assert pruned == 1
        batch.delete_item.assert_called_once_with(Key={"PK": old.pk, "SK": old.sk})

    def test_api_requests_paginate(self, dynamodb_storage, table):
        first = APIRequestRecord(
            timestamp=NOW - timedelta(minutes=5),
            profile_name="prod",
            endpoint="GetCostAndUsage-Daily",
            success=True,
        )
        second = APIRequestRecord(
            timestamp=NOW,
            profile_name="prod",
            endpoint="GetCostAndUsage-Daily",
            success=False,
            error_message="Throttled",
        )
        table.query.side_effect = [
            {"Items": [second.to_dynamodb_item()], "LastEvaluatedKey": {"PK": "x", "SK": "y"}},
            {"Items": [first.to_dynamodb_item()]},
        ]

        records = dynamodb_storage.get_api_requests("prod", since=NOW - timedelta(hours=1))

        assert records == [first, second]
        assert table.query.call_count == 2
        assert table.query.call_args.kwargs["ExclusiveStartKey"] == {"PK": "x", "SK": "y"}
