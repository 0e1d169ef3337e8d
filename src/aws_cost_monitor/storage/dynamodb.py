"""DynamoDB storage operations for AWS Cost Monitor."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Iterator

import boto3
from boto3.dynamodb.conditions import Attr, Key

from aws_cost_monitor.storage.base import Storage
from aws_cost_monitor.storage.models import (
    AlertConfiguration,
    APIRequestRecord,
    CostCacheEntry,
    HistoricalCostData,
    LastMonthCosts,
    ProfileBudget,
    SentAlert,
)

logger = logging.getLogger(__name__)


class DynamoDBStorage(Storage):
    """DynamoDB storage client for cost monitor state (single-table design)."""

    def __init__(
        self,
        table_name: str,
        dynamodb_resource: boto3.resource | None = None,
        audit_ttl_days: int = 7,
        api_log_ttl_days: int = 35,
    ):
        """
        Initialize DynamoDB storage.

        Args:
            table_name: Name of the DynamoDB table.
            dynamodb_resource: Optional boto3 DynamoDB resource. If None, creates one.
            audit_ttl_days: TTL for sent alert records.
            api_log_ttl_days: TTL for API request records.
        """
        self.dynamodb = dynamodb_resource or boto3.resource("dynamodb")
        self.table = self.dynamodb.Table(table_name)
        self.table_name = table_name
        self.audit_ttl_days = audit_ttl_days
        self.api_log_ttl_days = api_log_ttl_days

    def _get(self, pk: str, sk: str) -> dict | None:
        response = self.table.get_item(Key={"PK": pk, "SK": sk})
        return response.get("Item")

    def _audit_ttl(self, timestamp: datetime, days: int | None = None) -> int:
        return int((timestamp + timedelta(days=days or self.audit_ttl_days)).timestamp())

    def _scan(self, **scan_kwargs: Any) -> Iterator[dict]:
        """Scan with pagination."""
        response = self.table.scan(**scan_kwargs)
        yield from response.get("Items", [])

        while "LastEvaluatedKey" in response:
            scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
            response = self.table.scan(**scan_kwargs)
            yield from response.get("Items", [])

    def _query(self, **query_kwargs: Any) -> Iterator[dict]:
        """Query with pagination."""
        response = self.table.query(**query_kwargs)
        yield from response.get("Items", [])

        while "LastEvaluatedKey" in response:
            query_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
            response = self.table.query(**query_kwargs)
            yield from response.get("Items", [])

    # =========================================================================
    # Cost Cache
    # =========================================================================

    def get_cache_entry(self, profile_name: str) -> CostCacheEntry | None:
        item = self._get(f"PROFILE#{profile_name}", "CACHE")
        return CostCacheEntry.from_dynamodb_item(item) if item else None

    def put_cache_entry(self, entry: CostCacheEntry) -> None:
        self.table.put_item(Item=entry.to_dynamodb_item())

    # =========================================================================
    # Budgets
    # =========================================================================

    def get_budget(self, profile_name: str) -> ProfileBudget | None:
        item = self._get(f"PROFILE#{profile_name}", "BUDGET")
        return ProfileBudget.from_dynamodb_item(item) if item else None

    def put_budget(self, budget: ProfileBudget) -> None:
        self.table.put_item(Item=budget.to_dynamodb_item())

    # =========================================================================
    # Historical Data
    # =========================================================================

    def get_historical_data(self, profile_name: str | None = None) -> list[HistoricalCostData]:
        if profile_name:
            items = self._query(
                KeyConditionExpression=Key("PK").eq(f"PROFILE#{profile_name}")
                & Key("SK").begins_with("HISTORY#")
            )
        else:
            items = self._scan(FilterExpression=Attr("SK").begins_with("HISTORY#"))

        records = [HistoricalCostData.from_dynamodb_item(item) for item in items]
        return sorted(records, key=lambda r: (r.date, r.profile_name))

    def put_historical_data(self, records: list[HistoricalCostData]) -> None:
        """Upsert month totals in a batch."""
        with self.table.batch_writer() as batch:
            for record in records:
                batch.put_item(Item=record.to_dynamodb_item())

    # =========================================================================
    # Last Month Costs
    # =========================================================================

    def get_last_month_costs(self, profile_name: str) -> LastMonthCosts | None:
        item = self._get(f"PROFILE#{profile_name}", "LASTMONTH")
        return LastMonthCosts.from_dynamodb_item(item) if item else None

    def put_last_month_costs(self, costs: LastMonthCosts) -> None:
        self.table.put_item(Item=costs.to_dynamodb_item())

    # =========================================================================
    # Alert Audit Log
    # =========================================================================

    def get_sent_alerts(self, profile_name: str | None = None) -> list[SentAlert]:
        if profile_name:
            items = self._query(KeyConditionExpression=Key("PK").eq(f"ALERTS#{profile_name}"))
        else:
            items = self._scan(FilterExpression=Attr("PK").begins_with("ALERTS#"))

        alerts = [SentAlert.from_dynamodb_item(item) for item in items]
        return sorted(alerts, key=lambda a: a.timestamp)

    def add_sent_alert(self, alert: SentAlert) -> None:
        self.table.put_item(Item=alert.to_dynamodb_item(ttl=self._audit_ttl(alert.timestamp)))

    def prune_sent_alerts(self, older_than: datetime) -> int:
        """
        Delete alerts older than the cutoff.

        TTL expiry is lazy (up to 48 hours late), so expired items are
        removed explicitly to keep cooldown reads exact.
        """
        stale = [a for a in self.get_sent_alerts() if a.timestamp < older_than]
        with self.table.batch_writer() as batch:
            for alert in stale:
                batch.delete_item(Key={"PK": alert.pk, "SK": alert.sk})
        if stale:
            logger.debug("Pruned %d sent alerts older than %s", len(stale), older_than.isoformat())
        return len(stale)

    def clear_sent_alerts(self, profile_name: str | None = None) -> None:
        alerts = self.get_sent_alerts(profile_name)
        with self.table.batch_writer() as batch:
            for alert in alerts:
                batch.delete_item(Key={"PK": alert.pk, "SK": alert.sk})

    # =========================================================================
    # Alert Configuration
    # =========================================================================

    def get_alert_configuration(self, profile_name: str) -> AlertConfiguration | None:
        item = self._get(f"PROFILE#{profile_name}", "ALERTCONFIG")
        return AlertConfiguration.from_dynamodb_item(item) if item else None

    def put_alert_configuration(self, profile_name: str, config: AlertConfiguration) -> None:
        self.table.put_item(Item=config.to_dynamodb_item(profile_name))

    # =========================================================================
    # API Request Log
    # =========================================================================

    def add_api_request(self, record: APIRequestRecord) -> None:
        ttl = self._audit_ttl(record.timestamp, self.api_log_ttl_days)
        self.table.put_item(Item=record.to_dynamodb_item(ttl=ttl))

    def get_api_requests(
        self,
        profile_name: str | None = None,
        since: datetime | None = None,
    ) -> list[APIRequestRecord]:
        if profile_name:
            condition = Key("PK").eq(f"APIREQ#{profile_name}")
            if since is not None:
                condition = condition & Key("SK").gte(f"TS#{since.astimezone(UTC).isoformat()}")
            items = self._query(KeyConditionExpression=condition)
        else:
            items = self._scan(FilterExpression=Attr("PK").begins_with("APIREQ#"))

        records = [APIRequestRecord.from_dynamodb_item(item) for item in items]
        if since is not None:
            records = [r for r in records if r.timestamp >= since]
        return sorted(records, key=lambda r: r.timestamp)
