"""AWS Cost Explorer provider.

Cost Explorer API charges $0.01 per request.
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
    ProfileNotFound,
)

from aws_cost_monitor.collectors.base import CostProvider, DailyCostRecord, MonthTotal
from aws_cost_monitor.errors import (
    ConfigurationError,
    ProviderAuthError,
    ProviderError,
    ProviderThrottledError,
)
from aws_cost_monitor.storage.models import ServiceCost, sort_service_costs

logger = logging.getLogger(__name__)

METRIC = "AmortizedCost"
SERVICE_GROUP_BY = [{"Type": "DIMENSION", "Key": "SERVICE"}]

THROTTLING_CODES = {
    "ThrottlingException",
    "Throttling",
    "LimitExceededException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
}
AUTH_CODES = {
    "AccessDeniedException",
    "AccessDenied",
    "UnrecognizedClientException",
    "InvalidClientTokenId",
    "ExpiredToken",
    "ExpiredTokenException",
    "SignatureDoesNotMatch",
}


def _amount(metric: dict) -> Decimal:
    try:
        return Decimal(metric.get("Amount", "0"))
    except InvalidOperation:
        return Decimal("0")


def translate_error(error: Exception, profile_name: str) -> Exception:
    """Map a boto3/botocore exception to the cost monitor taxonomy."""
    if isinstance(error, ProfileNotFound):
        return ConfigurationError(f"AWS profile '{profile_name}' not found")
    if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
        return ConfigurationError(f"No usable credentials for profile '{profile_name}'")
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        message = error.response.get("Error", {}).get("Message", str(error))
        if code in THROTTLING_CODES:
            return ProviderThrottledError(message)
        if code in AUTH_CODES:
            return ProviderAuthError(message)
        return ProviderError(message)
    return ProviderError(str(error))


class CostExplorerCollector(CostProvider):
    """
    Fetch cost data from AWS Cost Explorer.

    One boto3 session per profile, created on first use. Tests (or callers
    that manage credentials themselves) can inject a ``client_factory``
    returning a Cost Explorer client for a profile name.
    """

    provider_name = "cost_explorer"

    def __init__(
        self,
        region: str = "us-east-1",
        client_factory: Callable[[str], Any] | None = None,
    ):
        """
        Initialize the Cost Explorer collector.

        Args:
            region: AWS region for the Cost Explorer API.
            client_factory: Optional callable returning a boto3 ``ce`` client for a profile.
        """
        self.region = region
        self._client_factory = client_factory or self._session_client
        self._clients: dict[str, Any] = {}
        self._lock = threading.Lock()

    def _session_client(self, profile_name: str) -> Any:
        session = boto3.Session(profile_name=profile_name)
        return session.client("ce", region_name=self.region)

    def client_for(self, profile_name: str) -> Any:
        """Get or create the Cost Explorer client for a profile."""
        with self._lock:
            if profile_name not in self._clients:
                try:
                    self._clients[profile_name] = self._client_factory(profile_name)
                except (BotoCoreError, ClientError) as e:
                    raise translate_error(e, profile_name) from e
            return self._clients[profile_name]

    def _get_cost_and_usage(self, profile_name: str, **kwargs: Any) -> list[dict]:
        """Call GetCostAndUsage, following NextPageToken, and return ResultsByTime."""
        client = self.client_for(profile_name)
        results: list[dict] = []
        request = dict(kwargs)

        try:
            while True:
                response = client.get_cost_and_usage(**request)
                results.extend(response.get("ResultsByTime", []))
                token = response.get("NextPageToken")
                if not token:
                    break
                request["NextPageToken"] = token
        except (BotoCoreError, ClientError) as e:
            raise translate_error(e, profile_name) from e

        return results

    def get_daily_service_costs(
        self,
        profile_name: str,
        start: date,
        end: date,
    ) -> list[DailyCostRecord]:
        """Daily costs grouped by service. Zero amounts are dropped; credits are kept."""
        results = self._get_cost_and_usage(
            profile_name,
            TimePeriod={"Start": start.isoformat(), "End": end.isoformat()},
            Granularity="DAILY",
            Metrics=[METRIC],
            GroupBy=SERVICE_GROUP_BY,
        )

        by_date: dict[date, DailyCostRecord] = {}
        for result in results:
            day = date.fromisoformat(result["TimePeriod"]["Start"])
            record = by_date.setdefault(day, DailyCostRecord(date=day))
            for group in result.get("Groups", []):
                service_name = group["Keys"][0]
                metric = group["Metrics"][METRIC]
                cost = _amount(metric)
                if cost != 0:
                    record.costs_by_service[service_name] = (
                        record.costs_by_service.get(service_name, Decimal("0")) + cost
                    )
                    record.currency = metric.get("Unit", record.currency)

        return [by_date[day] for day in sorted(by_date)]

    def get_month_total(self, profile_name: str, start: date, end: date) -> MonthTotal | None:
        results = self._get_cost_and_usage(
            profile_name,
            TimePeriod={"Start": start.isoformat(), "End": end.isoformat()},
            Granularity="MONTHLY",
            Metrics=[METRIC],
        )
        if not results:
            return None

        metric = results[0].get("Total", {}).get(METRIC)
        if metric is None:
            return None
        return MonthTotal(amount=_amount(metric), currency=metric.get("Unit", "USD"))

    def get_service_totals(self, profile_name: str, start: date, end: date) -> list[ServiceCost]:
        results = self._get_cost_and_usage(
            profile_name,
            TimePeriod={"Start": start.isoformat(), "End": end.isoformat()},
            Granularity="MONTHLY",
            Metrics=[METRIC],
            GroupBy=SERVICE_GROUP_BY,
        )

        totals: dict[str, ServiceCost] = {}
        for result in results:
            for group in result.get("Groups", []):
                service_name = group["Keys"][0]
                metric = group["Metrics"][METRIC]
                cost = _amount(metric)
                if cost <= 0:
                    continue
                previous = totals.get(service_name)
                totals[service_name] = ServiceCost(
                    service_name=service_name,
                    amount=cost + (previous.amount if previous else Decimal("0")),
                    currency=metric.get("Unit", "USD"),
                )

        services = sort_service_costs(list(totals.values()))
        logger.info("Fetched %d services for %s breakdown", len(services), profile_name)
        return services
