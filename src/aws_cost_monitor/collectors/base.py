"""Base classes for cost providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from aws_cost_monitor.storage.models import ServiceCost


@dataclass
class DailyCostRecord:
    """Cost for one day, broken down by service."""

    date: date
    costs_by_service: dict[str, Decimal] = field(default_factory=dict)
    currency: str = "USD"

    @property
    def total(self) -> Decimal:
        return sum(self.costs_by_service.values(), Decimal("0"))


@dataclass
class MonthTotal:
    """Total cost for a whole period."""

    amount: Decimal
    currency: str = "USD"


class CostProvider(ABC):
    """
    Source of cost data for a profile.

    Date ranges are half-open: ``start`` inclusive, ``end`` exclusive.
    Implementations raise ``ConfigurationError`` for missing profiles or
    credentials and ``ProviderError`` subclasses for everything else.
    """

    @abstractmethod
    def get_daily_service_costs(
        self,
        profile_name: str,
        start: date,
        end: date,
    ) -> list[DailyCostRecord]:
        """
        Daily costs grouped by service, ordered by date.

        Returns:
            An empty list when the provider has no data for the range.
        """
        pass

    @abstractmethod
    def get_month_total(self, profile_name: str, start: date, end: date) -> MonthTotal | None:
        """Total for the range at monthly granularity, or None if no data."""
        pass

    @abstractmethod
    def get_service_totals(self, profile_name: str, start: date, end: date) -> list[ServiceCost]:
        """Per-service totals for the range, sorted by amount descending."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider."""
        pass
