"""Persisted state for AWS Cost Monitor."""

from aws_cost_monitor.storage.base import Storage
from aws_cost_monitor.storage.budgets import BudgetManager, calculate_budget_status
from aws_cost_monitor.storage.cache import CostCache
from aws_cost_monitor.storage.dynamodb import DynamoDBStorage
from aws_cost_monitor.storage.memory import InMemoryStorage
from aws_cost_monitor.storage.models import (
    AlertConfiguration,
    AlertType,
    APIRequestRecord,
    BudgetStatus,
    CostCacheEntry,
    DailyCost,
    DailyServiceCost,
    HistoricalCostData,
    LastMonthCosts,
    ProfileBudget,
    SentAlert,
    ServiceCost,
    sort_service_costs,
)

__all__ = [
    "AlertConfiguration",
    "AlertType",
    "APIRequestRecord",
    "BudgetManager",
    "BudgetStatus",
    "CostCache",
    "CostCacheEntry",
    "DailyCost",
    "DailyServiceCost",
    "DynamoDBStorage",
    "HistoricalCostData",
    "InMemoryStorage",
    "LastMonthCosts",
    "ProfileBudget",
    "SentAlert",
    "ServiceCost",
    "Storage",
    "calculate_budget_status",
    "sort_service_costs",
]
