"""Cost providers for AWS Cost Monitor."""

from aws_cost_monitor.collectors.aws_cost_explorer import CostExplorerCollector
from aws_cost_monitor.collectors.base import CostProvider, DailyCostRecord, MonthTotal
from aws_cost_monitor.collectors.demo import DemoCostProvider

__all__ = [
    "CostExplorerCollector",
    "CostProvider",
    "DailyCostRecord",
    "DemoCostProvider",
    "MonthTotal",
]
