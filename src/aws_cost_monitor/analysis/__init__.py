"""Cost analysis for AWS Cost Monitor."""

from aws_cost_monitor.analysis.anomaly_detector import (
    AnomalyDetector,
    AnomalySeverity,
    AnomalyType,
    SpendingAnomaly,
)
from aws_cost_monitor.analysis.engine import AnalyticsEngine, CostAnalytics
from aws_cost_monitor.analysis.history import mark_completed_months, update_historical_data
from aws_cost_monitor.analysis.trend import (
    CostTrend,
    TrendDirection,
    calculate_cost_trend,
    calculate_enhanced_projection,
    calculate_projected_monthly_total,
    classify_trend,
)

__all__ = [
    "AnalyticsEngine",
    "AnomalyDetector",
    "AnomalySeverity",
    "AnomalyType",
    "CostAnalytics",
    "CostTrend",
    "SpendingAnomaly",
    "TrendDirection",
    "calculate_cost_trend",
    "calculate_enhanced_projection",
    "calculate_projected_monthly_total",
    "classify_trend",
    "mark_completed_months",
    "update_historical_data",
]
