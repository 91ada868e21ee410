"""
Serving Module
"""
from .aggregation import AggregationService, DashboardReport
from .statistics import THRESHOLDS, nearest_rank_percentile, rate_metric

__all__ = [
    "AggregationService",
    "DashboardReport",
    "THRESHOLDS",
    "nearest_rank_percentile",
    "rate_metric",
]
