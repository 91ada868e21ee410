"""
Web Vital Statistics

Nearest-rank percentiles and Core Web Vitals rating thresholds.
"""

import math
from typing import Dict, NamedTuple, Sequence, Union

import numpy as np

from beacon_analytics.database.models import MetricName, MetricRating


class Threshold(NamedTuple):
    good: float
    needs_improvement: float


THRESHOLDS: Dict[MetricName, Threshold] = {
    MetricName.LCP: Threshold(good=2500, needs_improvement=4000),
    MetricName.FID: Threshold(good=100, needs_improvement=300),
    MetricName.CLS: Threshold(good=0.1, needs_improvement=0.25),
    MetricName.FCP: Threshold(good=1800, needs_improvement=3000),
    MetricName.TTFB: Threshold(good=800, needs_improvement=1800),
}


def nearest_rank_percentile(values: Union[Sequence[float], np.ndarray], percentile: float) -> float:
    """
    Nearest-rank percentile.

    The sorted sample is indexed at ``ceil(p * n / 100) - 1``, clamped to the
    sample bounds. No interpolation, so the result is always an observed value.

    Args:
        values: Sample, in any order
        percentile: Percentile in [0, 100]

    Returns:
        The percentile value, or 0.0 for an empty sample

    Example:
        >>> nearest_rank_percentile(range(1, 11), 75)
        8.0
    """
    if not 0 <= percentile <= 100:
        raise ValueError("percentile must be between 0 and 100")

    ordered = np.sort(np.asarray(values, dtype=float))
    n = ordered.size
    if n == 0:
        return 0.0

    index = math.ceil(percentile * n / 100) - 1
    index = min(max(index, 0), n - 1)
    return float(ordered[index])


def rate_metric(name: Union[MetricName, str], median: float) -> MetricRating:
    """Rate a metric by its median against the fixed thresholds"""
    threshold = THRESHOLDS[MetricName(name)]
    if median <= threshold.good:
        return MetricRating.GOOD
    if median <= threshold.needs_improvement:
        return MetricRating.NEEDS_IMPROVEMENT
    return MetricRating.POOR
