"""
Unit Tests - Web Vital Statistics
"""
import numpy as np
import pytest

from beacon_analytics.database.models import MetricName, MetricRating
from beacon_analytics.serving.statistics import nearest_rank_percentile, rate_metric


class TestNearestRankPercentile:
    """Tests for nearest_rank_percentile"""

    @pytest.mark.parametrize("percentile,expected", [(50, 5.0), (75, 8.0), (95, 10.0), (100, 10.0)])
    def test_one_to_ten(self, percentile, expected):
        assert nearest_rank_percentile(list(range(1, 11)), percentile) == expected

    def test_input_order_does_not_matter(self):
        values = [10, 3, 7, 1, 9, 2, 8, 5, 4, 6]

        assert nearest_rank_percentile(values, 75) == 8.0

    def test_accepts_numpy_arrays(self):
        assert nearest_rank_percentile(np.array([0.3, 0.1, 0.2]), 50) == 0.2

    def test_empty_sample(self):
        assert nearest_rank_percentile([], 50) == 0.0

    def test_single_value(self):
        assert nearest_rank_percentile([42.0], 95) == 42.0

    def test_zero_percentile_clamps_to_minimum(self):
        assert nearest_rank_percentile([3, 1, 2], 0) == 1.0

    def test_percentile_out_of_range(self):
        with pytest.raises(ValueError):
            nearest_rank_percentile([1, 2, 3], 101)


class TestRateMetric:
    """Tests for rate_metric"""

    @pytest.mark.parametrize(
        "name,median,expected",
        [
            (MetricName.LCP, 2000, MetricRating.GOOD),
            (MetricName.LCP, 2500, MetricRating.GOOD),
            (MetricName.LCP, 2600, MetricRating.NEEDS_IMPROVEMENT),
            (MetricName.LCP, 4001, MetricRating.POOR),
            (MetricName.FID, 300, MetricRating.NEEDS_IMPROVEMENT),
            (MetricName.CLS, 0.1, MetricRating.GOOD),
            (MetricName.CLS, 0.3, MetricRating.POOR),
            (MetricName.FCP, 1900, MetricRating.NEEDS_IMPROVEMENT),
            (MetricName.TTFB, 1801, MetricRating.POOR),
        ],
    )
    def test_thresholds(self, name, median, expected):
        assert rate_metric(name, median) == expected

    def test_accepts_metric_name_strings(self):
        assert rate_metric("TTFB", 500) == MetricRating.GOOD

    def test_unknown_metric(self):
        with pytest.raises(ValueError):
            rate_metric("INP", 100)
