"""
Unit tests for the statistics kernel

Covers the descriptive statistics, regression, smoothing, trend and
seasonality primitives, including their degenerate-input fallbacks.
"""

import math

import pytest

from insights_engine.exceptions import ShapeMismatch
from insights_engine.models import TrendDirection
from insights_engine.utils import statistics
from tests.fixtures.test_data import SeriesFactory


class TestDescriptiveStatistics:
    """Test mean, variance, standard deviation and median"""

    def test_mean(self):
        assert statistics.mean([1, 2, 3, 4]) == 2.5

    def test_mean_of_empty_is_zero(self):
        assert statistics.mean([]) == 0.0

    def test_population_variance_and_std(self):
        data = [2, 4, 4, 4, 5, 5, 7, 9]
        assert statistics.variance(data) == pytest.approx(4.0)
        assert statistics.std_dev(data) == pytest.approx(2.0)

    def test_constant_series_has_zero_spread(self):
        assert statistics.variance([5, 5, 5]) == 0.0
        assert statistics.std_dev([0.1, 0.1, 0.1]) == 0.0

    def test_empty_series_has_zero_spread(self):
        assert statistics.variance([]) == 0.0

    def test_median(self):
        assert statistics.median([3, 1, 2]) == 2
        assert statistics.median([1, 2, 3, 4]) == 2.5
        assert statistics.median([]) == 0.0

    def test_results_are_builtin_floats(self):
        assert type(statistics.mean([1, 2])) is float
        assert type(statistics.std_dev([1, 2])) is float

    def test_z_score(self):
        assert statistics.z_score(7, 5, 2) == 1.0
        assert statistics.z_score(3, 5, 2) == -1.0

    def test_z_score_of_the_mean_is_zero(self):
        data = [3, 1, 4, 1, 5]
        assert statistics.z_score(statistics.mean(data), statistics.mean(data), statistics.std_dev(data)) == 0.0

    def test_z_score_with_zero_spread(self):
        assert statistics.z_score(10, 5, 0) == 0.0


class TestPearsonCorrelation:
    """Test the correlation coefficient"""

    def test_perfect_positive(self):
        assert statistics.pearson_correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)

    def test_perfect_negative(self):
        assert statistics.pearson_correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)

    def test_bounded(self):
        r = statistics.pearson_correlation([1, 5, 2, 8, 3], [2, 9, 1, 7, 4])
        assert -1.0 <= r <= 1.0

    def test_symmetric(self):
        xs, ys = [1, 5, 2, 8, 3], [2, 9, 1, 7, 4]
        assert statistics.pearson_correlation(xs, ys) == pytest.approx(statistics.pearson_correlation(ys, xs))

    def test_self_correlation_is_one(self):
        xs = [3, 1, 4, 1, 5, 9, 2, 6]
        assert statistics.pearson_correlation(xs, xs) == pytest.approx(1.0)

    def test_constant_side_gives_zero(self):
        r = statistics.pearson_correlation([1, 2, 3], [4, 4, 4])
        assert r == 0.0
        assert not math.isnan(r)

    def test_unequal_lengths_raise(self):
        with pytest.raises(ShapeMismatch):
            statistics.pearson_correlation([1, 2, 3], [1, 2])

    def test_empty_input_raises(self):
        with pytest.raises(ShapeMismatch):
            statistics.pearson_correlation([], [])

    def test_shape_mismatch_is_value_error(self):
        with pytest.raises(ValueError):
            statistics.pearson_correlation([1], [1, 2])


class TestLinearRegression:
    """Test least-squares fitting"""

    def test_exact_line(self):
        fit = statistics.linear_regression([0, 1, 2, 3], [1, 3, 5, 7])
        assert fit.slope == pytest.approx(2.0)
        assert fit.intercept == pytest.approx(1.0)
        assert fit.r_squared == pytest.approx(1.0)
        assert fit.predict(4) == pytest.approx(9.0)

    def test_constant_series_fits_perfectly(self):
        fit = statistics.linear_regression([0, 1, 2], [4, 4, 4])
        assert fit.slope == 0.0
        assert fit.intercept == 4.0
        assert fit.r_squared == 1.0

    def test_r_squared_in_unit_interval(self):
        fit = statistics.linear_regression(range(8), [3, 1, 4, 1, 5, 9, 2, 6])
        assert 0.0 <= fit.r_squared <= 1.0

    def test_unequal_lengths_raise(self):
        with pytest.raises(ShapeMismatch):
            statistics.linear_regression([0, 1, 2], [1, 2])


class TestOutliers:
    """Test global z-score outlier detection"""

    def test_single_outlier_found(self):
        data = [10] * 19 + [100]
        outliers = statistics.detect_outliers(data)

        assert len(outliers) == 1
        assert outliers[0].index == 19
        assert outliers[0].value == 100
        assert outliers[0].z_score > 3
        assert outliers[0].deviation == pytest.approx(100 - statistics.mean(data))

    def test_constant_series_has_no_outliers(self):
        assert statistics.detect_outliers([7] * 10) == []

    def test_empty_series(self):
        assert statistics.detect_outliers([]) == []


class TestSmoothing:
    """Test moving averages"""

    def test_moving_average(self):
        assert statistics.moving_average([1, 2, 3, 4, 5], 2) == pytest.approx([1.5, 2.5, 3.5, 4.5])

    def test_moving_average_output_length(self):
        assert len(statistics.moving_average(list(range(10)), 3)) == 8

    @pytest.mark.parametrize("window", [0, -1, 6])
    def test_invalid_window_returns_input(self, window):
        assert statistics.moving_average([1, 2, 3, 4, 5], window) == [1, 2, 3, 4, 5]

    def test_ema(self):
        assert statistics.ema([10, 20], alpha=0.5) == pytest.approx([10, 15])

    def test_ema_default_alpha(self):
        assert statistics.ema([10, 20]) == pytest.approx([10, 13])

    def test_ema_empty(self):
        assert statistics.ema([]) == []


class TestTrendDetection:
    """Test trend classification"""

    def test_upward(self):
        assert statistics.detect_trend([10, 20, 30, 40, 50, 60, 70, 80, 90, 100]) == TrendDirection.UPWARD

    def test_downward(self):
        assert statistics.detect_trend([100, 90, 80, 70, 60, 50, 40, 30, 20, 10]) == TrendDirection.DOWNWARD

    def test_constant_is_stable(self):
        assert statistics.detect_trend([5, 5, 5, 5]) == TrendDirection.STABLE

    def test_short_series_is_stable(self):
        assert statistics.detect_trend([1, 100]) == TrendDirection.STABLE

    def test_alternating_series_is_cyclical(self):
        assert statistics.detect_trend([10, 12, 10, 12, 10, 12, 10, 12]) == TrendDirection.CYCLICAL

    def test_zero_mean_with_slope_has_direction(self):
        assert statistics.detect_trend([-1, 0, 1]) == TrendDirection.UPWARD


class TestSeasonality:
    """Test autocorrelation-based seasonality detection"""

    def test_weekly_cycle_detected(self):
        result = statistics.detect_seasonality(SeriesFactory.weekly_cycle())
        assert result.detected
        assert result.period == 7
        assert result.strength > 0.6

    def test_short_series_not_tested(self):
        assert not statistics.detect_seasonality([1, 2, 1, 2, 1, 2]).detected

    def test_linear_growth_is_not_seasonal_with_high_threshold(self):
        result = statistics.detect_seasonality(list(range(40)), periods=(7,), threshold=1.0)
        assert not result.detected

    def test_candidate_periods_must_fit_twice(self):
        result = statistics.detect_seasonality(SeriesFactory.weekly_cycle(periods=2), periods=(30, 90))
        assert not result.detected
        assert result.period is None

    def test_autocorrelation_bounds(self):
        assert statistics.autocorrelation([1, 2, 3], 0) == 0.0
        assert statistics.autocorrelation([1, 2, 3], 3) == 0.0


class TestIntervalsAndChanges:
    """Test confidence intervals and percentage change"""

    def test_z_for_supported_levels(self):
        assert statistics.z_for_level(0.80) == 1.28
        assert statistics.z_for_level(0.95) == 1.96

    def test_z_for_unknown_level_falls_back(self):
        assert statistics.z_for_level(0.5) == 1.96

    def test_confidence_interval_of_empty(self):
        assert statistics.confidence_interval([]) == (0.0, 0.0)

    def test_confidence_interval_of_constant(self):
        assert statistics.confidence_interval([5, 5, 5]) == (5.0, 5.0)

    def test_confidence_interval_contains_mean(self):
        lower, upper = statistics.confidence_interval([1, 2, 3, 4, 5], level=0.99)
        assert lower < 3 < upper

    def test_percentage_change(self):
        assert statistics.percentage_change(100, 150) == pytest.approx(50.0)
        assert statistics.percentage_change(200, 100) == pytest.approx(-50.0)

    def test_percentage_change_from_zero(self):
        assert statistics.percentage_change(0, 0) == 0.0
        assert statistics.percentage_change(0, 5) == 100.0
