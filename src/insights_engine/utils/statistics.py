"""
Statistics Kernel

Pure numeric primitives shared by the forecast, anomaly and correlation
components. Every function is total over sequences of reals: degenerate
inputs (empty, constant, too short) return documented fallback values
instead of raising. Only malformed paired input raises ShapeMismatch.

All results are returned as builtin floats so that value objects built from
them serialize without numpy scalars leaking through.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..exceptions import ShapeMismatch
from ..models.data_models import TrendDirection

# Normal-approximation z values for the supported confidence levels
Z_SCORES: Dict[float, float] = {
    0.80: 1.28,
    0.90: 1.645,
    0.95: 1.96,
    0.99: 2.576,
}
DEFAULT_Z = 1.96

DEFAULT_SEASONALITY_PERIODS: Tuple[int, ...] = (7, 12, 30, 90)
SEASONALITY_MIN_POINTS = 12
SEASONALITY_THRESHOLD = 0.6

TREND_MIN_POINTS = 3
TREND_SLOPE_PERCENT = 5.0
CYCLICAL_VARIANCE_RATIO = 0.3


@dataclass(frozen=True)
class RegressionResult:
    """Ordinary least squares fit of y = slope * x + intercept"""
    slope: float
    intercept: float
    r_squared: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


@dataclass(frozen=True)
class Outlier:
    """A point whose global z-score reached the outlier threshold"""
    index: int
    value: float
    z_score: float
    deviation: float  # signed distance from the mean


@dataclass(frozen=True)
class SeasonalityResult:
    """Outcome of the autocorrelation seasonality test"""
    detected: bool
    period: Optional[int] = None
    strength: float = 0.0  # absolute autocorrelation at the chosen lag


def _as_array(data: Sequence[float]) -> np.ndarray:
    return np.asarray(data, dtype=float)


def _is_constant(arr: np.ndarray) -> bool:
    # ptp is exact, unlike a float mean of identical values
    return arr.size == 0 or float(np.ptp(arr)) == 0.0


def mean(data: Sequence[float]) -> float:
    arr = _as_array(data)
    if arr.size == 0:
        return 0.0
    return float(np.mean(arr))


def variance(data: Sequence[float]) -> float:
    """Population variance (divides by n); 0 for empty or constant input"""
    arr = _as_array(data)
    if _is_constant(arr):
        return 0.0
    return float(np.var(arr))


def std_dev(data: Sequence[float]) -> float:
    """Population standard deviation (divides by n)"""
    return math.sqrt(variance(data))


def median(data: Sequence[float]) -> float:
    arr = _as_array(data)
    if arr.size == 0:
        return 0.0
    return float(np.median(arr))


def z_score(value: float, mean_value: float, std_value: float) -> float:
    """Standard score of value; 0 when the spread is zero"""
    if std_value == 0:
        return 0.0
    return float((value - mean_value) / std_value)


def _check_pair(x: np.ndarray, y: np.ndarray) -> None:
    if x.size != y.size or x.size == 0:
        raise ShapeMismatch(
            "Series must have the same non-zero length",
            details={"left_length": int(x.size), "right_length": int(y.size)},
        )


def pearson_correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson correlation coefficient in [-1, 1]

    Returns 0 when either series has zero variance, since the coefficient is
    undefined there and NaN must not propagate into results.
    """
    x = _as_array(xs)
    y = _as_array(ys)
    _check_pair(x, y)

    if _is_constant(x) or _is_constant(y):
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denominator == 0:
        return 0.0

    return float(np.clip(float(np.sum(dx * dy)) / denominator, -1.0, 1.0))


def linear_regression(xs: Sequence[float], ys: Sequence[float]) -> RegressionResult:
    """Ordinary least squares regression of ys on xs

    r_squared is 1 - SSres/SStot, and 1 when ys is constant (a flat line
    explains a flat series perfectly).
    """
    x = _as_array(xs)
    y = _as_array(ys)
    _check_pair(x, y)

    mean_x = float(x.mean())
    mean_y = float(y.mean())
    dx = x - mean_x

    ss_xx = float(np.sum(dx * dx))
    slope = 0.0 if ss_xx == 0 else float(np.sum(dx * (y - mean_y))) / ss_xx
    intercept = mean_y - slope * mean_x

    if _is_constant(y):
        return RegressionResult(slope=slope, intercept=intercept, r_squared=1.0)

    predictions = slope * x + intercept
    ss_res = float(np.sum((y - predictions) ** 2))
    ss_tot = float(np.sum((y - mean_y) ** 2))
    r_squared = 1.0 if ss_tot == 0 else 1.0 - ss_res / ss_tot

    return RegressionResult(slope=slope, intercept=intercept, r_squared=r_squared)


def detect_outliers(data: Sequence[float], threshold: float = 3.0) -> List[Outlier]:
    """Global outliers: every point with |z| >= threshold against mean/std of data"""
    arr = _as_array(data)
    if arr.size == 0:
        return []

    mean_value = mean(arr)
    std_value = std_dev(arr)

    outliers = []
    for index, value in enumerate(arr.tolist()):
        score = z_score(value, mean_value, std_value)
        if abs(score) >= threshold:
            outliers.append(Outlier(
                index=index,
                value=value,
                z_score=score,
                deviation=value - mean_value,
            ))
    return outliers


def moving_average(data: Sequence[float], window: int) -> List[float]:
    """Simple moving average over full windows

    A window that is non-positive or longer than the data leaves the data
    unchanged.
    """
    arr = _as_array(data)
    if window <= 0 or window > arr.size:
        return arr.tolist()

    cumulative = np.cumsum(np.insert(arr, 0, 0.0))
    return ((cumulative[window:] - cumulative[:-window]) / window).tolist()


def ema(data: Sequence[float], alpha: float = 0.3) -> List[float]:
    """Exponential moving average seeded with the first value"""
    values = _as_array(data).tolist()
    if not values:
        return []

    smoothed = [values[0]]
    for value in values[1:]:
        smoothed.append(alpha * value + (1 - alpha) * smoothed[-1])
    return smoothed


def detect_trend(data: Sequence[float]) -> TrendDirection:
    """Classify a series as upward, downward, cyclical or stable

    The slope of value against index, relative to the series mean, decides
    the direction once it exceeds 5% per step. Otherwise a series whose
    step-to-step changes carry more than 30% of its variance is cyclical.
    """
    arr = _as_array(data)
    if arr.size < TREND_MIN_POINTS:
        return TrendDirection.STABLE

    fit = linear_regression(np.arange(arr.size), arr)
    average = mean(arr)

    if average != 0:
        relative_slope = abs(fit.slope / average) * 100
    else:
        relative_slope = math.inf if fit.slope != 0 else 0.0

    if relative_slope > TREND_SLOPE_PERCENT:
        return TrendDirection.UPWARD if fit.slope > 0 else TrendDirection.DOWNWARD

    if variance(np.diff(arr)) > CYCLICAL_VARIANCE_RATIO * variance(arr):
        return TrendDirection.CYCLICAL

    return TrendDirection.STABLE


def autocorrelation(data: Sequence[float], lag: int) -> float:
    """Pearson correlation between the series and itself shifted by lag"""
    arr = _as_array(data)
    if lag <= 0 or lag >= arr.size:
        return 0.0
    return pearson_correlation(arr[:-lag], arr[lag:])


def detect_seasonality(
    data: Sequence[float],
    periods: Sequence[int] = DEFAULT_SEASONALITY_PERIODS,
    threshold: float = SEASONALITY_THRESHOLD,
) -> SeasonalityResult:
    """Pick the candidate period with the strongest autocorrelation

    Periods that do not fit twice into the data are skipped. Seasonality is
    declared when the strongest absolute autocorrelation exceeds threshold.
    """
    arr = _as_array(data)
    if arr.size < SEASONALITY_MIN_POINTS:
        return SeasonalityResult(detected=False)

    best_period: Optional[int] = None
    best_strength = 0.0

    for period in periods:
        if arr.size < period * 2:
            continue
        strength = abs(autocorrelation(arr, period))
        if strength > best_strength:
            best_strength = strength
            best_period = period

    if best_period is not None and best_strength > threshold:
        return SeasonalityResult(detected=True, period=best_period, strength=best_strength)

    return SeasonalityResult(detected=False, strength=best_strength)


def z_for_level(level: float) -> float:
    """z value for a confidence level; unknown levels fall back to 95%"""
    return Z_SCORES.get(level, DEFAULT_Z)


def confidence_interval(data: Sequence[float], level: float = 0.95) -> Tuple[float, float]:
    """Normal-approximation interval for the mean: mean +/- z * std / sqrt(n)"""
    arr = _as_array(data)
    if arr.size == 0:
        return 0.0, 0.0

    center = mean(arr)
    margin = z_for_level(level) * (std_dev(arr) / math.sqrt(arr.size))
    return center - margin, center + margin


def percentage_change(old_value: float, new_value: float) -> float:
    """Percent change from old_value to new_value

    A zero baseline has no defined relative change: 0 is reported when both
    values are zero and 100 otherwise.
    """
    if old_value == 0:
        return 0.0 if new_value == 0 else 100.0
    return float((new_value - old_value) / old_value * 100)
