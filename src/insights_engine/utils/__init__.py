"""
Utilities Package

Numeric primitives shared across the analyses. The analytics engine facade
lives in utils.analytics_engine and is imported from there directly.
"""

from .statistics import (
    RegressionResult,
    Outlier,
    SeasonalityResult,
    Z_SCORES,
    mean,
    variance,
    std_dev,
    median,
    z_score,
    pearson_correlation,
    linear_regression,
    detect_outliers,
    moving_average,
    ema,
    detect_trend,
    autocorrelation,
    detect_seasonality,
    z_for_level,
    confidence_interval,
    percentage_change,
)

__all__ = [
    # Result types
    "RegressionResult",
    "Outlier",
    "SeasonalityResult",
    "Z_SCORES",

    # Kernel functions
    "mean",
    "variance",
    "std_dev",
    "median",
    "z_score",
    "pearson_correlation",
    "linear_regression",
    "detect_outliers",
    "moving_average",
    "ema",
    "detect_trend",
    "autocorrelation",
    "detect_seasonality",
    "z_for_level",
    "confidence_interval",
    "percentage_change",
]
