"""
CRM Insights Engine

Statistical forecasting, anomaly detection and correlation analysis over
dated CRM metrics, with optional AI commentary on the results.
"""

__version__ = "0.1.0"

from .exceptions import AnalyticsError, ErrorCode, InsufficientData, InvalidHorizon, ShapeMismatch
from .models import (
    AnomalyOptions,
    AnomalyDetectionResult,
    CorrelationAnalysisResult,
    CorrelationOptions,
    ForecastOptions,
    ForecastResult,
    MetricSeries,
    TimeSeriesPoint,
)
from .tools import detect_anomalies, find_correlations, generate_forecast

__all__ = [
    "__version__",
    "AnalyticsError",
    "ErrorCode",
    "InsufficientData",
    "InvalidHorizon",
    "ShapeMismatch",
    "AnomalyOptions",
    "AnomalyDetectionResult",
    "CorrelationAnalysisResult",
    "CorrelationOptions",
    "ForecastOptions",
    "ForecastResult",
    "MetricSeries",
    "TimeSeriesPoint",
    "detect_anomalies",
    "find_correlations",
    "generate_forecast",
]
