"""
Data Models Package

This package contains all Pydantic models for engine inputs, options and results.
"""

from .data_models import (
    # Inputs
    TimeSeriesPoint,
    MetricSeries,

    # Options
    ForecastOptions,
    AnomalyOptions,
    CorrelationOptions,
    SUPPORTED_CONFIDENCE_LEVELS,

    # Enums
    TrendDirection,
    AnomalySeverity,
    CorrelationStrength,
    CorrelationDirection,
    VisualizationType,
    BaselineMethod,

    ValueModel,
)

from .response_models import (
    # Forecasting
    ConfidenceInterval,
    ForecastPrediction,
    SeasonalityInfo,
    ForecastResult,

    # Anomalies
    Anomaly,
    AnomalyDetectionResult,

    # Correlations
    CorrelationPair,
    CorrelationAnalysisResult,
)

__all__ = [
    # Data models
    "TimeSeriesPoint",
    "MetricSeries",
    "ForecastOptions",
    "AnomalyOptions",
    "CorrelationOptions",
    "SUPPORTED_CONFIDENCE_LEVELS",
    "ValueModel",

    # Result models
    "ConfidenceInterval",
    "ForecastPrediction",
    "SeasonalityInfo",
    "ForecastResult",
    "Anomaly",
    "AnomalyDetectionResult",
    "CorrelationPair",
    "CorrelationAnalysisResult",

    # Enums
    "TrendDirection",
    "AnomalySeverity",
    "CorrelationStrength",
    "CorrelationDirection",
    "VisualizationType",
    "BaselineMethod",
]
