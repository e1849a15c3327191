"""
Analysis Tools Package

The three independent analyses built on the statistics kernel. Each is a pure,
synchronous function of its input series and options.
"""

from .forecasting import generate_forecast
from .anomaly_detection import detect_anomalies
from .correlation_analysis import find_correlations

__all__ = [
    "generate_forecast",
    "detect_anomalies",
    "find_correlations",
]
