"""
Configuration Package

Environment-based settings for the insights engine: analysis defaults,
narrative annotation credentials and logging.
"""

from .settings import (
    Settings,
    Environment,
    LogLevel,
    LogFormat,
    ForecastSettings,
    AnomalySettings,
    CorrelationSettings,
    NarrativeSettings,
    get_settings,
    reload_settings
)

__all__ = [
    # Settings classes
    "Settings",
    "Environment",
    "LogLevel",
    "LogFormat",
    "ForecastSettings",
    "AnomalySettings",
    "CorrelationSettings",
    "NarrativeSettings",

    # Settings functions
    "get_settings",
    "reload_settings",
]
