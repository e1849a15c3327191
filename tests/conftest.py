"""
Pytest configuration and shared fixtures for the CRM Insights Engine

This module provides:
- Isolated settings that ignore the host environment and .env files
- Log capture for structlog events
- Sample series and fake narrative annotators
"""

import os

import pytest
import structlog
from structlog.testing import LogCapture

from insights_engine.config.settings import Environment, Settings
from insights_engine.utils.analytics_engine import AnalyticsEngine
from tests.fixtures.test_data import (
    DONATIONS_WITH_SPIKE,
    LINEAR_GROWTH,
    FakeAnnotator,
    SeriesFactory,
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep INSIGHTS_* variables from the host out of every test."""
    for key in list(os.environ):
        if key.upper().startswith("INSIGHTS_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def log_output():
    """Capture structlog events as dicts."""
    structlog.reset_defaults()
    capture = LogCapture()
    structlog.configure(processors=[capture], cache_logger_on_first_use=False)
    yield capture
    structlog.reset_defaults()


@pytest.fixture
def test_settings():
    """Default settings without reading .env."""
    return Settings(_env_file=None, environment=Environment.DEVELOPMENT)


@pytest.fixture
def engine(test_settings):
    return AnalyticsEngine(settings=test_settings)


@pytest.fixture
def spike_series():
    return SeriesFactory.points(DONATIONS_WITH_SPIKE)


@pytest.fixture
def linear_series():
    return SeriesFactory.points(LINEAR_GROWTH)


@pytest.fixture
def fake_annotator():
    return FakeAnnotator()
