"""
Unit tests for configuration management
"""

import pytest
from pydantic import ValidationError

from insights_engine.config import (
    AnomalySettings,
    CorrelationSettings,
    Environment,
    ForecastSettings,
    LogFormat,
    NarrativeSettings,
    Settings,
)
from insights_engine.models import AnomalyOptions, BaselineMethod, CorrelationOptions, ForecastOptions


class TestDefaults:
    """Test default configuration"""

    def test_defaults(self, test_settings):
        assert test_settings.app_name == "CRM-Insights-Engine"
        assert test_settings.environment == Environment.DEVELOPMENT
        assert test_settings.log_format == LogFormat.CONSOLE
        assert test_settings.anomaly.z_threshold == 3.0
        assert test_settings.anomaly.baseline == BaselineMethod.LINEAR_TREND
        assert test_settings.correlation.min_coefficient == 0.3
        assert test_settings.narrative.enabled is False
        assert test_settings.narrative.model == "gemini-2.5-flash"

    def test_group_defaults_match_option_defaults(self, test_settings):
        assert test_settings.forecast.to_options() == ForecastOptions()
        assert test_settings.anomaly.to_options() == AnomalyOptions()
        assert test_settings.correlation.to_options() == CorrelationOptions()


class TestEnvironmentOverrides:
    """Test INSIGHTS_* environment variables"""

    def test_nested_override(self, monkeypatch):
        monkeypatch.setenv("INSIGHTS_ANOMALY__Z_THRESHOLD", "2.5")
        monkeypatch.setenv("INSIGHTS_ANOMALY__BASELINE", "global_mean")

        settings = Settings(_env_file=None)

        assert settings.anomaly.z_threshold == 2.5
        assert settings.anomaly.to_options().baseline == BaselineMethod.GLOBAL_MEAN

    def test_top_level_override(self, monkeypatch):
        monkeypatch.setenv("INSIGHTS_LOG_FORMAT", "json")
        monkeypatch.setenv("INSIGHTS_LOG_LEVEL", "DEBUG")

        settings = Settings(_env_file=None)

        assert settings.log_format == LogFormat.JSON
        assert settings.log_level.value == "DEBUG"

    def test_secret_key_not_exposed(self, monkeypatch):
        monkeypatch.setenv("INSIGHTS_NARRATIVE__ENABLED", "true")
        monkeypatch.setenv("INSIGHTS_NARRATIVE__API_KEY", "secret-key")

        settings = Settings(_env_file=None)

        assert settings.narrative.configured
        assert "secret-key" not in repr(settings.narrative)
        assert settings.narrative.api_key.get_secret_value() == "secret-key"


class TestValidation:
    """Test settings validation"""

    @pytest.mark.parametrize("alias,environment", [
        ("dev", Environment.DEVELOPMENT),
        ("stage", Environment.STAGING),
        ("prod", Environment.PRODUCTION),
        ("PRODUCTION", Environment.PRODUCTION),
    ])
    def test_environment_aliases(self, alias, environment):
        assert Settings(_env_file=None, environment=alias).environment == environment

    def test_debug_forbidden_in_production(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="production", debug=True)

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, unknown_option=True)

    def test_enabled_narrative_needs_key_in_production(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="production", narrative=NarrativeSettings(enabled=True))

    def test_enabled_narrative_without_key_allowed_in_development(self):
        settings = Settings(_env_file=None, narrative=NarrativeSettings(enabled=True))
        assert not settings.narrative.configured

    def test_invalid_group_values(self):
        with pytest.raises(ValidationError):
            AnomalySettings(z_threshold=0)
        with pytest.raises(ValidationError):
            CorrelationSettings(scale_ratio_threshold=0.5)
        with pytest.raises(ValidationError):
            NarrativeSettings(timeout_seconds=0)


class TestOptionConversion:
    """Test settings groups building option models"""

    def test_forecast_options(self):
        options = ForecastSettings(confidence_levels=[0.9], seasonality_periods=[7, 14]).to_options()

        assert options.confidence_levels == (0.9,)
        assert options.seasonality_periods == (7, 14)

    def test_invalid_levels_fail_on_conversion(self):
        with pytest.raises(ValidationError):
            ForecastSettings(confidence_levels=[0.42]).to_options()
