"""
Configuration Management

This module provides environment-based configuration for the insights engine:
- Default thresholds and options for each analysis
- Narrative annotation (generative AI) credentials and time bounds
- Logging configuration
- Environment validation
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, SecretStr, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.data_models import (
    AnomalyOptions,
    BaselineMethod,
    CorrelationOptions,
    ForecastOptions,
)


class Environment(str, Enum):
    """Application environment types"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log renderers"""
    CONSOLE = "console"
    JSON = "json"


class ForecastSettings(BaseModel):
    """Forecast engine defaults"""

    confidence_levels: List[float] = Field(default=[0.80, 0.95], description="Band levels per prediction")
    include_seasonality: bool = Field(default=True, description="Apply detected seasonal adjustment")
    seasonality_periods: List[int] = Field(
        default=[7, 12, 30, 90],
        description="Candidate cycle lengths, in points"
    )
    seasonality_threshold: float = Field(default=0.6, ge=0.0, le=1.0, description="Autocorrelation cut-off")
    accuracy_floor: float = Field(default=50.0, ge=0.0, le=100.0, description="Lowest reported accuracy")
    accuracy_ceiling: float = Field(default=95.0, ge=0.0, le=100.0, description="Highest reported accuracy")

    def to_options(self) -> ForecastOptions:
        return ForecastOptions(
            confidence_levels=tuple(self.confidence_levels),
            include_seasonality=self.include_seasonality,
            seasonality_periods=tuple(self.seasonality_periods),
            seasonality_threshold=self.seasonality_threshold,
            accuracy_floor=self.accuracy_floor,
            accuracy_ceiling=self.accuracy_ceiling,
        )


class AnomalySettings(BaseModel):
    """Anomaly detector defaults"""

    z_threshold: float = Field(default=3.0, gt=0.0, description="|z| at or above which a point is flagged")
    baseline: BaselineMethod = Field(default=BaselineMethod.LINEAR_TREND, description="Expected-value baseline")

    def to_options(self) -> AnomalyOptions:
        return AnomalyOptions(threshold=self.z_threshold, baseline=self.baseline)


class CorrelationSettings(BaseModel):
    """Correlation analyzer defaults"""

    min_coefficient: float = Field(default=0.3, ge=0.0, le=1.0, description="Smallest |r| reported")
    scale_ratio_threshold: float = Field(
        default=10.0,
        ge=1.0,
        description="Std-dev ratio above which a dual-axis chart is suggested"
    )
    require_date_alignment: bool = Field(default=True, description="Reject metrics whose dates differ by index")

    def to_options(self) -> CorrelationOptions:
        return CorrelationOptions(
            min_coefficient=self.min_coefficient,
            scale_ratio_threshold=self.scale_ratio_threshold,
            require_date_alignment=self.require_date_alignment,
        )


class NarrativeSettings(BaseModel):
    """Generative AI narrative annotation settings"""

    enabled: bool = Field(default=False, description="Attach AI commentary to analysis results")
    api_key: Optional[SecretStr] = Field(default=None, description="Gemini API key")
    model: str = Field(default="gemini-2.5-flash", description="Gemini model name")
    base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API base URL"
    )
    timeout_seconds: float = Field(default=10.0, gt=0.0, le=120.0, description="Upper bound on one annotation")
    max_retries: int = Field(default=2, ge=0, le=5, description="Retries for transient HTTP failures")
    temperature: float = Field(default=0.4, ge=0.0, le=1.0, description="Sampling temperature")

    @property
    def configured(self) -> bool:
        return self.enabled and self.api_key is not None and bool(self.api_key.get_secret_value())


class Settings(BaseSettings):
    """Main application settings"""

    model_config = SettingsConfigDict(
        env_prefix="INSIGHTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="forbid"  # Prevent unknown configuration parameters
    )

    # Core application settings
    app_name: str = Field(default="CRM-Insights-Engine", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Application environment")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging configuration
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.CONSOLE, description="Log renderer")

    # Analysis configuration
    forecast: ForecastSettings = Field(default_factory=ForecastSettings)
    anomaly: AnomalySettings = Field(default_factory=AnomalySettings)
    correlation: CorrelationSettings = Field(default_factory=CorrelationSettings)
    narrative: NarrativeSettings = Field(default_factory=NarrativeSettings)

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment setting"""
        if isinstance(v, str):
            v = v.lower()
            if v in ["dev", "develop"]:
                return Environment.DEVELOPMENT
            elif v in ["stage", "stag"]:
                return Environment.STAGING
            elif v in ["prod", "production"]:
                return Environment.PRODUCTION
        return v

    @field_validator("debug")
    @classmethod
    def validate_debug_in_production(cls, v, info: ValidationInfo):
        """Ensure debug is disabled in production"""
        if info.data.get("environment") == Environment.PRODUCTION and v:
            raise ValueError("Debug mode cannot be enabled in production environment")
        return v

    @model_validator(mode="after")
    def validate_narrative_credentials(self):
        """An enabled narrative step needs a key outside development"""
        if self.environment == Environment.PRODUCTION and self.narrative.enabled and not self.narrative.configured:
            raise ValueError("Narrative annotation is enabled but no API key is configured")
        return self

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment == Environment.DEVELOPMENT


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings singleton"""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from configuration"""
    global settings
    settings = Settings()
    return settings
