"""
Data Models for the CRM Insights Engine

This module defines the Pydantic models for the engine's inputs: dated
observations, named metric series, and the per-analysis option sets. All
models are immutable; they serialize with camelCase aliases for the UI layer
and accept either spelling on input.
"""

from datetime import date as CalendarDate
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


SUPPORTED_CONFIDENCE_LEVELS: Tuple[float, ...] = (0.80, 0.90, 0.95, 0.99)


class TrendDirection(str, Enum):
    """Trend direction classifications"""
    UPWARD = "upward"
    DOWNWARD = "downward"
    STABLE = "stable"
    CYCLICAL = "cyclical"


class AnomalySeverity(str, Enum):
    """Severity of a flagged point, monotonic in |z|"""
    MINOR = "minor"
    MODERATE = "moderate"
    CRITICAL = "critical"


class CorrelationStrength(str, Enum):
    """Qualitative strength of a correlation coefficient"""
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    VERY_STRONG = "very strong"


class CorrelationDirection(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class VisualizationType(str, Enum):
    """Chart types the presentation layer knows how to draw for a pair"""
    SCATTER = "scatter"
    DUAL_AXIS_LINE = "dual-axis-line"
    STACKED_AREA = "stacked-area"


class BaselineMethod(str, Enum):
    """Expected-value baseline used by anomaly detection"""
    LINEAR_TREND = "linear_trend"
    GLOBAL_MEAN = "global_mean"


class ValueModel(BaseModel):
    """Immutable base for every engine value object."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> Dict[str, Any]:
        """Plain structural form (camelCase keys, ISO dates, enum values)"""
        return self.model_dump(mode="json", by_alias=True)


# Input series
class TimeSeriesPoint(ValueModel):
    """A single dated observation."""
    date: CalendarDate
    value: float = Field(allow_inf_nan=False)
    label: Optional[str] = None


class MetricSeries(ValueModel):
    """A named metric; all series passed together must share index alignment."""
    name: str = Field(min_length=1)
    points: Tuple[TimeSeriesPoint, ...]
    cumulative: bool = False  # caller hint: additive quantity, suits stacked areas

    def values(self) -> List[float]:
        return [point.value for point in self.points]

    def dates(self) -> List[CalendarDate]:
        return [point.date for point in self.points]

    def __len__(self) -> int:
        return len(self.points)


# Analysis options
class ForecastOptions(ValueModel):
    """Options for generate_forecast."""
    confidence_levels: Tuple[float, ...] = (0.80, 0.95)
    include_seasonality: bool = True
    seasonality_periods: Tuple[int, ...] = (7, 12, 30, 90)
    seasonality_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    accuracy_floor: float = Field(default=50.0, ge=0.0, le=100.0)
    accuracy_ceiling: float = Field(default=95.0, ge=0.0, le=100.0)

    @field_validator("confidence_levels")
    @classmethod
    def validate_confidence_levels(cls, v):
        if not v:
            raise ValueError("At least one confidence level is required")
        unsupported = [level for level in v if level not in SUPPORTED_CONFIDENCE_LEVELS]
        if unsupported:
            raise ValueError(
                f"Unsupported confidence levels {unsupported}; "
                f"choose from {list(SUPPORTED_CONFIDENCE_LEVELS)}"
            )
        return v

    @field_validator("seasonality_periods")
    @classmethod
    def validate_seasonality_periods(cls, v):
        if any(period < 2 for period in v):
            raise ValueError("Seasonality periods must be at least 2 points")
        return v

    @model_validator(mode="after")
    def validate_accuracy_bounds(self):
        if self.accuracy_floor > self.accuracy_ceiling:
            raise ValueError("accuracy_floor must not exceed accuracy_ceiling")
        return self


class AnomalyOptions(ValueModel):
    """Options for detect_anomalies."""
    threshold: float = Field(default=3.0, gt=0.0)
    baseline: BaselineMethod = BaselineMethod.LINEAR_TREND


class CorrelationOptions(ValueModel):
    """Options for find_correlations."""
    min_coefficient: float = Field(default=0.3, ge=0.0, le=1.0)
    scale_ratio_threshold: float = Field(default=10.0, ge=1.0)
    require_date_alignment: bool = True
