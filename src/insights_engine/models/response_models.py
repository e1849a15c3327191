"""
Result Models for the CRM Insights Engine

Value objects produced once per analysis request and consumed read-only by
the presentation layer. Numeric fields are final; the optional ai_analysis
text is the only field the narrative step may fill in.
"""

from datetime import date as CalendarDate
from typing import Optional, Tuple

from pydantic import Field, model_validator

from .data_models import (
    AnomalySeverity,
    CorrelationDirection,
    CorrelationStrength,
    TrendDirection,
    ValueModel,
    VisualizationType,
)


# Forecasting
class ConfidenceInterval(ValueModel):
    level: float = Field(gt=0.0, lt=1.0)
    lower: float
    upper: float

    @model_validator(mode="after")
    def validate_bounds(self):
        if self.lower > self.upper:
            raise ValueError("Interval lower bound must not exceed upper bound")
        return self

    @property
    def width(self) -> float:
        return self.upper - self.lower


class ForecastPrediction(ValueModel):
    date: CalendarDate
    predicted_value: float
    confidence_intervals: Tuple[ConfidenceInterval, ...]

    def interval(self, level: float) -> Optional[ConfidenceInterval]:
        for interval in self.confidence_intervals:
            if interval.level == level:
                return interval
        return None


class SeasonalityInfo(ValueModel):
    detected: bool
    period: Optional[int] = None
    description: Optional[str] = None


class ForecastResult(ValueModel):
    """Forward projection with uncertainty bands and a trend summary."""
    predictions: Tuple[ForecastPrediction, ...]
    trend: TrendDirection
    seasonality: SeasonalityInfo
    expected_accuracy: float = Field(ge=0.0, le=100.0)
    methodology: str
    ai_analysis: Optional[str] = None


# Anomaly detection
class Anomaly(ValueModel):
    index: int = Field(ge=0)
    date: CalendarDate
    value: float
    expected_value: float
    deviation: float
    deviation_percentage: float
    z_score: float
    severity: AnomalySeverity
    explanation: str
    suggested_actions: Tuple[str, ...] = ()


class AnomalyDetectionResult(ValueModel):
    """Flagged historical points, ordered by index."""
    anomalies: Tuple[Anomaly, ...] = ()
    anomaly_rate: float = Field(ge=0.0, le=100.0)
    methodology: str = Field(min_length=1)
    total_data_points: int = Field(default=0, ge=0)
    ai_analysis: Optional[str] = None


# Correlation analysis
class CorrelationPair(ValueModel):
    metric1: str
    metric2: str
    coefficient: float = Field(ge=-1.0, le=1.0)
    strength: CorrelationStrength
    direction: CorrelationDirection
    business_implication: str
    suggested_visualization: VisualizationType
    p_value: float = Field(default=1.0, ge=0.0, le=1.0)


class CorrelationAnalysisResult(ValueModel):
    """Significant metric pairs ranked by descending |coefficient|."""
    correlations: Tuple[CorrelationPair, ...] = ()
    total_pairs_analyzed: int = Field(ge=0)
    significant_correlations: int = Field(ge=0)
    methodology: str
    ai_analysis: Optional[str] = None
