"""
Analytics Engine

Facade over the forecasting, anomaly and correlation tools:
- Option defaults drawn from application settings
- Optional narrative annotation, bounded in time and never fatal
- Explicit lifecycle for the annotator's HTTP resources
"""

import asyncio
from typing import Any, Dict, Optional, Sequence, TypeVar

import structlog

from ..config.settings import Settings, get_settings
from ..integrations.narrative_client import GeminiNarrativeClient, NarrativeAnnotator
from ..models.data_models import (
    AnomalyOptions,
    CorrelationOptions,
    ForecastOptions,
    MetricSeries,
    TimeSeriesPoint,
)
from ..models.response_models import (
    AnomalyDetectionResult,
    CorrelationAnalysisResult,
    ForecastResult,
)
from ..tools.anomaly_detection import detect_anomalies
from ..tools.correlation_analysis import find_correlations
from ..tools.forecasting import generate_forecast

logger = structlog.get_logger(__name__)

ResultT = TypeVar("ResultT", ForecastResult, AnomalyDetectionResult, CorrelationAnalysisResult)


class AnalyticsEngine:
    """Runs analyses with configured defaults and annotates the results"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        annotator: Optional[NarrativeAnnotator] = None,
        annotation_timeout: Optional[float] = None,
    ):
        self.settings = settings or get_settings()
        self.annotator = annotator
        self.annotation_timeout = (
            annotation_timeout if annotation_timeout is not None
            else self.settings.narrative.timeout_seconds
        )
        self._runs = {"forecast": 0, "anomalies": 0, "correlations": 0}
        self._annotation_failures = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Release the annotator's resources, if it holds any"""
        close = getattr(self.annotator, "close", None)
        if close is not None:
            await close()

    # Numeric analyses
    def forecast(
        self,
        series: Sequence[TimeSeriesPoint],
        horizon: int,
        options: Optional[ForecastOptions] = None,
    ) -> ForecastResult:
        self._runs["forecast"] += 1
        return generate_forecast(series, horizon, options or self.settings.forecast.to_options())

    def anomalies(
        self,
        series: Sequence[TimeSeriesPoint],
        options: Optional[AnomalyOptions] = None,
    ) -> AnomalyDetectionResult:
        self._runs["anomalies"] += 1
        return detect_anomalies(series, options or self.settings.anomaly.to_options())

    def correlations(
        self,
        metrics: Sequence[MetricSeries],
        options: Optional[CorrelationOptions] = None,
    ) -> CorrelationAnalysisResult:
        self._runs["correlations"] += 1
        return find_correlations(metrics, options or self.settings.correlation.to_options())

    # Annotated analyses
    async def analyze_forecast(
        self,
        series: Sequence[TimeSeriesPoint],
        horizon: int,
        options: Optional[ForecastOptions] = None,
        annotate: bool = True,
    ) -> ForecastResult:
        result = self.forecast(series, horizon, options)
        return await self.annotate(result) if annotate else result

    async def analyze_anomalies(
        self,
        series: Sequence[TimeSeriesPoint],
        options: Optional[AnomalyOptions] = None,
        annotate: bool = True,
    ) -> AnomalyDetectionResult:
        result = self.anomalies(series, options)
        return await self.annotate(result) if annotate else result

    async def analyze_correlations(
        self,
        metrics: Sequence[MetricSeries],
        options: Optional[CorrelationOptions] = None,
        annotate: bool = True,
    ) -> CorrelationAnalysisResult:
        result = self.correlations(metrics, options)
        return await self.annotate(result) if annotate else result

    async def annotate(self, result: ResultT) -> ResultT:
        """Attach AI commentary to a result

        Returns the same result when no annotator is configured, the call
        times out, fails, or produces no text. Numeric fields never change.
        """
        if self.annotator is None:
            return result

        try:
            text = await asyncio.wait_for(self.annotator.narrate(result), timeout=self.annotation_timeout)
        except asyncio.TimeoutError:
            self._annotation_failures += 1
            logger.warning(
                "Narrative annotation timed out",
                result_type=type(result).__name__,
                timeout=self.annotation_timeout,
            )
            return result
        except Exception as e:
            self._annotation_failures += 1
            logger.warning(
                "Narrative annotation failed",
                result_type=type(result).__name__,
                error=str(e),
                error_type=type(e).__name__,
            )
            return result

        if not text:
            return result
        return result.model_copy(update={"ai_analysis": text})

    def get_engine_status(self) -> Dict[str, Any]:
        """Get analytics engine status"""
        return {
            "runs": dict(self._runs),
            "annotator": type(self.annotator).__name__ if self.annotator else None,
            "annotation_timeout": self.annotation_timeout,
            "annotation_failures": self._annotation_failures,
        }


def create_analytics_engine(settings: Optional[Settings] = None) -> AnalyticsEngine:
    """Build an engine, wiring the Gemini annotator when it is configured"""
    settings = settings or get_settings()
    annotator = None
    if settings.narrative.configured:
        annotator = GeminiNarrativeClient.from_settings(settings.narrative, user_agent=settings.app_name)
    elif settings.narrative.enabled:
        logger.warning("Narrative annotation enabled without an API key; results will not be annotated")
    return AnalyticsEngine(settings=settings, annotator=annotator)
