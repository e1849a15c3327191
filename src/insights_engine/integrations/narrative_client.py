"""
Narrative Annotation Client

Turns a finished analysis result into a short business commentary using the
Gemini generateContent REST endpoint. The annotator never sees or changes the
numeric content of a result; it only returns text for the ai_analysis field.
"""

import json
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

import structlog

from ..config.settings import NarrativeSettings
from ..models.response_models import (
    AnomalyDetectionResult,
    CorrelationAnalysisResult,
    ForecastResult,
)
from .base_client import BaseAPIClient, RetryConfig

logger = structlog.get_logger(__name__)

AnalysisResult = Union[ForecastResult, AnomalyDetectionResult, CorrelationAnalysisResult]

MAX_LISTED_ITEMS = 5
MAX_OUTPUT_TOKENS = 512


class NarrativeError(Exception):
    """Raised when the model returns no usable commentary"""


@runtime_checkable
class NarrativeAnnotator(Protocol):
    """Anything that can write commentary for an analysis result"""

    async def narrate(self, result: AnalysisResult) -> Optional[str]:
        ...


def _forecast_prompt(result: ForecastResult) -> str:
    if result.seasonality.detected:
        seasonality = f"Yes, {result.seasonality.period}-period cycle"
    else:
        seasonality = "No"

    lines = [
        "Analyze this forecast data and provide business insights in 2-3 sentences:",
        "",
        f"Historical trend: {result.trend.value}",
        f"Seasonality detected: {seasonality}",
        f"Forecast accuracy: {result.expected_accuracy:.1f}%",
    ]
    if result.predictions:
        first, last = result.predictions[0], result.predictions[-1]
        lines.append(f"Predicted next period: {first.predicted_value:.2f} ({first.date.isoformat()})")
        lines.append(f"Predicted final period: {last.predicted_value:.2f} ({last.date.isoformat()})")
    lines += ["", "Provide actionable insights about what this forecast means for business planning."]
    return "\n".join(lines)


def _anomaly_prompt(result: AnomalyDetectionResult) -> str:
    lines = [
        "Analyze these data anomalies and provide business context in 2-3 sentences:",
        "",
        f"Data points analyzed: {result.total_data_points}",
        f"Anomalies found: {len(result.anomalies)} ({result.anomaly_rate:.1f}% of points)",
        f"Method: {result.methodology}",
    ]

    ranked = sorted(result.anomalies, key=lambda anomaly: abs(anomaly.z_score), reverse=True)
    for anomaly in ranked[:MAX_LISTED_ITEMS]:
        sign = "+" if anomaly.deviation_percentage > 0 else ""
        lines.append(
            f"- {anomaly.date.isoformat()}: value {anomaly.value:.2f}, expected {anomaly.expected_value:.2f}, "
            f"deviation {sign}{anomaly.deviation_percentage:.1f}%, z-score {anomaly.z_score:.2f}, "
            f"severity {anomaly.severity.value}"
        )

    lines += ["", "Explain what might have caused these anomalies and what to investigate first."]
    return "\n".join(lines)


def _correlation_prompt(result: CorrelationAnalysisResult) -> str:
    lines = [
        "Analyze these correlations between metrics and provide business insights in 2-3 sentences:",
        "",
        f"Pairs analyzed: {result.total_pairs_analyzed}",
        f"Significant pairs: {result.significant_correlations}",
    ]
    for pair in result.correlations[:MAX_LISTED_ITEMS]:
        lines.append(
            f"- {pair.metric1} / {pair.metric2}: {pair.coefficient:.3f} "
            f"({pair.strength.value} {pair.direction.value})"
        )
    lines += ["", "Explain what these relationships mean for planning and where to look for causes."]
    return "\n".join(lines)


def build_prompt(result: AnalysisResult) -> str:
    """Render the model prompt for an analysis result"""
    if isinstance(result, ForecastResult):
        return _forecast_prompt(result)
    if isinstance(result, AnomalyDetectionResult):
        return _anomaly_prompt(result)
    if isinstance(result, CorrelationAnalysisResult):
        return _correlation_prompt(result)
    raise TypeError(f"Unsupported result type: {type(result).__name__}")


def extract_text(payload: Dict[str, Any]) -> str:
    """Pull the commentary out of a generateContent response body"""
    try:
        parts = payload["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as e:
        raise NarrativeError("Response contained no candidates") from e

    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()
    if not text:
        raise NarrativeError("Response contained no text")

    # Structured output is requested; fall back to the raw text if the model ignored it
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(parsed, dict) and isinstance(parsed.get("analysis"), str) and parsed["analysis"].strip():
        return parsed["analysis"].strip()
    return text


class GeminiNarrativeClient(BaseAPIClient):
    """Narrative annotator backed by the Gemini REST API"""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 10.0,
        max_retries: int = 2,
        temperature: float = 0.4,
        retry_config: Optional[RetryConfig] = None,
        **kwargs,
    ):
        super().__init__(
            service_name="gemini",
            base_url=base_url,
            retry_config=retry_config or RetryConfig(max_attempts=max_retries + 1),
            timeout=timeout,
            **kwargs,
        )
        self._api_key = api_key
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: NarrativeSettings, **kwargs) -> "GeminiNarrativeClient":
        if settings.api_key is None:
            raise ValueError("Narrative settings have no API key")
        return cls(
            api_key=settings.api_key.get_secret_value(),
            model=settings.model,
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            max_retries=settings.max_retries,
            temperature=settings.temperature,
            **kwargs,
        )

    def _request_body(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": MAX_OUTPUT_TOKENS,
                "responseMimeType": "application/json",
                "responseSchema": {
                    "type": "object",
                    "properties": {"analysis": {"type": "string"}},
                },
            },
        }

    async def narrate(self, result: AnalysisResult) -> Optional[str]:
        prompt = build_prompt(result)
        response = await self._make_request(
            "POST",
            f"models/{self.model}:generateContent",
            data=self._request_body(prompt),
            headers={"x-goog-api-key": self._api_key},
        )
        text = extract_text(response.json())
        logger.debug("Narrative generated", model=self.model, result_type=type(result).__name__, length=len(text))
        return text
