"""
External service integrations.
"""

from .base_client import APIMetrics, BaseAPIClient, ClientStatus, RetryConfig
from .narrative_client import (
    AnalysisResult,
    GeminiNarrativeClient,
    NarrativeAnnotator,
    NarrativeError,
    build_prompt,
    extract_text,
)

__all__ = [
    "APIMetrics",
    "BaseAPIClient",
    "ClientStatus",
    "RetryConfig",
    "AnalysisResult",
    "GeminiNarrativeClient",
    "NarrativeAnnotator",
    "NarrativeError",
    "build_prompt",
    "extract_text",
]
