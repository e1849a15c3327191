"""
Error taxonomy for the insights engine.

Only genuinely invalid requests raise. Degenerate numeric inputs (flat
series, zero baselines, short histories) have documented fallback values in
the statistics kernel and never reach this module.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Stable error codes exposed to callers and tool responses"""
    INVALID_HORIZON = "InvalidHorizon"
    INSUFFICIENT_DATA = "InsufficientData"
    SHAPE_MISMATCH = "ShapeMismatch"


class AnalyticsError(Exception):
    """Base class for all engine errors"""

    code: ErrorCode

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidHorizon(AnalyticsError, ValueError):
    """Forecast horizon is zero or negative"""
    code = ErrorCode.INVALID_HORIZON


class InsufficientData(AnalyticsError, ValueError):
    """Fewer points (or metrics) than the analysis requires"""
    code = ErrorCode.INSUFFICIENT_DATA


class ShapeMismatch(AnalyticsError, ValueError):
    """Series of unequal length, empty series, or misaligned indices"""
    code = ErrorCode.SHAPE_MISMATCH
