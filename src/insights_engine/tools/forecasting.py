"""
Forecast Engine

Projects an ordered time series forward:
- Linear trend fitted by least squares over the point index
- Optional per-phase seasonal adjustment when autocorrelation finds a cycle
- 80%/95% (or caller-chosen) bands from the residual spread, widening with
  the square root of the forecast distance
- Qualitative trend/seasonality summary and an accuracy self-estimate
"""

import math
from datetime import date as CalendarDate
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import structlog

from ..exceptions import InsufficientData, InvalidHorizon
from ..models.data_models import ForecastOptions, TimeSeriesPoint
from ..models.response_models import (
    ConfidenceInterval,
    ForecastPrediction,
    ForecastResult,
    SeasonalityInfo,
)
from ..utils import statistics

logger = structlog.get_logger(__name__)

MIN_FORECAST_POINTS = 2

TREND_METHODOLOGY = "Linear regression with confidence intervals"
SEASONAL_METHODOLOGY = "Linear regression with seasonal adjustment and confidence intervals"


def _seasonal_adjustments(residuals: np.ndarray, period: int) -> Tuple[float, ...]:
    """Mean residual for each phase (index mod period) of the cycle"""
    return tuple(statistics.mean(residuals[phase::period]) for phase in range(period))


def _date_step_days(dates: Sequence[CalendarDate]) -> int:
    """Average spacing of the history in whole days, at least one"""
    stamps = pd.to_datetime(pd.Series(list(dates)))
    gaps = stamps.diff().dropna().abs().dt.days
    if gaps.empty:
        return 1
    return max(1, int(math.floor(float(gaps.mean()) + 0.5)))


def _future_dates(dates: Sequence[CalendarDate], horizon: int) -> List[CalendarDate]:
    step = _date_step_days(dates)
    last = pd.Timestamp(dates[-1])
    future = pd.date_range(
        start=last + pd.Timedelta(days=step),
        periods=horizon,
        freq=f"{step}D",
    )
    return [stamp.date() for stamp in future]


def _describe_seasonality(detected: bool, period: Optional[int]) -> str:
    if detected:
        return f"{period}-period cycle detected"
    return "No significant seasonality detected"


def generate_forecast(
    series: Sequence[TimeSeriesPoint],
    horizon: int,
    options: Optional[ForecastOptions] = None,
) -> ForecastResult:
    """Forecast the next `horizon` points of a series

    Raises InvalidHorizon for a non-positive horizon and InsufficientData
    for fewer than two historical points.
    """
    options = options or ForecastOptions()

    if horizon <= 0:
        raise InvalidHorizon(
            f"Forecast horizon must be positive, got {horizon}",
            details={"horizon": horizon},
        )
    if len(series) < MIN_FORECAST_POINTS:
        raise InsufficientData(
            f"Need at least {MIN_FORECAST_POINTS} data points for forecasting, got {len(series)}",
            details={"required": MIN_FORECAST_POINTS, "received": len(series)},
        )

    values = np.array([point.value for point in series], dtype=float)
    n = values.size
    index = np.arange(n)

    trend = statistics.detect_trend(values)
    seasonality = statistics.detect_seasonality(
        values,
        periods=options.seasonality_periods,
        threshold=options.seasonality_threshold,
    )

    fit = statistics.linear_regression(index, values)
    fitted = fit.slope * index + fit.intercept

    seasonal: Optional[Tuple[float, ...]] = None
    period = seasonality.period
    if options.include_seasonality and seasonality.detected and period:
        seasonal = _seasonal_adjustments(values - fitted, period)
        fitted = fitted + np.array([seasonal[i % period] for i in range(n)])

    residual_std = statistics.std_dev(values - fitted)
    z_values = [(level, statistics.z_for_level(level)) for level in options.confidence_levels]

    predictions = []
    for step, future_date in enumerate(_future_dates([p.date for p in series], horizon), start=1):
        future_index = n - 1 + step
        predicted = fit.predict(future_index)
        if seasonal is not None:
            predicted += seasonal[future_index % period]

        spread = residual_std * math.sqrt(step)
        predictions.append(ForecastPrediction(
            date=future_date,
            predicted_value=predicted,
            confidence_intervals=tuple(
                ConfidenceInterval(level=level, lower=predicted - z * spread, upper=predicted + z * spread)
                for level, z in z_values
            ),
        ))

    expected_accuracy = min(
        options.accuracy_ceiling,
        max(options.accuracy_floor, fit.r_squared * 100),
    )

    logger.debug(
        "Forecast generated",
        points=n,
        horizon=horizon,
        trend=trend.value,
        seasonal_period=period if seasonal is not None else None,
        residual_std=residual_std,
        expected_accuracy=expected_accuracy,
    )

    return ForecastResult(
        predictions=tuple(predictions),
        trend=trend,
        seasonality=SeasonalityInfo(
            detected=seasonality.detected,
            period=period,
            description=_describe_seasonality(seasonality.detected, period),
        ),
        expected_accuracy=expected_accuracy,
        methodology=SEASONAL_METHODOLOGY if seasonal is not None else TREND_METHODOLOGY,
    )
