"""
Anomaly Detector

Flags historical points that deviate from a statistical baseline:
- Baseline from a least-squares trend line (default) or the global mean, so a
  legitimately growing series does not flag its own growth
- Each residual is scored against the other points' residuals
- Severity, templated explanation and remediation prompts per anomaly
"""

import math
from typing import List, Optional, Sequence

import numpy as np
import structlog

from ..models.data_models import (
    AnomalyOptions,
    AnomalySeverity,
    BaselineMethod,
    TimeSeriesPoint,
)
from ..models.response_models import Anomaly, AnomalyDetectionResult
from ..utils import statistics

logger = structlog.get_logger(__name__)

MIN_ANOMALY_POINTS = 2
CRITICAL_Z = 4.0
MODERATE_Z = 3.0

# Residual spreads below this fraction of the data's magnitude are float noise
RELATIVE_TOLERANCE = 1e-9

SPIKE = "spike"
DROP = "drop"

SUGGESTED_ACTIONS = {
    (AnomalySeverity.CRITICAL, SPIKE): (
        "Investigate data entry error or duplicated records for this date",
        "Identify the one-time event behind the spike, such as a major gift or campaign",
        "Exclude the point from baselines and targets if it will not recur",
    ),
    (AnomalySeverity.CRITICAL, DROP): (
        "Investigate data entry error or a missing import for this period",
        "Confirm whether a recurring gift, campaign or data feed stopped",
        "Escalate to the owner of this metric",
    ),
    (AnomalySeverity.MODERATE, SPIKE): (
        "Review for a one-time event such as an appeal, grant or event",
        "Confirm the amount against source records",
    ),
    (AnomalySeverity.MODERATE, DROP): (
        "Compare with the same period in earlier years for a seasonal dip",
        "Review donor and campaign activity around this date",
    ),
    (AnomalySeverity.MINOR, SPIKE): (
        "Monitor the next few periods to see whether the increase holds",
    ),
    (AnomalySeverity.MINOR, DROP): (
        "Monitor the next few periods to see whether the decline persists",
    ),
}


def classify_severity(score: float) -> AnomalySeverity:
    magnitude = abs(score)
    if magnitude >= CRITICAL_Z:
        return AnomalySeverity.CRITICAL
    if magnitude >= MODERATE_Z:
        return AnomalySeverity.MODERATE
    return AnomalySeverity.MINOR


def _methodology(options: AnomalyOptions) -> str:
    if options.baseline == BaselineMethod.GLOBAL_MEAN:
        baseline = "Global mean baseline"
    else:
        baseline = "Linear trend baseline"
    return f"{baseline} with leave-one-out residual z-scores ({options.threshold:g}-sigma threshold)"


def _expected_values(values: np.ndarray, baseline: BaselineMethod) -> np.ndarray:
    if baseline == BaselineMethod.GLOBAL_MEAN:
        return np.full(values.size, statistics.mean(values))
    index = np.arange(values.size)
    fit = statistics.linear_regression(index, values)
    return fit.slope * index + fit.intercept


def _residual_scores(residuals: np.ndarray, tolerance: float) -> List[float]:
    """z-score of each residual against the mean and spread of all the others

    A point cannot sit far outside a distribution that includes itself when
    the sample is small, so each point is left out of its own reference.
    When the others are perfectly flat, the spread of the full set is used.
    """
    n = residuals.size
    overall = statistics.std_dev(residuals)
    if overall <= tolerance:
        return [0.0] * n

    total = float(residuals.sum())
    total_sq = float(np.sum(residuals * residuals))

    scores = []
    for residual in residuals.tolist():
        others_mean = (total - residual) / (n - 1)
        others_var = max(0.0, (total_sq - residual * residual) / (n - 1) - others_mean ** 2)
        spread = math.sqrt(others_var)
        if spread <= tolerance:
            spread = overall
        scores.append(statistics.z_score(residual, others_mean, spread))
    return scores


def _explain(point: TimeSeriesPoint, expected: float, percent: float, score: float, direction: str) -> str:
    relation = "above" if direction == SPIKE else "below"
    return (
        f"{direction.capitalize()} on {point.date.isoformat()}: {point.value:,.2f} is "
        f"{abs(percent):.1f}% {relation} the expected {expected:,.2f} "
        f"({abs(score):.1f} standard deviations from the baseline)"
    )


def detect_anomalies(
    series: Sequence[TimeSeriesPoint],
    options: Optional[AnomalyOptions] = None,
) -> AnomalyDetectionResult:
    """Flag points whose residual z-score reaches the threshold

    Empty and single-point series yield an empty result rather than an error.
    """
    options = options or AnomalyOptions()
    methodology = _methodology(options)
    n = len(series)

    if n < MIN_ANOMALY_POINTS:
        return AnomalyDetectionResult(
            anomalies=(),
            anomaly_rate=0.0,
            methodology=methodology,
            total_data_points=n,
        )

    values = np.array([point.value for point in series], dtype=float)
    expected = _expected_values(values, options.baseline)
    residuals = values - expected

    tolerance = RELATIVE_TOLERANCE * max(1.0, float(np.max(np.abs(values))))
    scores = _residual_scores(residuals, tolerance)

    anomalies = []
    for index, score in enumerate(scores):
        if abs(score) < options.threshold:
            continue

        point = series[index]
        expected_value = float(expected[index])
        percent = statistics.percentage_change(expected_value, point.value)
        direction = SPIKE if point.value >= expected_value else DROP
        severity = classify_severity(score)

        anomalies.append(Anomaly(
            index=index,
            date=point.date,
            value=point.value,
            expected_value=expected_value,
            deviation=point.value - expected_value,
            deviation_percentage=percent,
            z_score=score,
            severity=severity,
            explanation=_explain(point, expected_value, percent, score, direction),
            suggested_actions=SUGGESTED_ACTIONS[(severity, direction)],
        ))

    anomaly_rate = 100.0 * len(anomalies) / n

    logger.debug(
        "Anomaly detection completed",
        points=n,
        anomalies=len(anomalies),
        anomaly_rate=anomaly_rate,
        baseline=options.baseline.value,
    )

    return AnomalyDetectionResult(
        anomalies=tuple(anomalies),
        anomaly_rate=anomaly_rate,
        methodology=methodology,
        total_data_points=n,
    )
