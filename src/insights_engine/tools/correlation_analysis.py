"""
Correlation Analyzer

Ranks pairwise relationships between index-aligned metrics:
- Pearson coefficient for every unordered pair
- Strength and direction labels, with weak pairs filtered out
- Two-sided significance test of each coefficient
- Templated business implication and a suggested chart type per pair
"""

import math
from typing import List, Optional, Sequence

import numpy as np
import structlog
from scipy import stats

from ..exceptions import InsufficientData, ShapeMismatch
from ..models.data_models import (
    CorrelationDirection,
    CorrelationOptions,
    CorrelationStrength,
    MetricSeries,
    VisualizationType,
)
from ..models.response_models import CorrelationAnalysisResult, CorrelationPair
from ..utils import statistics

logger = structlog.get_logger(__name__)

MIN_METRICS = 2

MODERATE_THRESHOLD = 0.3
STRONG_THRESHOLD = 0.5
VERY_STRONG_THRESHOLD = 0.7


def classify_strength(coefficient: float) -> CorrelationStrength:
    magnitude = abs(coefficient)
    if magnitude < MODERATE_THRESHOLD:
        return CorrelationStrength.WEAK
    if magnitude < STRONG_THRESHOLD:
        return CorrelationStrength.MODERATE
    if magnitude < VERY_STRONG_THRESHOLD:
        return CorrelationStrength.STRONG
    return CorrelationStrength.VERY_STRONG


def correlation_p_value(coefficient: float, n: int) -> float:
    """Two-sided p-value for H0: rho = 0, using the t distribution with n-2 df"""
    if n <= 2:
        return 1.0
    if abs(coefficient) >= 1.0:
        return 0.0
    t_stat = coefficient * math.sqrt((n - 2) / (1 - coefficient ** 2))
    return float(min(1.0, 2 * stats.t.sf(abs(t_stat), n - 2)))


def suggest_visualization(
    first: MetricSeries,
    second: MetricSeries,
    first_std: float,
    second_std: float,
    scale_ratio_threshold: float,
) -> VisualizationType:
    if first.cumulative and second.cumulative:
        return VisualizationType.STACKED_AREA

    smaller, larger = sorted((first_std, second_std))
    if smaller > 0 and larger / smaller > scale_ratio_threshold:
        return VisualizationType.DUAL_AXIS_LINE

    return VisualizationType.SCATTER


def _business_implication(
    first: str,
    second: str,
    coefficient: float,
    strength: CorrelationStrength,
    direction: CorrelationDirection,
) -> str:
    if direction == CorrelationDirection.POSITIVE:
        return (
            f"{first} and {second} tend to rise and fall together "
            f"({strength.value} positive correlation, r = {coefficient:.2f}); "
            f"movement in one is a useful planning signal for the other."
        )
    return (
        f"{first} tends to fall when {second} rises "
        f"({strength.value} negative correlation, r = {coefficient:.2f}); "
        f"check whether one is drawing resources or attention from the other."
    )


def _validate_alignment(metrics: Sequence[MetricSeries], check_dates: bool) -> int:
    lengths = [len(metric) for metric in metrics]
    if len(set(lengths)) > 1:
        raise ShapeMismatch(
            "All metrics must have the same number of points",
            details={"lengths": dict(zip((metric.name for metric in metrics), lengths))},
        )

    length = lengths[0]
    if length == 0:
        raise ShapeMismatch("Metrics must contain at least one point")

    if check_dates:
        reference = metrics[0].dates()
        for metric in metrics[1:]:
            if metric.dates() != reference:
                raise ShapeMismatch(
                    f"Metric '{metric.name}' is not index-aligned with '{metrics[0].name}'",
                    details={"metric": metric.name, "reference": metrics[0].name},
                )
    return length


def find_correlations(
    metrics: Sequence[MetricSeries],
    options: Optional[CorrelationOptions] = None,
) -> CorrelationAnalysisResult:
    """Compute and rank all pairwise correlations between metrics

    Raises InsufficientData for fewer than two metrics and ShapeMismatch when
    the metrics are not index-aligned.
    """
    options = options or CorrelationOptions()

    if len(metrics) < MIN_METRICS:
        raise InsufficientData(
            f"Need at least {MIN_METRICS} metrics for correlation analysis, got {len(metrics)}",
            details={"required": MIN_METRICS, "received": len(metrics)},
        )

    length = _validate_alignment(metrics, options.require_date_alignment)
    matrix = np.array([metric.values() for metric in metrics], dtype=float)
    spreads = [statistics.std_dev(row) for row in matrix]

    pairs: List[CorrelationPair] = []
    total_pairs = 0

    for i in range(len(metrics)):
        for j in range(i + 1, len(metrics)):
            total_pairs += 1
            coefficient = statistics.pearson_correlation(matrix[i], matrix[j])
            if abs(coefficient) < options.min_coefficient:
                continue

            strength = classify_strength(coefficient)
            direction = (
                CorrelationDirection.POSITIVE if coefficient > 0 else CorrelationDirection.NEGATIVE
            )
            first, second = metrics[i], metrics[j]

            pairs.append(CorrelationPair(
                metric1=first.name,
                metric2=second.name,
                coefficient=coefficient,
                strength=strength,
                direction=direction,
                business_implication=_business_implication(
                    first.name, second.name, coefficient, strength, direction
                ),
                suggested_visualization=suggest_visualization(
                    first, second, spreads[i], spreads[j], options.scale_ratio_threshold
                ),
                p_value=correlation_p_value(coefficient, length),
            ))

    # sorted() is stable: equal magnitudes keep input order
    pairs = sorted(pairs, key=lambda pair: abs(pair.coefficient), reverse=True)

    logger.debug(
        "Correlation analysis completed",
        metrics=len(metrics),
        points=length,
        pairs=total_pairs,
        significant=len(pairs),
    )

    return CorrelationAnalysisResult(
        correlations=tuple(pairs),
        total_pairs_analyzed=total_pairs,
        significant_correlations=len(pairs),
        methodology=(
            f"Pearson correlation coefficient over {length} index-aligned points; "
            f"pairs with |r| >= {options.min_coefficient:g} reported"
        ),
    )
