"""
Unit tests for the anomaly detector
"""

import pytest
from pydantic import ValidationError

from insights_engine.models import (
    AnomalyDetectionResult,
    AnomalyOptions,
    AnomalySeverity,
    BaselineMethod,
)
from insights_engine.tools.anomaly_detection import classify_severity, detect_anomalies
from tests.fixtures.test_data import DONATIONS_WITH_DROP, LINEAR_GROWTH, SeriesFactory


class TestSpikeDetection:
    """Test the single-spike donation series"""

    def test_exactly_one_anomaly(self, spike_series):
        result = detect_anomalies(spike_series)

        assert len(result.anomalies) == 1
        anomaly = result.anomalies[0]
        assert anomaly.index == 5
        assert anomaly.value == 500
        assert anomaly.date.isoformat() == "2024-01-06"

    def test_expected_value_from_trend_line(self, spike_series):
        anomaly = detect_anomalies(spike_series).anomalies[0]

        assert anomaly.expected_value == pytest.approx(171.2143, abs=1e-3)
        assert anomaly.deviation == pytest.approx(500 - anomaly.expected_value)
        assert anomaly.deviation_percentage == pytest.approx(192.03, abs=0.01)

    def test_severity_and_guidance(self, spike_series):
        anomaly = detect_anomalies(spike_series).anomalies[0]

        assert anomaly.z_score > 4
        assert anomaly.severity == AnomalySeverity.CRITICAL
        assert anomaly.explanation.startswith("Spike on 2024-01-06")
        assert anomaly.suggested_actions[0] == "Investigate data entry error or duplicated records for this date"

    def test_summary(self, spike_series):
        result = detect_anomalies(spike_series)

        assert result.anomaly_rate == pytest.approx(12.5)
        assert result.total_data_points == 8
        assert result.methodology.startswith("Linear trend baseline")
        assert result.ai_analysis is None

    def test_global_mean_baseline(self, spike_series):
        options = AnomalyOptions(baseline=BaselineMethod.GLOBAL_MEAN)
        result = detect_anomalies(spike_series, options)

        assert [a.index for a in result.anomalies] == [5]
        assert result.anomalies[0].expected_value == pytest.approx(150.0)
        assert result.anomalies[0].severity == AnomalySeverity.CRITICAL
        assert result.methodology.startswith("Global mean baseline")


class TestDropDetection:
    """Test a collapse in an otherwise steady series"""

    def test_drop_is_flagged(self):
        result = detect_anomalies(SeriesFactory.points(DONATIONS_WITH_DROP))

        assert [a.index for a in result.anomalies] == [5]
        anomaly = result.anomalies[0]
        assert anomaly.z_score < 0
        assert anomaly.deviation < 0
        assert anomaly.deviation_percentage < 0
        assert anomaly.explanation.startswith("Drop on 2024-01-06")
        assert anomaly.severity == AnomalySeverity.CRITICAL


class TestMultipleAnomalies:
    """Test ordering and severity with more than one flagged point"""

    def test_ascending_index_order(self):
        values = [100, 102, 98, 101, 99, 500, 103, 97, 100, -300, 101, 99]
        options = AnomalyOptions(baseline=BaselineMethod.GLOBAL_MEAN)
        result = detect_anomalies(SeriesFactory.points(values), options)

        assert [a.index for a in result.anomalies] == [5, 9]
        assert all(a.severity == AnomalySeverity.MODERATE for a in result.anomalies)
        assert result.anomalies[1].deviation_percentage == pytest.approx(-400.0)
        assert result.anomaly_rate == pytest.approx(100 * 2 / 12)


class TestQuietSeries:
    """Test series with nothing to flag"""

    def test_empty(self):
        result = detect_anomalies([])

        assert result.anomalies == ()
        assert result.anomaly_rate == 0.0
        assert result.total_data_points == 0
        assert result.methodology

    def test_single_point(self):
        result = detect_anomalies(SeriesFactory.points([42]))
        assert result.anomalies == ()
        assert result.total_data_points == 1

    def test_constant(self):
        assert detect_anomalies(SeriesFactory.points([7] * 20)).anomalies == ()

    def test_linear_growth_is_not_anomalous(self):
        assert detect_anomalies(SeriesFactory.points(LINEAR_GROWTH)).anomalies == ()

    def test_rate_is_a_percentage(self, spike_series):
        result = detect_anomalies(spike_series, AnomalyOptions(threshold=0.1))
        assert 0.0 <= result.anomaly_rate <= 100.0


class TestSeverity:
    """Test severity thresholds"""

    @pytest.mark.parametrize("score,severity", [
        (4.0, AnomalySeverity.CRITICAL),
        (-4.5, AnomalySeverity.CRITICAL),
        (3.0, AnomalySeverity.MODERATE),
        (-3.9, AnomalySeverity.MODERATE),
        (2.5, AnomalySeverity.MINOR),
    ])
    def test_classify_severity(self, score, severity):
        assert classify_severity(score) == severity

    def test_minor_anomalies_with_lower_threshold(self):
        values = [10, 11, 10, 11, 10, 11, 10, 16, 10, 11]
        result = detect_anomalies(SeriesFactory.points(values), AnomalyOptions(threshold=2.0))

        assert result.anomalies
        assert all(abs(a.z_score) >= 2.0 for a in result.anomalies)

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValidationError):
            AnomalyOptions(threshold=0)


class TestAnomalyDeterminism:
    """Test purity of detection"""

    def test_same_input_same_output(self, spike_series):
        assert detect_anomalies(spike_series) == detect_anomalies(spike_series)

    def test_json_round_trip(self, spike_series):
        result = detect_anomalies(spike_series)
        assert AnomalyDetectionResult.model_validate(result.to_json_dict()) == result
