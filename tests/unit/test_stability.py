"""
Unit Tests for Motion Stability Scoring

Tests for tremor and balance scoring, categories, No Data handling and
window aggregation.
"""
import numpy as np
import pytest

from vitalsense.core.extraction.base import (
    AlertLevel,
    AssessmentKind,
    ResultStatus,
    StabilityResult,
)
from vitalsense.core.extraction.cns import (
    MotionStabilityAnalyzer,
    Polarity,
    VarianceMode,
    categorize_balance,
    categorize_tremor,
)
from vitalsense.core.ingestion.window import PoseWindow, Sample
from vitalsense.utils import InsufficientDataError


def _result(window_id, score):
    if score is None:
        return StabilityResult(window_id, ResultStatus.INSUFFICIENT_DATA, None, None,
                               "No Data", AlertLevel.ERROR)
    category, alert = categorize_balance(score)
    return StabilityResult(window_id, ResultStatus.COMPLETE, score, 100.0 - score, category, alert)


class TestInstability:
    """Tests for the variance-to-instability mapping."""

    def test_constant_magnitude_is_stable(self):
        """Test zero variance gives zero instability."""
        analyzer = MotionStabilityAnalyzer(Polarity.TREMOR, scale=100)

        instability, components = analyzer.instability(np.full(50, 9.81))

        assert instability == 0.0
        assert components["variance"] == 0.0

    def test_clamped_to_100(self):
        """Test large variance is clamped."""
        analyzer = MotionStabilityAnalyzer(Polarity.TREMOR, scale=100)
        magnitudes = np.tile([0.0, 10.0], 25)

        instability, _ = analyzer.instability(magnitudes)

        assert instability == 100.0

    def test_first_difference_mode(self):
        """Test variance of successive differences."""
        analyzer = MotionStabilityAnalyzer(
            Polarity.TREMOR, scale=1, variance_mode=VarianceMode.FIRST_DIFFERENCE
        )
        ramp = np.arange(20, dtype=float)

        instability, _ = analyzer.instability(ramp)

        assert instability == pytest.approx(0.0)

    def test_too_few_samples(self):
        """Test fewer than 10 samples raises InsufficientDataError."""
        analyzer = MotionStabilityAnalyzer.for_tremor()

        with pytest.raises(InsufficientDataError):
            analyzer.instability(np.ones(9))


class TestTremorAnalysis:
    """Tests for tremor windows."""

    def test_monotonic_in_noise(self, pose_window_factory):
        """Test tremor score increases with inertial noise."""
        analyzer = MotionStabilityAnalyzer.for_tremor()
        scores = [
            analyzer.analyze(pose_window_factory("right", noise, 15.0, 50.0)).score
            for noise in (0.02, 0.2, 0.6)
        ]

        assert scores[0] < scores[1] < scores[2]

    def test_steady_hand(self, pose_window_factory):
        """Test a steady hand has no significant tremor."""
        result = MotionStabilityAnalyzer.for_tremor().analyze(
            pose_window_factory("right", 0.02, 15.0, 50.0)
        )

        assert result.category == "No Significant Tremor"
        assert result.alert_level == AlertLevel.SUCCESS
        assert {"intensity", "frequency", "regularity", "signal_quality"} <= set(result.components)

    def test_no_data(self):
        """Test an almost empty window reports No Data."""
        window = PoseWindow("left", 15.0, 50.0)
        for i in range(5):
            window.push(Sample(i * 0.02, (0.0, 0.0, 9.81)))

        result = MotionStabilityAnalyzer.for_tremor().analyze(window)

        assert result.status == ResultStatus.INSUFFICIENT_DATA
        assert result.score is None
        assert result.category == "No Data"
        assert result.alert_level == AlertLevel.ERROR
        assert result.sample_count == 5

    def test_aggregate_takes_worst_hand(self, pose_window_factory):
        """Test overall tremor is the maximum over hands."""
        analyzer = MotionStabilityAnalyzer.for_tremor()
        windows = [
            pose_window_factory("right", 0.02, 15.0, 50.0),
            pose_window_factory("left", 1.0, 15.0, 50.0, seed=1),
        ]

        assessment = analyzer.assess(windows)

        assert assessment.kind == AssessmentKind.TREMOR
        assert assessment.status == ResultStatus.COMPLETE
        assert assessment.overall_score == max(w.score for w in assessment.windows)
        assert assessment.category == "Significant Tremor"
        assert assessment.needs_doctor


class TestBalanceAnalysis:
    """Tests for balance windows."""

    def test_monotonic_in_noise(self, pose_window_factory):
        """Test balance score decreases with inertial noise."""
        analyzer = MotionStabilityAnalyzer.for_balance()
        scores = [
            analyzer.analyze(pose_window_factory("Standing", noise)).score
            for noise in (0.1, 1.0, 3.0)
        ]

        assert scores[0] > scores[1] > scores[2]

    def test_still_pose_is_excellent(self, pose_window_factory):
        """Test a still pose scores excellent balance."""
        result = MotionStabilityAnalyzer.for_balance().analyze(pose_window_factory("Standing", 0.05))

        assert result.score >= 80
        assert result.category == "Excellent Balance"

    def test_drift_removed(self):
        """Test slow postural drift does not count as instability."""
        window = PoseWindow("Standing", 10.0, 20.0)
        for i in range(200):
            t = i / 20.0
            window.push(Sample(t, (0.0, 0.0, 9.81 + 0.5 * t)))

        result = MotionStabilityAnalyzer.for_balance().analyze(window)

        assert result.score >= 95

    def test_weighted_renormalised(self):
        """Test weights renormalise over poses with data."""
        analyzer = MotionStabilityAnalyzer.for_balance()
        results = [_result("Standing", 90), _result("One Leg", None), _result("Eyes Closed", 60)]

        assessment = analyzer.aggregate(results, weights=[0.2, 0.4, 0.4])

        assert assessment.overall_score == 70
        assert assessment.category == "Good Balance"
        assert assessment.status == ResultStatus.PARTIAL
        assert not assessment.needs_doctor

    def test_poor_balance_needs_doctor(self):
        """Test overall below 40 flags a referral."""
        analyzer = MotionStabilityAnalyzer.for_balance()
        results = [_result("Standing", 50), _result("One Leg", 30), _result("Eyes Closed", 20)]

        assessment = analyzer.aggregate(results, weights=[0.2, 0.4, 0.4])

        assert assessment.overall_score == 30
        assert assessment.category == "Poor Balance"
        assert assessment.alert_level == AlertLevel.DANGER
        assert assessment.needs_doctor

    def test_all_no_data(self):
        """Test aggregation without any data."""
        analyzer = MotionStabilityAnalyzer.for_balance()
        results = [_result("Standing", None), _result("One Leg", None)]

        assessment = analyzer.aggregate(results, weights=[0.5, 0.5])

        assert assessment.overall_score is None
        assert assessment.category == "No Data"
        assert assessment.alert_level == AlertLevel.ERROR
        assert assessment.status == ResultStatus.INSUFFICIENT_DATA

    def test_weight_length_mismatch(self):
        """Test misaligned weights are rejected."""
        analyzer = MotionStabilityAnalyzer.for_balance()

        with pytest.raises(ValueError):
            analyzer.aggregate([_result("Standing", 90)], weights=[0.5, 0.5])


class TestOrientationBalance:
    """Tests for gyroscope orientation-rate balance scoring."""

    def test_still_is_fully_stable(self):
        """Test zero orientation rate gives zero instability."""
        analyzer = MotionStabilityAnalyzer.for_balance_orientation()

        instability, components = analyzer.instability(np.zeros((20, 3)))

        assert instability == 0.0
        assert components["mean_abs_deviation"] == 0.0

    def test_constant_bias_ignored(self):
        """Test a constant gyroscope bias is not counted as sway."""
        analyzer = MotionStabilityAnalyzer.for_balance_orientation()

        instability, _ = analyzer.instability(np.tile([2.0, -1.0, 0.5], (20, 1)))

        assert instability == pytest.approx(0.0)

    def test_mean_absolute_deviation_scaled(self):
        """Test instability is the mean per-sample deviation norm times 5."""
        analyzer = MotionStabilityAnalyzer.for_balance_orientation()
        rates = np.tile([[1.0, 0.0, 0.0], [-1.0, 0.0, 0.0]], (10, 1))

        instability, components = analyzer.instability(rates)

        assert components["mean_abs_deviation"] == pytest.approx(1.0)
        assert instability == pytest.approx(5.0)

    def test_monotonic_in_noise(self, pose_window_factory):
        """Test orientation balance score decreases with rate noise."""
        analyzer = MotionStabilityAnalyzer.for_balance_orientation()
        scores = [
            analyzer.analyze(pose_window_factory("Standing", noise)).score
            for noise in (0.5, 2.0, 6.0)
        ]

        assert scores[0] > scores[1] > scores[2]

    def test_too_few_vectors(self):
        """Test fewer than 10 vectors reports No Data."""
        window = PoseWindow("Standing", 10.0, 20.0)
        for i in range(4):
            window.push(Sample(i * 0.05, (0.1, 0.0, 0.0)))

        result = MotionStabilityAnalyzer.for_balance_orientation().analyze(window)

        assert result.category == "No Data"
        assert result.sample_count == 4


class TestCategories:
    """Tests for category boundaries."""

    @pytest.mark.parametrize("score,category,alert", [
        (0, "No Significant Tremor", AlertLevel.SUCCESS),
        (19, "No Significant Tremor", AlertLevel.SUCCESS),
        (20, "Mild Tremor", AlertLevel.INFO),
        (40, "Moderate Tremor", AlertLevel.WARNING),
        (70, "Significant Tremor", AlertLevel.DANGER),
    ])
    def test_tremor(self, score, category, alert):
        """Test tremor bands."""
        assert categorize_tremor(score) == (category, alert)

    @pytest.mark.parametrize("score,category,alert", [
        (100, "Excellent Balance", AlertLevel.SUCCESS),
        (80, "Excellent Balance", AlertLevel.SUCCESS),
        (60, "Good Balance", AlertLevel.SUCCESS),
        (40, "Fair Balance", AlertLevel.WARNING),
        (39, "Poor Balance", AlertLevel.DANGER),
    ])
    def test_balance(self, score, category, alert):
        """Test balance bands."""
        assert categorize_balance(score) == (category, alert)
