"""
Unit Tests for the PPG Heart Rate Estimator

Tests for peak recovery, out-of-band rejection, smoothing, confidence and
the final report.
"""
import pytest

from vitalsense.core.extraction.base import Confidence, ResultStatus
from vitalsense.core.extraction.cardiovascular import HeartRateEstimator, categorize_heart_rate
from vitalsense.core.ingestion.window import Sample
from vitalsense.services import HeartRateSession
from vitalsense.utils import InsufficientDataError, OutOfRangeError


class TestHeartRateEstimator:
    """Tests for HeartRateEstimator."""

    def test_configuration(self):
        """Test derived constants at 30 Hz."""
        estimator = HeartRateEstimator()

        assert estimator.min_samples == 150
        assert estimator.min_peak_distance == 15
        assert estimator.detrend_radius == 30

    def test_recovers_72_bpm(self, ppg_samples):
        """Test a noisy 1.2 Hz pulse is recovered within 5 BPM."""
        estimator = HeartRateEstimator()

        reading = estimator.estimate(ppg_samples)

        assert abs(reading.bpm - 72) <= 5
        assert 0.0 <= reading.quality_score <= 1.0
        assert reading.timestamp == ppg_samples[-1].timestamp

    def test_recovers_other_rates(self, ppg_factory):
        """Test 90 BPM pulse recovery."""
        frames = ppg_factory(frequency=1.5, seed=7)
        samples = [Sample(ts, (r, g, b)) for ts, r, g, b in frames]

        reading = HeartRateEstimator().estimate(samples)

        assert abs(reading.bpm - 90) <= 5

    def test_rejects_slow_oscillation(self, slow_wave_samples):
        """Test a 0.3 Hz signal never yields a reading."""
        estimator = HeartRateEstimator()

        with pytest.raises((OutOfRangeError, InsufficientDataError)):
            estimator.estimate(slow_wave_samples)

        assert estimator.history == ()
        assert estimator.current_heart_rate is None

    @pytest.mark.parametrize("seed", range(5))
    def test_rejects_noisy_slow_oscillation(self, ppg_factory, seed):
        """Test a noisy 0.3 Hz signal streamed through a session never yields a reading."""
        session = HeartRateSession()
        for ts, r, g, b in ppg_factory(frequency=0.3, noise=0.5, seed=seed):
            session.on_color_sample(ts, r, g, b)
            session.tick(ts)

        result = session.stop()

        assert session.readings == []
        assert result.status == ResultStatus.NO_HEART_RATE_DETECTED
        assert result.heart_rate is None

    def test_poor_contact_suppresses_reading(self, ppg_factory):
        """Test a clean pulse with green not dominant is not accepted."""
        frames = ppg_factory(red_level=160.0)
        samples = [Sample(ts, (r, g, b)) for ts, r, g, b in frames]
        estimator = HeartRateEstimator()

        with pytest.raises(InsufficientDataError) as exc_info:
            estimator.estimate(samples)

        assert exc_info.value.details["contact"] == 0.2
        assert estimator.history == ()
        assert estimator.signal_quality <= 0.2

    def test_poor_contact_lowers_confidence(self, ppg_samples, ppg_factory):
        """Test losing contact keeps history but drops confidence to low."""
        estimator = HeartRateEstimator()
        for _ in range(5):
            estimator.estimate(ppg_samples)
        assert estimator.confidence() in (Confidence.HIGH, Confidence.MEDIUM)

        poor = [Sample(ts, (r, g, b)) for ts, r, g, b in ppg_factory(red_level=160.0)]
        with pytest.raises(InsufficientDataError):
            estimator.estimate(poor)

        assert len(estimator.history) == 5
        assert estimator.confidence() == Confidence.LOW

    def test_poor_contact_session_has_no_result(self, ppg_factory):
        """Test a session with poor contact throughout reports no heart rate."""
        session = HeartRateSession()
        for ts, r, g, b in ppg_factory(red_level=160.0):
            session.on_color_sample(ts, r, g, b)
            session.tick(ts)

        result = session.stop()

        assert result.status == ResultStatus.NO_HEART_RATE_DETECTED
        assert result.heart_rate is None
        assert result.confidence == Confidence.UNKNOWN
        assert result.frame_count == 450

    def test_insufficient_samples(self, ppg_samples):
        """Test fewer than 5 s of frames raises InsufficientDataError."""
        estimator = HeartRateEstimator()

        with pytest.raises(InsufficientDataError) as exc_info:
            estimator.estimate(ppg_samples[:100])

        assert exc_info.value.required == 150
        assert exc_info.value.available == 100

    def test_flat_signal_has_no_peaks(self):
        """Test a constant signal raises InsufficientDataError."""
        samples = [Sample(i / 30.0, (80.0, 150.0, 60.0)) for i in range(300)]

        with pytest.raises(InsufficientDataError):
            HeartRateEstimator().estimate(samples)

    def test_rolling_history(self, ppg_samples):
        """Test history is bounded and confidence rises as it fills."""
        estimator = HeartRateEstimator()

        first = estimator.estimate(ppg_samples)
        assert first.confidence == Confidence.LOW

        for _ in range(6):
            last = estimator.estimate(ppg_samples)

        assert len(estimator.history) == 5
        assert last.confidence in (Confidence.HIGH, Confidence.MEDIUM)

    def test_confidence_unknown_without_reading(self):
        """Test no reading means unknown confidence."""
        assert HeartRateEstimator().confidence() == Confidence.UNKNOWN

    def test_reading_never_out_of_range(self, ppg_samples):
        """Test emitted readings stay within 40-200 BPM."""
        estimator = HeartRateEstimator()
        reading = estimator.estimate(ppg_samples)

        assert 40 <= reading.bpm <= 200

    def test_reset(self, ppg_samples):
        """Test reset clears history."""
        estimator = HeartRateEstimator()
        estimator.estimate(ppg_samples)
        estimator.reset()

        assert estimator.history == ()
        assert estimator.current_heart_rate is None


class TestHeartRateReport:
    """Tests for the finalized heart-rate record."""

    def test_no_heart_rate_detected(self):
        """Test a session without readings reports frame count and duration."""
        result = HeartRateEstimator().report(frame_count=120, duration=4.0)

        assert result.status == ResultStatus.NO_HEART_RATE_DETECTED
        assert result.heart_rate is None
        assert result.confidence == Confidence.UNKNOWN
        assert result.frame_count == 120
        assert result.frame_rate == pytest.approx(30.0)

    def test_complete_report(self, ppg_samples):
        """Test report after a reading carries a category."""
        estimator = HeartRateEstimator()
        reading = estimator.estimate(ppg_samples)

        result = estimator.report(frame_count=450, duration=15.0, readings=[reading])

        assert result.status == ResultStatus.COMPLETE
        assert result.heart_rate == reading.bpm
        assert result.category == "Normal"
        data = result.to_dict()
        assert data["kind"] == "heart_rate"
        assert len(data["readings"]) == 1

    def test_partial_report(self, ppg_samples):
        """Test partial flag propagates to status."""
        estimator = HeartRateEstimator()
        estimator.estimate(ppg_samples)

        result = estimator.report(frame_count=450, duration=15.0, partial=True)

        assert result.status == ResultStatus.PARTIAL


class TestHeartRateCategory:
    """Tests for resting heart-rate categories."""

    @pytest.mark.parametrize("bpm,category", [
        (50, "Bradycardia"),
        (60, "Normal"),
        (100, "Normal"),
        (110, "Elevated"),
        (120, "Elevated"),
        (130, "Tachycardia"),
    ])
    def test_categories(self, bpm, category):
        """Test category boundaries."""
        assert categorize_heart_rate(bpm)[0] == category
