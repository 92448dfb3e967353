"""
Cardiovascular Extractor - Camera PPG Heart Rate

Extracts heart rate from fingertip-over-camera colour samples:
- Green channel (best pulsatile SNR for this setup)
- Moving-average detrend, one-pole band-pass (0.5-4 Hz)
- Peak picking with a minimum 0.5 s spacing
- Rolling mean over the last accepted readings, with a confidence label
"""
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Sequence, Tuple
import math
import numpy as np

from vitalsense.config import settings
from vitalsense.core.ingestion.window import Sample
from vitalsense.core.validation import PlausibilityValidator, SignalQualityAssessor
from vitalsense.utils import get_logger, InsufficientDataError
from .base import (
    Confidence,
    HeartRateReading,
    HeartRateResult,
    ResultStatus,
)
from .filters import BandpassFilter, PeakSet, detrend, find_peaks

logger = get_logger(__name__)

GREEN = 1


@dataclass(frozen=True)
class PulseAnalysis:
    """Intermediate products of one pipeline run."""
    filtered: np.ndarray
    peaks: PeakSet
    mean_interval: float       # seconds, 0.0 when fewer than two peaks
    interval_variance: float   # samples^2

    @property
    def bpm(self) -> float:
        return 60.0 / self.mean_interval if self.mean_interval > 0 else 0.0


def categorize_heart_rate(bpm: int) -> Tuple[str, str]:
    """Resting heart-rate category and a plain-language message."""
    if bpm < 60:
        return (
            "Bradycardia",
            "Your heart rate is below the typical resting range (60-100 BPM). "
            "This can be normal for athletes or during sleep."
        )
    if bpm <= 100:
        return "Normal", "Your heart rate is within the typical resting range (60-100 BPM)."
    if bpm <= 120:
        return (
            "Elevated",
            "Your heart rate is elevated above the typical resting range. "
            "This can be normal during light activity or stress."
        )
    return (
        "Tachycardia",
        "Your heart rate is significantly elevated above the typical resting range. "
        "This can be normal during exercise."
    )


class HeartRateEstimator:
    """
    PPG heart-rate pipeline with a rolling-average smoother.

    ``estimate`` is called by the owning session on each recompute with a
    snapshot of its SampleWindow. Failed cycles raise and leave the rolling
    history untouched.
    """

    def __init__(
        self,
        sample_rate: Optional[float] = None,
        history_size: Optional[int] = None,
        min_seconds: Optional[float] = None
    ):
        """
        Initialize estimator.

        Args:
            sample_rate: Nominal camera frame rate in Hz (default 30)
            history_size: Number of accepted readings averaged (default 5)
            min_seconds: Buffered seconds required before estimating (default 5)
        """
        self.sample_rate = sample_rate or settings.ppg_sample_rate
        self.history_size = history_size or settings.ppg_history_size
        self.min_samples = int(self.sample_rate * (min_seconds or settings.ppg_min_seconds))

        self.detrend_radius = int(round(self.sample_rate))  # 1-second window
        self.min_peak_distance = int(math.floor(self.sample_rate * settings.ppg_peak_distance_seconds))
        self.peak_threshold_factor = settings.ppg_peak_threshold_factor
        self.bandpass = BandpassFilter(
            settings.ppg_low_cutoff_hz, settings.ppg_high_cutoff_hz, self.sample_rate
        )

        self.quality_assessor = SignalQualityAssessor()
        self.validator = PlausibilityValidator()

        self._history: Deque[float] = deque(maxlen=self.history_size)
        self.current_heart_rate: Optional[int] = None
        self.signal_quality = 0.0

    def reset(self) -> None:
        self._history.clear()
        self.current_heart_rate = None
        self.signal_quality = 0.0

    @property
    def history(self) -> Tuple[float, ...]:
        return tuple(self._history)

    def process_signal(self, signal_data: np.ndarray) -> PulseAnalysis:
        """
        Detrend, band-pass and peak-pick a raw channel series.

        Args:
            signal_data: Raw green-channel means

        Returns:
            PulseAnalysis with peaks and interval statistics
        """
        detrended = detrend(signal_data, self.detrend_radius)
        filtered = self.bandpass.apply(detrended)
        peaks = find_peaks(filtered, self.min_peak_distance, self.peak_threshold_factor)

        intervals = peaks.intervals()
        if intervals.size == 0:
            return PulseAnalysis(filtered, peaks, 0.0, 0.0)

        mean_samples = float(np.mean(intervals))
        variance = float(np.mean((intervals - mean_samples) ** 2))
        return PulseAnalysis(filtered, peaks, mean_samples / self.sample_rate, variance)

    def estimate(self, samples: Sequence[Sample]) -> HeartRateReading:
        """
        Run one recompute cycle over a window snapshot.

        Args:
            samples: Colour samples with (r, g, b) values

        Returns:
            The reading emitted after smoothing

        Raises:
            InsufficientDataError: too few samples or peaks, poor contact, or
                beat intervals too irregular to trust
            OutOfRangeError: candidate BPM outside physiological bounds
        """
        if len(samples) < self.min_samples:
            raise InsufficientDataError(
                f"Need {self.min_samples} frames before estimating heart rate",
                available=len(samples),
                required=self.min_samples,
            )

        rgb = np.array([s.value for s in samples], dtype=np.float64)
        analysis = self.process_signal(rgb[:, GREEN])

        if len(analysis.peaks) < 2:
            raise InsufficientDataError(
                "Fewer than two pulse peaks in window",
                available=len(analysis.peaks),
                required=2,
            )

        quality = self.quality_assessor.assess_ppg(rgb, analysis.peaks.intervals())
        self.signal_quality = quality.overall_quality
        if quality.issues:
            logger.debug(f"PPG quality issues: {'; '.join(quality.issues)}")

        # Weak contact or noise-driven peaks suppress the cycle; history is kept
        if quality.contact <= self.quality_assessor.POOR_CONTACT:
            raise InsufficientDataError(
                "Poor finger contact, reading suppressed",
                available=len(analysis.peaks),
                required=2,
                details={"contact": quality.contact},
            )
        if quality.consistency <= 0.0:
            raise InsufficientDataError(
                "Beat intervals too irregular for a reading",
                available=len(analysis.peaks),
                required=2,
                details={"interval_variance": round(analysis.interval_variance, 2)},
            )

        candidate = self.validator.check("heart_rate", analysis.bpm)

        self._history.append(candidate)
        self.current_heart_rate = int(round(sum(self._history) / len(self._history)))

        reading = HeartRateReading(
            bpm=self.current_heart_rate,
            confidence=self.confidence(),
            quality_score=self.signal_quality,
            timestamp=samples[-1].timestamp,
        )
        logger.debug(
            f"Heart rate candidate {candidate:.1f} bpm -> {reading.bpm} bpm "
            f"({reading.confidence.value}, quality={reading.quality_score:.2f})"
        )
        return reading

    def confidence(self) -> Confidence:
        return self.quality_assessor.confidence(
            history_len=len(self._history),
            history_size=self.history_size,
            bpm=self.current_heart_rate,
            quality=self.signal_quality,
        )

    def report(
        self,
        frame_count: int,
        duration: float,
        readings: Sequence[HeartRateReading] = (),
        partial: bool = False
    ) -> HeartRateResult:
        """
        Build the finalized session record.

        Args:
            frame_count: Frames received over the session
            duration: Elapsed session time in seconds
            readings: Readings emitted during the session
            partial: Session ended before its configured duration
        """
        frame_rate = frame_count / duration if duration > 0 else 0.0

        if self.current_heart_rate is None:
            return HeartRateResult(
                status=ResultStatus.NO_HEART_RATE_DETECTED,
                confidence=Confidence.UNKNOWN,
                quality_score=self.signal_quality,
                category="Unknown",
                message="Not enough data collected to determine heart rate.",
                frame_count=frame_count,
                duration=duration,
                frame_rate=frame_rate,
            )

        category, message = categorize_heart_rate(self.current_heart_rate)
        return HeartRateResult(
            status=ResultStatus.PARTIAL if partial else ResultStatus.COMPLETE,
            heart_rate=self.current_heart_rate,
            confidence=self.confidence(),
            quality_score=self.signal_quality,
            category=category,
            message=message,
            frame_count=frame_count,
            duration=duration,
            frame_rate=frame_rate,
            readings=list(readings),
        )
