"""
Signal Quality Assessment Module

Computes quality metrics for camera PPG and inertial windows using
physics-based analysis of the raw samples.
NO ML/AI - purely signal processing based.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
from enum import Enum
import numpy as np

from vitalsense.core.extraction.base import Confidence
from vitalsense.utils import get_logger

logger = get_logger(__name__)


class Modality(str, Enum):
    """Sensing modalities."""
    CAMERA = "camera"
    MOTION = "motion"


@dataclass
class ModalityQualityScore:
    """Quality assessment for a single modality window."""
    modality: Modality
    contact: float = 0.0           # 0-1: sensor placement (finger over lens)
    consistency: float = 0.0       # 0-1: regularity of detected beats
    continuity: float = 0.0        # 0-1: temporal regularity of samples
    coverage: float = 0.0          # 0-1: received vs expected sample count
    overall_quality: float = 0.0   # 0-1: aggregate

    issues: List[str] = field(default_factory=list)

    def compute_overall(self) -> float:
        """Aggregate per-modality components into one score."""
        if self.modality == Modality.CAMERA:
            # Both sources must be good for a trustworthy pulse reading
            self.overall_quality = self.contact * self.consistency
        else:
            self.overall_quality = 0.5 * self.continuity + 0.5 * self.coverage
        return self.overall_quality

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "modality": self.modality.value,
            "contact": round(self.contact, 3),
            "consistency": round(self.consistency, 3),
            "continuity": round(self.continuity, 3),
            "coverage": round(self.coverage, 3),
            "overall_quality": round(self.overall_quality, 3),
            "issues": self.issues
        }


class SignalQualityAssessor:
    """
    Assesses PPG and inertial signal quality.

    Uses physics-based signal processing - NO ML/AI.
    """

    # Contact thresholds on raw channel means (0-255 scale)
    MIN_GREEN_LEVEL = 50.0
    CHANNEL_MARGIN = 10.0
    # At or below this contact score no reading is accepted
    POOR_CONTACT = 0.2

    # Interval variance bounds in samples^2: <= HIGH is clean, >= LOW is unusable
    HIGH_QUALITY_VARIANCE = 1.0
    LOW_QUALITY_VARIANCE = 10.0

    def __init__(self):
        """Initialize assessor."""
        self._assessment_count = 0

    def contact_quality(self, red: float, green: float, blue: float) -> float:
        """
        Score finger placement from colour-channel separation.

        Green must clear a minimum level and exceed red and blue by a margin.

        Returns:
            0.1 no finger, 0.2 poor, 0.5 moderate, 0.9 good
        """
        if green < self.MIN_GREEN_LEVEL:
            return 0.1
        if green > red + self.CHANNEL_MARGIN and green > blue + self.CHANNEL_MARGIN:
            return 0.9
        if green > red and green > blue:
            return 0.5
        return 0.2

    def interval_quality(self, variance: float) -> float:
        """
        Map inter-peak interval variance to a 0-1 consistency score.

        Linear between HIGH_QUALITY_VARIANCE (1.0) and LOW_QUALITY_VARIANCE (0.0).
        """
        if variance <= self.HIGH_QUALITY_VARIANCE:
            return 1.0
        if variance >= self.LOW_QUALITY_VARIANCE:
            return 0.0
        span = self.LOW_QUALITY_VARIANCE - self.HIGH_QUALITY_VARIANCE
        return 1.0 - (variance - self.HIGH_QUALITY_VARIANCE) / span

    def assess_ppg(
        self,
        rgb: np.ndarray,
        intervals: np.ndarray
    ) -> ModalityQualityScore:
        """
        Assess camera PPG quality for one evaluation window.

        Args:
            rgb: (N, 3) raw channel means per frame
            intervals: Inter-peak intervals in samples

        Returns:
            ModalityQualityScore for camera
        """
        score = ModalityQualityScore(modality=Modality.CAMERA)
        issues = []

        rgb = np.asarray(rgb, dtype=np.float64)
        if rgb.ndim != 2 or rgb.shape[0] == 0:
            score.issues = ["No colour samples provided"]
            return score

        red, green, blue = (float(c) for c in rgb.mean(axis=0))
        score.contact = self.contact_quality(red, green, blue)
        if score.contact <= self.POOR_CONTACT:
            issues.append("Poor finger contact - green channel not dominant")

        intervals = np.asarray(intervals, dtype=np.float64)
        if intervals.size > 0:
            variance = float(np.var(intervals))
            score.consistency = self.interval_quality(variance)
            if score.consistency < 0.5:
                issues.append(f"Irregular beat intervals (variance={variance:.2f})")
        else:
            issues.append("Not enough beats to judge regularity")

        score.continuity = 1.0
        score.coverage = 1.0
        score.issues = issues
        score.compute_overall()
        self._assessment_count += 1

        return score

    def confidence(
        self,
        history_len: int,
        history_size: int,
        bpm: Optional[float],
        quality: float,
        confident_range: tuple = (40.0, 180.0)
    ) -> Confidence:
        """
        Label confidence for the current heart-rate estimate.

        Product of history fill, a range factor (1.0 inside ``confident_range``
        else 0.5) and the signal-quality score.
        """
        if not bpm:
            return Confidence.UNKNOWN
        history_factor = min(1.0, history_len / float(history_size))
        range_factor = 1.0 if confident_range[0] <= bpm <= confident_range[1] else 0.5
        value = history_factor * range_factor * quality

        if value > 0.8:
            return Confidence.HIGH
        if value > 0.5:
            return Confidence.MEDIUM
        return Confidence.LOW

    def assess_motion(
        self,
        timestamps: np.ndarray,
        expected_rate: float,
        target_duration: float
    ) -> ModalityQualityScore:
        """
        Assess inertial window quality.

        Checks:
        - Sample timing regularity (interval coefficient of variation)
        - Coverage of the expected sample count

        Args:
            timestamps: Sample timestamps in seconds
            expected_rate: Nominal sample rate in Hz
            target_duration: Intended window duration in seconds

        Returns:
            ModalityQualityScore for motion
        """
        score = ModalityQualityScore(modality=Modality.MOTION)
        issues = []

        timestamps = np.asarray(timestamps, dtype=np.float64)
        if timestamps.size == 0:
            score.issues = ["No inertial samples provided"]
            return score

        if timestamps.size >= 2:
            intervals = np.diff(timestamps)
            expected_interval = np.median(intervals)
            if expected_interval > 0:
                variation = float(np.std(intervals) / expected_interval)
                score.continuity = float(np.clip(1.0 - variation, 0, 1))
                if variation > 0.3:
                    issues.append(f"Sample timing unstable (CV={variation:.2f})")
            else:
                score.continuity = 0.5

        expected = expected_rate * target_duration
        if expected > 0:
            score.coverage = float(np.clip(timestamps.size / expected, 0, 1))
            if score.coverage < 0.9:
                issues.append(f"Sample dropouts detected ({(1 - score.coverage) * 100:.1f}%)")

        score.issues = issues
        score.compute_overall()
        self._assessment_count += 1

        return score
