"""
Central Nervous System (CNS) Motion Stability Extractor

Scores how still a hand or body was held from inertial samples:
- Tremor (two hands, accelerometer magnitude variance, higher = worse)
- Balance (three poses, drift-removed magnitude variance, or mean per-axis
  absolute deviation of gyroscope orientation rate, higher = better)

Each window's variance maps linearly onto a clamped 0-100 instability scale.
Hands combine by taking the worst (maximum) tremor score; poses combine by
a difficulty-weighted mean renormalised over poses that collected data.
"""
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
import numpy as np

from vitalsense.config import settings
from vitalsense.core.ingestion.window import PoseWindow
from vitalsense.core.validation import SignalQualityAssessor
from vitalsense.utils import get_logger, InsufficientDataError
from .base import (
    AlertLevel,
    AssessmentKind,
    ResultStatus,
    StabilityAssessment,
    StabilityResult,
)
from .filters import detrend

logger = get_logger(__name__)

NO_DATA_CATEGORY = "No Data"


class Polarity(str, Enum):
    """
    Direction of the reported score.

    STABILITY – score = 100 - instability (balance: higher is better)
    TREMOR    – score = instability (tremor: higher is worse)
    """
    STABILITY = "stability"
    TREMOR = "tremor"


class VarianceMode(str, Enum):
    """Statistic measured over the window's magnitude series."""
    MAGNITUDE = "magnitude"                # variance of magnitudes
    FIRST_DIFFERENCE = "first_difference"  # variance of successive differences
    ABS_DEVIATION = "abs_deviation"        # mean per-axis absolute deviation (orientation rate)


# (upper bound exclusive, category, alert) for tremor scores
TREMOR_BANDS: Tuple[Tuple[float, str, AlertLevel], ...] = (
    (20, "No Significant Tremor", AlertLevel.SUCCESS),
    (40, "Mild Tremor", AlertLevel.INFO),
    (70, "Moderate Tremor", AlertLevel.WARNING),
    (float("inf"), "Significant Tremor", AlertLevel.DANGER),
)

# (lower bound inclusive, category, alert) for balance scores
BALANCE_BANDS: Tuple[Tuple[float, str, AlertLevel], ...] = (
    (80, "Excellent Balance", AlertLevel.SUCCESS),
    (60, "Good Balance", AlertLevel.SUCCESS),
    (40, "Fair Balance", AlertLevel.WARNING),
    (float("-inf"), "Poor Balance", AlertLevel.DANGER),
)

TREMOR_REFERRAL_SCORE = 50
BALANCE_REFERRAL_SCORE = 40


def categorize_tremor(score: float) -> Tuple[str, AlertLevel]:
    for upper, category, alert in TREMOR_BANDS:
        if score < upper:
            return category, alert
    return TREMOR_BANDS[-1][1], TREMOR_BANDS[-1][2]


def categorize_balance(score: float) -> Tuple[str, AlertLevel]:
    for lower, category, alert in BALANCE_BANDS:
        if score >= lower:
            return category, alert
    return BALANCE_BANDS[-1][1], BALANCE_BANDS[-1][2]


class MotionStabilityAnalyzer:
    """
    Variance-based stability scoring for inertial windows.

    Callers choose the polarity: tremor analyzers report instability
    directly, balance analyzers report its complement.
    """

    def __init__(
        self,
        polarity: Polarity,
        scale: float,
        variance_mode: VarianceMode = VarianceMode.MAGNITUDE,
        detrend_seconds: Optional[float] = None,
        min_samples: Optional[int] = None
    ):
        """
        Initialize analyzer.

        Args:
            polarity: Score direction (STABILITY or TREMOR)
            scale: Calibration constant K in ``instability = clamp(variance * K, 0, 100)``
            variance_mode: Statistic computed over the magnitude series
            detrend_seconds: Remove postural drift with a moving average of this width
            min_samples: Windows with fewer samples report "No Data"
        """
        self.polarity = polarity
        self.scale = scale
        self.variance_mode = variance_mode
        self.detrend_seconds = detrend_seconds
        self.min_samples = min_samples or settings.motion_min_samples
        self.quality_assessor = SignalQualityAssessor()

    @classmethod
    def for_tremor(cls) -> "MotionStabilityAnalyzer":
        return cls(Polarity.TREMOR, scale=settings.tremor_intensity_scale)

    @classmethod
    def for_balance(cls) -> "MotionStabilityAnalyzer":
        return cls(
            Polarity.STABILITY,
            scale=settings.balance_instability_scale,
            detrend_seconds=settings.balance_detrend_seconds,
        )

    @classmethod
    def for_balance_orientation(cls) -> "MotionStabilityAnalyzer":
        """Balance from gyroscope orientation rate instead of acceleration."""
        return cls(
            Polarity.STABILITY,
            scale=settings.balance_orientation_scale,
            variance_mode=VarianceMode.ABS_DEVIATION,
        )

    @property
    def kind(self) -> AssessmentKind:
        return AssessmentKind.TREMOR if self.polarity == Polarity.TREMOR else AssessmentKind.BALANCE

    # ------------------------------------------------------------------
    # Single window
    # ------------------------------------------------------------------

    def instability(
        self,
        magnitudes: np.ndarray,
        sample_rate: Optional[float] = None
    ) -> Tuple[float, Dict[str, float]]:
        """
        Compute the 0-100 instability score of a magnitude series.

        Args:
            magnitudes: Per-sample vector magnitudes, or (N, axes) raw
                vectors in ABS_DEVIATION mode
            sample_rate: Needed only when drift removal is enabled

        Returns:
            (instability, component metrics)

        Raises:
            InsufficientDataError: fewer than ``min_samples`` samples
        """
        m = np.asarray(magnitudes, dtype=np.float64)
        if len(m) < self.min_samples:
            raise InsufficientDataError(
                f"Need {self.min_samples} inertial samples for a stability score",
                available=len(m),
                required=self.min_samples,
            )

        if self.variance_mode == VarianceMode.ABS_DEVIATION:
            return self._abs_deviation_instability(m)

        if self.detrend_seconds and sample_rate:
            m = detrend(m, int(round(self.detrend_seconds * sample_rate)))

        diffs = np.diff(m)
        if self.variance_mode == VarianceMode.FIRST_DIFFERENCE:
            variance = float(np.var(diffs))
        else:
            variance = float(np.var(m))

        instability = float(np.clip(variance * self.scale, 0.0, 100.0))

        abs_diffs = np.abs(diffs)
        components = {
            "mean_magnitude": float(np.mean(magnitudes)),
            "variance": variance,
            "intensity": float(np.clip(np.var(m) * 100, 0, 100)),
            "frequency": float(np.clip(np.mean(abs_diffs) * 200, 0, 100)),
            "regularity": float(np.clip(100 - np.std(abs_diffs) * 300, 0, 100)),
        }
        return instability, components

    def _abs_deviation_instability(self, vectors: np.ndarray) -> Tuple[float, Dict[str, float]]:
        # Per-sample norm of each axis's absolute deviation from its window mean
        axes = vectors.reshape(len(vectors), -1)
        deviation = np.abs(axes - axes.mean(axis=0))
        per_sample = np.sqrt(np.sum(deviation ** 2, axis=1))
        mean_deviation = float(np.mean(per_sample))

        instability = float(np.clip(mean_deviation * self.scale, 0.0, 100.0))
        components = {
            "mean_magnitude": float(np.mean(np.linalg.norm(axes, axis=1))),
            "variance": float(np.var(per_sample)),
            "mean_abs_deviation": mean_deviation,
        }
        return instability, components

    def analyze(self, window: PoseWindow) -> StabilityResult:
        """
        Score one pose or hand window.

        Windows below the minimum sample count yield a "No Data" result
        with no score rather than a spurious value.
        """
        if self.variance_mode == VarianceMode.ABS_DEVIATION:
            series = window.values()
        else:
            series = window.magnitudes()
        try:
            instability, components = self.instability(series, window.sample_rate)
        except InsufficientDataError as e:
            logger.warning(f"Window '{window.window_id}': {e.message}")
            return StabilityResult(
                window_id=window.window_id,
                status=ResultStatus.INSUFFICIENT_DATA,
                score=None,
                instability_score=None,
                category=NO_DATA_CATEGORY,
                alert_level=AlertLevel.ERROR,
                sample_count=len(series),
            )

        quality = self.quality_assessor.assess_motion(
            window.timestamps(), window.sample_rate, window.target_duration
        )
        components["signal_quality"] = quality.overall_quality

        if self.polarity == Polarity.TREMOR:
            score = int(round(instability))
            category, alert = categorize_tremor(score)
        else:
            score = int(round(100.0 - instability))
            category, alert = categorize_balance(score)

        logger.debug(
            f"Window '{window.window_id}': n={len(series)} "
            f"variance={components['variance']:.4f} instability={instability:.1f} score={score}"
        )
        return StabilityResult(
            window_id=window.window_id,
            status=ResultStatus.COMPLETE,
            score=score,
            instability_score=instability,
            category=category,
            alert_level=alert,
            sample_count=len(series),
            components=components,
        )

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def aggregate(
        self,
        results: Sequence[StabilityResult],
        weights: Optional[Sequence[float]] = None,
        partial: bool = False
    ) -> StabilityAssessment:
        """
        Combine window results into an overall assessment.

        Tremor takes the maximum score over windows; balance takes a weighted
        mean with weights renormalised over windows that have data.

        Args:
            results: Per-window results in configuration order
            weights: Balance weights aligned with ``results``
            partial: The session ended before all windows completed
        """
        scored = [(i, r) for i, r in enumerate(results) if r.has_data]
        if not scored:
            return StabilityAssessment(
                kind=self.kind,
                status=ResultStatus.INSUFFICIENT_DATA,
                windows=list(results),
                overall_score=None,
                category=NO_DATA_CATEGORY,
                alert_level=AlertLevel.ERROR,
            )

        if self.polarity == Polarity.TREMOR:
            overall = max(r.score for _, r in scored)
            category, alert = categorize_tremor(overall)
            needs_doctor = overall >= TREMOR_REFERRAL_SCORE
        else:
            weights = list(weights) if weights is not None else [1.0] * len(results)
            if len(weights) != len(results):
                raise ValueError(f"Expected {len(results)} weights, got {len(weights)}")
            total_weight = sum(weights[i] for i, _ in scored)
            if total_weight > 0:
                overall = int(round(sum(r.score * weights[i] for i, r in scored) / total_weight))
            else:
                overall = int(round(sum(r.score for _, r in scored) / len(scored)))
            category, alert = categorize_balance(overall)
            needs_doctor = overall < BALANCE_REFERRAL_SCORE

        complete = not partial and len(scored) == len(results)
        return StabilityAssessment(
            kind=self.kind,
            status=ResultStatus.COMPLETE if complete else ResultStatus.PARTIAL,
            windows=list(results),
            overall_score=overall,
            category=category,
            alert_level=alert,
            needs_doctor=needs_doctor,
        )

    def assess(
        self,
        windows: Sequence[PoseWindow],
        weights: Optional[Sequence[float]] = None,
        partial: bool = False
    ) -> StabilityAssessment:
        """Analyze every window and aggregate."""
        results: List[StabilityResult] = [self.analyze(w) for w in windows]
        return self.aggregate(results, weights=weights, partial=partial)
