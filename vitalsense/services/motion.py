"""
Motion Stability Sessions

Tremor (one window per hand) and balance (one window per pose) tests.
Windows are collected one after another; a window closes once its target
duration has elapsed, either on a later sample or on ``tick``.
"""
from typing import Any, Dict, List, Optional, Sequence

from vitalsense.config import settings
from vitalsense.core.extraction.base import AssessmentKind, StabilityAssessment, StabilityResult
from vitalsense.core.extraction.cns import MotionStabilityAnalyzer
from vitalsense.core.ingestion.window import PoseWindow, Sample
from vitalsense.utils import OutOfOrderSampleError
from .base import AssessmentSession


class MotionTestSession(AssessmentSession):
    """Sequential inertial windows scored by a MotionStabilityAnalyzer."""

    modality = "motion"

    def __init__(
        self,
        window_ids: Sequence[str],
        window_seconds: float,
        sample_rate: float,
        analyzer: MotionStabilityAnalyzer,
        weights: Optional[Sequence[float]] = None,
        session_id: Optional[str] = None,
        max_duration: Optional[float] = None
    ):
        """
        Initialize session.

        Args:
            window_ids: Hand or pose names in collection order
            window_seconds: Collection time per window
            sample_rate: Nominal inertial sample rate in Hz
            analyzer: Scoring pipeline
            weights: Aggregation weights aligned with ``window_ids``
            session_id: Identifier
            max_duration: Session deadline in seconds
        """
        super().__init__(session_id=session_id, max_duration=max_duration)
        self.analyzer = analyzer
        self.weights = list(weights) if weights is not None else None
        self.windows: List[PoseWindow] = [
            PoseWindow(window_id, window_seconds, sample_rate) for window_id in window_ids
        ]
        self.window_results: List[StabilityResult] = []
        self.dropped_samples = 0
        self._index = 0
        self._window_started_at: Optional[float] = None

    @property
    def current_window(self) -> Optional[PoseWindow]:
        if self._index >= len(self.windows):
            return None
        return self.windows[self._index]

    def on_inertial_sample(self, timestamp: float, x: float, y: float, z: float) -> None:
        """
        Ingest one accelerometer sample into the current window.

        A sample past the current window's duration first closes that
        window and then opens the next one.
        """
        self._ensure_active("ingest inertial sample")
        sample = Sample(timestamp=timestamp, value=(float(x), float(y), float(z)))
        if not sample.is_finite():
            self.dropped_samples += 1
            self.log.debug(f"Dropped non-finite inertial sample at t={timestamp}")
            return

        self._close_expired(timestamp)
        window = self.current_window
        if window is None:
            return

        try:
            window.push(sample)
        except OutOfOrderSampleError as e:
            self.dropped_samples += 1
            self.log.debug(e.message)
            return
        self._observe(timestamp)
        if self._window_started_at is None:
            self._window_started_at = timestamp

    def _close_expired(self, now: float) -> None:
        window = self.current_window
        if window is None or self._window_started_at is None:
            return
        if now - self._window_started_at >= window.target_duration:
            self._close_window()

    def _close_window(self) -> None:
        window = self.current_window
        result = self.analyzer.analyze(window)
        self.window_results.append(result)
        self.log.info(f"Window '{window.window_id}' closed: {result.category} (score={result.score})")
        self._emit("window", result)
        self._index += 1
        self._window_started_at = None
        if self._index >= len(self.windows):
            self._finish(partial=False)

    def _on_tick(self, now: float) -> None:
        self._close_expired(now)

    def _finalize(self, partial: bool) -> StabilityAssessment:
        results = list(self.window_results)
        # Unfinished windows are scored on whatever they hold
        results.extend(self.analyzer.analyze(w) for w in self.windows[len(results):])
        return self.analyzer.aggregate(results, weights=self.weights, partial=partial)

    def progress(self) -> Dict[str, Any]:
        window = self.current_window
        return {
            "current_window": window.window_id if window else None,
            "completed_windows": [r.window_id for r in self.window_results],
            "total_windows": len(self.windows),
            "buffered": len(window) if window else 0,
            "dropped_samples": self.dropped_samples,
        }


class TremorTestSession(MotionTestSession):
    """Hand tremor: right then left hand, score is the worse hand."""

    kind = AssessmentKind.TREMOR

    def __init__(self, session_id: Optional[str] = None, max_duration: Optional[float] = None):
        super().__init__(
            window_ids=settings.tremor_hands,
            window_seconds=settings.tremor_duration_seconds,
            sample_rate=settings.tremor_sample_rate,
            analyzer=MotionStabilityAnalyzer.for_tremor(),
            session_id=session_id,
            max_duration=max_duration,
        )


class BalanceTestSession(MotionTestSession):
    """Balance: standing, one leg, eyes closed, difficulty-weighted."""

    kind = AssessmentKind.BALANCE

    def __init__(
        self,
        session_id: Optional[str] = None,
        max_duration: Optional[float] = None,
        orientation: bool = False
    ):
        # orientation=True: samples are gyroscope rates rather than accelerations
        analyzer = (
            MotionStabilityAnalyzer.for_balance_orientation()
            if orientation else MotionStabilityAnalyzer.for_balance()
        )
        super().__init__(
            window_ids=settings.balance_poses,
            window_seconds=settings.balance_pose_seconds,
            sample_rate=settings.balance_sample_rate,
            analyzer=analyzer,
            weights=settings.balance_pose_weights,
            session_id=session_id,
            max_duration=max_duration,
        )
