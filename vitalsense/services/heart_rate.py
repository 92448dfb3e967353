"""
Heart Rate Session

Buffers fingertip colour samples and re-estimates heart rate once per
recompute interval. Invalid or out-of-order frames are dropped; failed
estimation cycles are logged and leave the last reading in place.
"""
from typing import Any, Dict, List, Optional
import threading

from vitalsense.config import settings
from vitalsense.core.extraction.base import AssessmentKind, HeartRateReading, HeartRateResult
from vitalsense.core.extraction.cardiovascular import HeartRateEstimator
from vitalsense.core.ingestion.window import Sample, SampleWindow
from vitalsense.utils import (
    InsufficientDataError,
    OutOfOrderSampleError,
    OutOfRangeError,
)
from .base import AssessmentSession


class HeartRateSession(AssessmentSession):
    """Camera PPG heart-rate measurement."""

    kind = AssessmentKind.HEART_RATE
    modality = "camera"

    def __init__(
        self,
        session_id: Optional[str] = None,
        duration: Optional[float] = None,
        max_duration: Optional[float] = None,
        estimator: Optional[HeartRateEstimator] = None
    ):
        """
        Initialize session.

        Args:
            session_id: Identifier
            duration: Measurement length; the session completes on the first
                tick past it. Runs until ``stop()`` when omitted.
            max_duration: Hard deadline, finalizes as partial
            estimator: Pipeline instance (default configured from settings)
        """
        super().__init__(session_id=session_id, max_duration=max_duration)
        self.duration = duration
        self.estimator = estimator or HeartRateEstimator()
        self.window = SampleWindow.from_duration(
            settings.ppg_buffer_seconds, self.estimator.sample_rate
        )
        self.recompute_frames = settings.ppg_recompute_frames

        self.frame_count = 0
        self.dropped_frames = 0
        self.readings: List[HeartRateReading] = []
        self._frames_since_recompute = 0
        self._recompute_lock = threading.Lock()

    def on_color_sample(self, timestamp: float, r: float, g: float, b: float) -> float:
        """
        Ingest one frame's channel means.

        Args:
            timestamp: Frame time in seconds
            r, g, b: Mean channel intensities (0-255)

        Returns:
            Contact quality of this frame (0.1 no finger ... 0.9 good)
        """
        self._ensure_active("ingest colour sample")
        sample = Sample(timestamp=timestamp, value=(float(r), float(g), float(b)))
        if not sample.is_finite():
            self.dropped_frames += 1
            self.log.debug(f"Dropped non-finite frame at t={timestamp}")
            return 0.0
        try:
            self.window.push(sample)
        except OutOfOrderSampleError as e:
            self.dropped_frames += 1
            self.log.debug(e.message)
            return 0.0

        self._observe(timestamp)
        self.frame_count += 1
        self._frames_since_recompute += 1
        return self.estimator.quality_assessor.contact_quality(r, g, b)

    def recompute_due(self) -> bool:
        return (
            self._frames_since_recompute >= self.recompute_frames
            and len(self.window) >= self.estimator.min_samples
        )

    def recompute(self) -> Optional[HeartRateReading]:
        """
        Run one estimation cycle on a window snapshot.

        Skipped when another cycle is still running.

        Returns:
            The emitted reading, or None if the cycle produced nothing
        """
        if not self._recompute_lock.acquire(blocking=False):
            self.log.debug("Recompute already in flight; skipping")
            return None
        try:
            self._frames_since_recompute = 0
            reading = self.estimator.estimate(self.window.snapshot())
        except InsufficientDataError as e:
            self.log.debug(f"No reading this cycle: {e.message}")
            return None
        except OutOfRangeError as e:
            self.log.info(f"Discarded candidate: {e.message}")
            return None
        finally:
            self._recompute_lock.release()

        self.readings.append(reading)
        self._emit("reading", reading)
        return reading

    def _on_tick(self, now: float) -> None:
        if self.recompute_due():
            self.recompute()
        if self.duration is not None and self.elapsed >= self.duration:
            self._finish(partial=False)

    def _finalize(self, partial: bool) -> HeartRateResult:
        if partial and self.duration is None:
            partial = False
        return self.estimator.report(
            frame_count=self.frame_count,
            duration=self.elapsed,
            readings=self.readings,
            partial=partial,
        )

    def progress(self) -> Dict[str, Any]:
        return {
            "frame_count": self.frame_count,
            "dropped_frames": self.dropped_frames,
            "buffered": len(self.window),
            "current_heart_rate": self.estimator.current_heart_rate,
            "confidence": self.estimator.confidence().value,
        }
