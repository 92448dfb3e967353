"""
Assessment Result Types

Fixed-schema result records produced by the extraction pipelines. Each test
type has its own record; together they form the ``AssessmentResult`` union,
discriminated by ``kind``. Records always carry an explicit status plus a
confidence or category, so "insufficient signal" is never confused with a
valid but poor reading.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

# Resolved threshold when the subject never heard the loudest level
BEYOND_RANGE = "beyond-range"


class AssessmentKind(str, Enum):
    """Supported assessment types."""
    HEART_RATE = "heart_rate"
    HEARING = "hearing"
    TREMOR = "tremor"
    BALANCE = "balance"


class Confidence(str, Enum):
    """Confidence label attached to a heart-rate reading."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"


class AlertLevel(str, Enum):
    """
    Presentation severity of a category.

    SUCCESS – normal result
    INFO    – mild deviation, informational
    WARNING – moderate deviation
    DANGER  – significant deviation
    ERROR   – no usable data
    """
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"
    ERROR = "error"


class ResultStatus(str, Enum):
    """Lifecycle status of a result record."""
    COMPLETE = "complete"
    PARTIAL = "partial"
    INSUFFICIENT_DATA = "insufficient_data"
    NO_HEART_RATE_DETECTED = "no_heart_rate_detected"
    FAILED = "failed"


# ── Heart rate ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class HeartRateReading:
    """One accepted heart-rate reading emitted by a recompute cycle."""
    bpm: int
    confidence: Confidence
    quality_score: float          # 0-1
    timestamp: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bpm": self.bpm,
            "confidence": self.confidence.value,
            "quality_score": round(self.quality_score, 3),
            "timestamp": self.timestamp,
        }


@dataclass
class HeartRateResult:
    """Finalized outcome of a heart-rate session."""
    status: ResultStatus
    heart_rate: Optional[int] = None
    confidence: Confidence = Confidence.UNKNOWN
    quality_score: float = 0.0
    category: str = "Unknown"
    message: str = ""
    frame_count: int = 0
    duration: float = 0.0
    frame_rate: float = 0.0
    readings: List[HeartRateReading] = field(default_factory=list)
    kind: AssessmentKind = AssessmentKind.HEART_RATE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "status": self.status.value,
            "heart_rate": self.heart_rate,
            "confidence": self.confidence.value,
            "quality_score": round(self.quality_score, 3),
            "category": self.category,
            "message": self.message,
            "frame_count": self.frame_count,
            "duration": round(self.duration, 3),
            "frame_rate": round(self.frame_rate, 2),
            "readings": [r.to_dict() for r in self.readings],
        }


# ── Hearing ─────────────────────────────────────────────────────────────

ThresholdValue = Union[float, str, None]


@dataclass
class HearingResult:
    """Per-frequency thresholds and the summary hearing category."""
    status: ResultStatus
    thresholds: Dict[float, ThresholdValue] = field(default_factory=dict)
    category: str = "Unknown"
    description: str = ""
    alert_level: AlertLevel = AlertLevel.ERROR
    avg_deviation: float = 0.0
    trials: Dict[float, List[Dict[str, Any]]] = field(default_factory=dict)
    partial_frequencies: List[float] = field(default_factory=list)
    kind: AssessmentKind = AssessmentKind.HEARING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "status": self.status.value,
            "thresholds": {str(f): t for f, t in self.thresholds.items()},
            "category": self.category,
            "description": self.description,
            "alert_level": self.alert_level.value,
            "avg_deviation": round(self.avg_deviation, 2),
            "trials": {str(f): t for f, t in self.trials.items()},
            "partial_frequencies": self.partial_frequencies,
        }


# ── Motion stability ────────────────────────────────────────────────────

@dataclass(frozen=True)
class StabilityResult:
    """Score for a single pose or hand window."""
    window_id: str
    status: ResultStatus
    score: Optional[int]
    instability_score: Optional[float]
    category: str
    alert_level: AlertLevel
    sample_count: int = 0
    components: Dict[str, float] = field(default_factory=dict)

    @property
    def has_data(self) -> bool:
        return self.score is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "window_id": self.window_id,
            "status": self.status.value,
            "score": self.score,
            "instability_score": (
                round(self.instability_score, 2) if self.instability_score is not None else None
            ),
            "category": self.category,
            "alert_level": self.alert_level.value,
            "sample_count": self.sample_count,
            "components": {k: round(v, 2) for k, v in self.components.items()},
        }


@dataclass
class StabilityAssessment:
    """Aggregated tremor (max over hands) or balance (weighted poses) outcome."""
    kind: AssessmentKind
    status: ResultStatus
    windows: List[StabilityResult] = field(default_factory=list)
    overall_score: Optional[int] = None
    category: str = "No Data"
    alert_level: AlertLevel = AlertLevel.ERROR
    needs_doctor: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "status": self.status.value,
            "windows": [w.to_dict() for w in self.windows],
            "overall_score": self.overall_score,
            "category": self.category,
            "alert_level": self.alert_level.value,
            "needs_doctor": self.needs_doctor,
        }


AssessmentResult = Union[HeartRateResult, HearingResult, StabilityAssessment]
