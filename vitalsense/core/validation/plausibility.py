"""
Physiological Plausibility Validation

Enforces hard physiological bounds on computed metrics. Candidates outside
the bounds are rejected with ``OutOfRangeError`` so the caller can discard
them without surfacing a session failure.
NO ML/AI - purely physiology based.
"""
from dataclasses import dataclass
from typing import Dict, Tuple

from vitalsense.config import settings
from vitalsense.utils import get_logger, OutOfRangeError

logger = get_logger(__name__)


@dataclass(frozen=True)
class MetricBounds:
    """Hard limits for a single metric."""
    name: str
    low: float
    high: float
    unit: str = ""

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high


class PlausibilityValidator:
    """Validates metrics against hard physiological constraints."""

    def __init__(self, limits: Dict[str, Tuple[float, float]] = None):
        """
        Initialize validator.

        Args:
            limits: Optional overrides of the default ``name -> (low, high)`` table
        """
        self._limits: Dict[str, MetricBounds] = {
            "heart_rate": MetricBounds("heart_rate", settings.bpm_min, settings.bpm_max, "bpm"),
            "stability_score": MetricBounds("stability_score", 0, 100, "score_0_100"),
        }
        for name, (low, high) in (limits or {}).items():
            self._limits[name] = MetricBounds(name, low, high)
        self._rejections = 0

    def bounds(self, metric: str) -> MetricBounds:
        return self._limits[metric]

    def check(self, metric: str, value: float) -> float:
        """
        Return ``value`` unchanged when plausible.

        Raises:
            OutOfRangeError: if the value lies outside the metric's bounds
        """
        bounds = self._limits[metric]
        if not bounds.contains(value):
            self._rejections += 1
            raise OutOfRangeError(
                f"{metric}={value} outside [{bounds.low}, {bounds.high}] {bounds.unit}".strip(),
                metric=metric,
                value=value,
                bounds=(bounds.low, bounds.high),
            )
        return value

    @property
    def rejection_count(self) -> int:
        return self._rejections
