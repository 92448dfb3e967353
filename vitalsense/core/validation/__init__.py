"""
Validation Module

Physics-based signal quality and physiological plausibility checks.
Gates every reading before it is emitted.
"""
from .signal_quality import SignalQualityAssessor, ModalityQualityScore, Modality
from .plausibility import PlausibilityValidator, MetricBounds

__all__ = [
    "SignalQualityAssessor",
    "ModalityQualityScore",
    "Modality",
    "PlausibilityValidator",
    "MetricBounds",
]
