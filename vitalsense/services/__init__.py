"""
Services Module

Assessment sessions driving the extraction pipelines.
"""
from .base import AssessmentSession, SessionEvent, SessionState
from .heart_rate import HeartRateSession
from .hearing import FrequencyThresholdMap, HearingTestSession, Stimulus
from .motion import BalanceTestSession, MotionTestSession, TremorTestSession
from .registry import SessionNotFoundError, SessionRegistry

__all__ = [
    "AssessmentSession",
    "SessionEvent",
    "SessionState",
    "HeartRateSession",
    "FrequencyThresholdMap",
    "HearingTestSession",
    "Stimulus",
    "BalanceTestSession",
    "MotionTestSession",
    "TremorTestSession",
    "SessionNotFoundError",
    "SessionRegistry",
]
