"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging, SessionLogger
from .exceptions import (
    AssessmentError,
    InsufficientDataError,
    OutOfRangeError,
    SensorUnavailableError,
    SessionTimeoutError,
    OutOfOrderSampleError,
    SessionStateError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "SessionLogger",
    "AssessmentError",
    "InsufficientDataError",
    "OutOfRangeError",
    "SensorUnavailableError",
    "SessionTimeoutError",
    "OutOfOrderSampleError",
    "SessionStateError",
]
