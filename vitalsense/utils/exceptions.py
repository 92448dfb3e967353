"""
Custom Exception Hierarchy

Specific exception types for the assessment engine with structured error
information. Per-sample and per-cycle conditions (insufficient data,
out-of-range candidates, out-of-order samples) are raised by the pipeline
stages and absorbed by the owning session; sensor failures and operations
on finished sessions propagate to the caller.
"""
from typing import Optional, Dict, Any


class AssessmentError(Exception):
    """Base exception for all assessment engine errors."""
    
    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class InsufficientDataError(AssessmentError):
    """Not enough samples (or peaks) yet; the caller should retry later."""
    
    def __init__(
        self,
        message: str,
        available: int = 0,
        required: int = 0,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="INSUFFICIENT_DATA",
            details={"available": available, "required": required, **(details or {})}
        )
        self.available = available
        self.required = required


class OutOfRangeError(AssessmentError):
    """A computed metric fell outside physiological bounds and was discarded."""
    
    def __init__(
        self,
        message: str,
        metric: str = "unknown",
        value: Optional[float] = None,
        bounds: Optional[tuple] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="OUT_OF_RANGE",
            details={
                "metric": metric,
                "value": value,
                "bounds": list(bounds) if bounds else None,
                **(details or {})
            }
        )
        self.metric = metric
        self.value = value
        self.bounds = bounds


class SensorUnavailableError(AssessmentError):
    """The acquisition collaborator failed; the session cannot proceed."""
    
    def __init__(
        self,
        message: str,
        modality: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="SENSOR_UNAVAILABLE",
            details={"modality": modality, **(details or {})}
        )
        self.modality = modality


class SessionTimeoutError(AssessmentError):
    """A session exceeded its maximum duration or trial budget."""
    
    def __init__(
        self,
        message: str,
        elapsed: float = 0.0,
        limit: float = 0.0,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="SESSION_TIMEOUT",
            details={"elapsed": round(elapsed, 3), "limit": limit, **(details or {})}
        )
        self.elapsed = elapsed
        self.limit = limit


class OutOfOrderSampleError(AssessmentError):
    """A sample arrived with a timestamp older than the newest buffered one."""
    
    def __init__(
        self,
        timestamp: float,
        last_timestamp: float,
    ):
        super().__init__(
            message=f"Sample at {timestamp} is older than last stored sample at {last_timestamp}",
            code="OUT_OF_ORDER_SAMPLE",
            details={"timestamp": timestamp, "last_timestamp": last_timestamp}
        )
        self.timestamp = timestamp
        self.last_timestamp = last_timestamp


class SessionStateError(AssessmentError):
    """An operation is not valid in the session's current state."""
    
    def __init__(
        self,
        message: str,
        state: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="INVALID_SESSION_STATE",
            details={"state": state, **(details or {})}
        )
        self.state = state
