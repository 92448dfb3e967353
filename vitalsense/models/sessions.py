"""
Session API Models

Payloads for creating sessions, pushing sample batches and responses,
and advancing the session clock.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ColorSampleInput(BaseModel):
    """One camera frame's mean channel intensities."""
    timestamp: float = Field(..., description="Frame time in seconds")
    r: float = Field(..., ge=0, le=255)
    g: float = Field(..., ge=0, le=255)
    b: float = Field(..., ge=0, le=255)


class InertialSampleInput(BaseModel):
    """One accelerometer reading."""
    timestamp: float = Field(..., description="Sample time in seconds")
    x: float
    y: float
    z: float


class SampleBatchRequest(BaseModel):
    """Batch of samples; exactly one list should be populated."""
    color: List[ColorSampleInput] = Field(default_factory=list)
    inertial: List[InertialSampleInput] = Field(default_factory=list)
    tick: bool = Field(True, description="Tick the session at the last sample time")


class SampleBatchResponse(BaseModel):
    """Outcome of a sample batch."""
    session_id: str
    accepted: int
    contact_quality: Optional[float] = None
    session: Dict[str, Any]


class ResponseRequest(BaseModel):
    """Subject's answer to the pending stimulus."""
    heard: Optional[bool] = Field(None, description="None marks a timeout")
    timed_out: bool = False


class SensorFailureRequest(BaseModel):
    """Acquisition failure reported by the host."""
    reason: str = Field(..., min_length=1)


class TickRequest(BaseModel):
    """Advance the session clock."""
    now: float = Field(..., description="Current instant in seconds")


class CreateSessionRequest(BaseModel):
    """Optional per-session overrides."""
    session_id: Optional[str] = None
    max_duration: Optional[float] = Field(None, gt=0)
    duration: Optional[float] = Field(None, gt=0, description="Heart-rate measurement length")


class SessionResponse(BaseModel):
    """Session snapshot."""
    session_id: str
    kind: str
    state: str
    elapsed: float
    progress: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str
    uptime_seconds: float
    active_sessions: int = 0
