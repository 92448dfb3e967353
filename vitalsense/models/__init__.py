"""
API Models

Pydantic request and response schemas for the HTTP surface.
"""
from .sessions import (
    ColorSampleInput,
    InertialSampleInput,
    SampleBatchRequest,
    SampleBatchResponse,
    ResponseRequest,
    SensorFailureRequest,
    TickRequest,
    CreateSessionRequest,
    SessionResponse,
    HealthResponse,
)

__all__ = [
    "ColorSampleInput",
    "InertialSampleInput",
    "SampleBatchRequest",
    "SampleBatchResponse",
    "ResponseRequest",
    "SensorFailureRequest",
    "TickRequest",
    "CreateSessionRequest",
    "SessionResponse",
    "HealthResponse",
]
