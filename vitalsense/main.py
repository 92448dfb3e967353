"""
Self-Assessment Engine - FastAPI Application

HTTP surface over the assessment sessions:
- Session creation (heart rate, hearing, tremor, balance)
- Batched sample ingestion and stimulus responses
- Host-driven clock ticks, stop and status
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vitalsense import __version__
from vitalsense.config import settings
from vitalsense.core.extraction.base import AssessmentKind
from vitalsense.models import (
    CreateSessionRequest,
    HealthResponse,
    ResponseRequest,
    SampleBatchRequest,
    SampleBatchResponse,
    SensorFailureRequest,
    SessionResponse,
    TickRequest,
)
from vitalsense.services import (
    HearingTestSession,
    HeartRateSession,
    MotionTestSession,
    SessionNotFoundError,
    SessionRegistry,
)
from vitalsense.utils import (
    get_logger,
    setup_logging,
    AssessmentError,
    SensorUnavailableError,
    SessionStateError,
)

logger = get_logger(__name__)


# ---- In-memory session registry ----
_registry = SessionRegistry()
START_TIME = datetime.now()


# ---- Application Lifespan ----

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup; stop live sessions on shutdown."""
    setup_logging(settings.log_level, settings.log_file)
    app.state.registry = _registry
    logger.info("API ready to accept requests")
    yield
    _registry.stop_all()
    logger.info("Self-Assessment Engine API shut down.")


# ---- FastAPI Application ----

app = FastAPI(
    title="Self-Assessment Engine API",
    description="Heart rate, hearing, tremor and balance self-assessment from raw sensor streams",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- Error Handling ----

def _status_code(error: AssessmentError) -> int:
    if isinstance(error, SessionNotFoundError):
        return 404
    if isinstance(error, SessionStateError):
        return 409
    if isinstance(error, SensorUnavailableError):
        return 503
    return 422


@app.exception_handler(AssessmentError)
async def assessment_error_handler(request: Request, exc: AssessmentError):
    """Map engine errors to JSON bodies."""
    logger.warning(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=_status_code(exc), content=exc.to_dict())


def _snapshot(session) -> SessionResponse:
    return SessionResponse(**session.to_dict())


# ---- API Endpoints ----

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now().isoformat(),
        uptime_seconds=(datetime.now() - START_TIME).total_seconds(),
        active_sessions=sum(1 for s in _registry.list() if s.active),
    )


@app.post("/api/v1/sessions/{kind}", response_model=SessionResponse, status_code=201, tags=["Sessions"])
async def create_session(kind: AssessmentKind, request: Optional[CreateSessionRequest] = None):
    """
    Start a new assessment session.
    """
    request = request or CreateSessionRequest()
    kwargs = {"session_id": request.session_id, "max_duration": request.max_duration}
    if kind == AssessmentKind.HEART_RATE:
        kwargs["duration"] = request.duration
    session = _registry.create(kind, **kwargs)
    return _snapshot(session)


@app.get("/api/v1/sessions/{session_id}", response_model=SessionResponse, tags=["Sessions"])
async def get_session(session_id: str):
    """Current state, progress and (once finished) result of a session."""
    return _snapshot(_registry.get(session_id))


@app.post("/api/v1/sessions/{session_id}/samples", response_model=SampleBatchResponse, tags=["Sessions"])
async def push_samples(session_id: str, batch: SampleBatchRequest):
    """
    Push a batch of colour or inertial samples.

    Samples arriving after the session finishes are ignored.
    """
    session = _registry.get(session_id)
    accepted = 0
    contact_quality = None
    last_timestamp = None

    if isinstance(session, HeartRateSession):
        if batch.inertial:
            raise SessionStateError("Heart-rate sessions take colour samples", state=session.state.value)
        for sample in batch.color:
            if not session.active:
                break
            contact_quality = session.on_color_sample(sample.timestamp, sample.r, sample.g, sample.b)
            last_timestamp = sample.timestamp
            accepted += 1
    elif isinstance(session, MotionTestSession):
        if batch.color:
            raise SessionStateError("Motion sessions take inertial samples", state=session.state.value)
        for sample in batch.inertial:
            if not session.active:
                break
            session.on_inertial_sample(sample.timestamp, sample.x, sample.y, sample.z)
            last_timestamp = sample.timestamp
            accepted += 1
    else:
        raise SessionStateError(
            f"{session.kind.value} sessions do not accept samples",
            state=session.state.value,
        )

    if batch.tick and last_timestamp is not None:
        session.tick(last_timestamp)

    return SampleBatchResponse(
        session_id=session.session_id,
        accepted=accepted,
        contact_quality=contact_quality,
        session=session.to_dict(),
    )


@app.post("/api/v1/sessions/{session_id}/responses", response_model=SessionResponse, tags=["Sessions"])
async def submit_response(session_id: str, response: ResponseRequest):
    """Answer the pending hearing stimulus (``heard`` omitted = timeout)."""
    session = _registry.get(session_id)
    if not isinstance(session, HearingTestSession):
        raise SessionStateError(
            f"{session.kind.value} sessions do not take stimulus responses",
            state=session.state.value,
        )
    if response.timed_out or response.heard is None:
        session.on_stimulus_timeout()
    else:
        session.on_stimulus_response(response.heard)
    return _snapshot(session)


@app.post("/api/v1/sessions/{session_id}/tick", response_model=SessionResponse, tags=["Sessions"])
async def tick_session(session_id: str, request: TickRequest):
    """Advance a session's clock (recompute, timeouts, window closing)."""
    session = _registry.get(session_id)
    session.tick(request.now)
    return _snapshot(session)


@app.post("/api/v1/sessions/{session_id}/stop", response_model=SessionResponse, tags=["Sessions"])
async def stop_session(session_id: str):
    """Stop a session and return its (possibly partial) result."""
    session = _registry.get(session_id)
    session.stop()
    return _snapshot(session)


@app.post("/api/v1/sessions/{session_id}/sensor-failure", tags=["Sessions"])
async def report_sensor_failure(session_id: str, request: SensorFailureRequest):
    """Report an acquisition failure; ends the session."""
    session = _registry.get(session_id)
    session.report_sensor_failure(request.reason)


@app.delete("/api/v1/sessions/{session_id}", tags=["Sessions"])
async def delete_session(session_id: str):
    """Stop and forget a session."""
    session = _registry.get(session_id)
    session.stop()
    _registry.remove(session_id)
    return {"session_id": session_id, "deleted": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("vitalsense.main:app", host="0.0.0.0", port=8000, reload=False)
