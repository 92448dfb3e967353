"""
Assessment Session Base

Explicit session objects owning all per-run state. A host (the HTTP layer
or an on-device loop) pushes samples and responses in, calls ``tick(now)``
at its own cadence and ends the run with ``stop()``. Results are delivered
to subscribers as ``SessionEvent`` objects and kept on the session.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import threading
import time
import uuid

from vitalsense.core.extraction.base import AssessmentKind, AssessmentResult
from vitalsense.utils import (
    get_logger,
    SensorUnavailableError,
    SessionStateError,
    SessionTimeoutError,
)


class SessionState(str, Enum):
    """Session lifecycle."""
    ACTIVE = "active"
    FINISHED = "finished"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionEvent:
    """Notification delivered to subscribers."""
    session_id: str
    event: str                  # reading | stimulus | threshold | window | result
    payload: Any
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        payload = self.payload.to_dict() if hasattr(self.payload, "to_dict") else self.payload
        return {
            "session_id": self.session_id,
            "event": self.event,
            "payload": payload,
            "created_at": self.created_at,
        }


Subscriber = Callable[[SessionEvent], None]


class AssessmentSession:
    """
    Common session lifecycle.

    Subclasses implement ``_on_tick`` (periodic work) and ``_finalize``
    (build the result record from whatever was collected).
    """

    kind: AssessmentKind
    modality: str = "unknown"

    def __init__(
        self,
        session_id: Optional[str] = None,
        max_duration: Optional[float] = None
    ):
        """
        Initialize session.

        Args:
            session_id: Identifier (random UUID when omitted)
            max_duration: Deadline in seconds after the first observed instant
        """
        self.session_id = session_id or str(uuid.uuid4())
        self.max_duration = max_duration
        self.state = SessionState.ACTIVE

        self._lock = threading.RLock()
        self._subscribers: List[Subscriber] = []
        self._result: Optional[AssessmentResult] = None
        self._started_at: Optional[float] = None
        self._last_seen: Optional[float] = None
        self.failure: Optional[SensorUnavailableError] = None
        self.log = get_logger(type(self).__module__, session_id=self.session_id)

        self.log.info(f"{type(self).__name__} created")

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def _emit(self, event: str, payload: Any) -> None:
        message = SessionEvent(session_id=self.session_id, event=event, payload=payload)
        for callback in list(self._subscribers):
            callback(message)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def result(self) -> Optional[AssessmentResult]:
        return self._result

    @property
    def elapsed(self) -> float:
        """Seconds between the first and latest observed instants."""
        if self._started_at is None or self._last_seen is None:
            return 0.0
        return self._last_seen - self._started_at

    def _ensure_active(self, operation: str) -> None:
        if not self.active:
            raise SessionStateError(
                f"Cannot {operation}: session {self.session_id} is {self.state.value}",
                state=self.state.value,
            )

    def _observe(self, now: float) -> None:
        if self._started_at is None:
            self._started_at = now
        if self._last_seen is None or now > self._last_seen:
            self._last_seen = now

    def _check_deadline(self, now: float) -> None:
        if self.max_duration is None or self._started_at is None:
            return
        elapsed = now - self._started_at
        if elapsed >= self.max_duration:
            raise SessionTimeoutError(
                f"Session exceeded {self.max_duration}s",
                elapsed=elapsed,
                limit=self.max_duration,
            )

    def tick(self, now: float) -> Optional[AssessmentResult]:
        """
        Advance time-driven work.

        Runs the session's periodic step and enforces the deadline. A
        session past its deadline is finalized with partial results.

        Args:
            now: Current instant in seconds, on the same clock as sample timestamps

        Returns:
            The result once the session has finished, else None
        """
        if not self.active:
            return self._result
        self._observe(now)
        try:
            self._check_deadline(now)
        except SessionTimeoutError as e:
            self.log.warning(e.message)
            return self._finish(partial=True)
        self._on_tick(now)
        return self._result

    def stop(self) -> AssessmentResult:
        """
        Halt ingestion and finalize with whatever has been collected.

        Idempotent: every call returns the same result object.
        """
        return self._finish(partial=True)

    def report_sensor_failure(self, reason: str) -> None:
        """
        Record an acquisition failure and end the session.

        The partial result stays available through ``result`` and ``stop()``.

        Raises:
            SensorUnavailableError: always
        """
        error = SensorUnavailableError(reason, modality=self.modality)
        with self._lock:
            if self.active:
                self.log.error(f"Sensor failure: {reason}")
                self.failure = error
                self._finish(partial=True, state=SessionState.FAILED)
        raise error

    def _finish(
        self,
        partial: bool,
        state: SessionState = SessionState.FINISHED
    ) -> AssessmentResult:
        with self._lock:
            if self._result is not None:
                return self._result
            self._result = self._finalize(partial)
            self.state = state
        self.log.info(f"{type(self).__name__} {state.value}: {self._result.status.value}")
        self._emit("result", self._result)
        return self._result

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    def _on_tick(self, now: float) -> None:
        pass

    def _finalize(self, partial: bool) -> AssessmentResult:
        raise NotImplementedError

    def progress(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        """Session snapshot for API responses."""
        return {
            "session_id": self.session_id,
            "kind": self.kind.value,
            "state": self.state.value,
            "elapsed": round(self.elapsed, 3),
            "progress": self.progress(),
            "result": self._result.to_dict() if self._result is not None else None,
            "error": self.failure.to_dict() if self.failure is not None else None,
        }
