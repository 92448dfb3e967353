"""
Session Registry

In-memory map of live and finished sessions for the HTTP layer.
"""
from typing import Callable, Dict, List, Optional
import threading

from vitalsense.core.extraction.base import AssessmentKind
from vitalsense.utils import get_logger, AssessmentError
from .base import AssessmentSession
from .heart_rate import HeartRateSession
from .hearing import HearingTestSession
from .motion import BalanceTestSession, TremorTestSession

logger = get_logger(__name__)

SESSION_FACTORIES: Dict[AssessmentKind, Callable[..., AssessmentSession]] = {
    AssessmentKind.HEART_RATE: HeartRateSession,
    AssessmentKind.HEARING: HearingTestSession,
    AssessmentKind.TREMOR: TremorTestSession,
    AssessmentKind.BALANCE: BalanceTestSession,
}


class SessionNotFoundError(AssessmentError):
    """No session with the requested identifier."""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Session {session_id} not found",
            code="SESSION_NOT_FOUND",
            details={"session_id": session_id},
        )
        self.session_id = session_id


class SessionRegistry:
    """Thread-safe session store keyed by session id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: Dict[str, AssessmentSession] = {}

    def create(self, kind: AssessmentKind, **kwargs) -> AssessmentSession:
        session = SESSION_FACTORIES[kind](**kwargs)
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> AssessmentSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def remove(self, session_id: str) -> Optional[AssessmentSession]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def list(self) -> List[AssessmentSession]:
        with self._lock:
            return list(self._sessions.values())

    def stop_all(self) -> int:
        """Stop every active session; returns how many were stopped."""
        stopped = 0
        for session in self.list():
            if session.active:
                session.stop()
                stopped += 1
        if stopped:
            logger.info(f"Stopped {stopped} active sessions")
        return stopped

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
