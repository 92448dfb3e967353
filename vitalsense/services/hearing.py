"""
Hearing Test Session

Runs one staircase per test frequency, in order. Each tick presents the
next stimulus when none is pending and scores unanswered stimuli as
"not heard" once the trial timeout elapses.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from vitalsense.config import settings
from vitalsense.core.extraction.base import AssessmentKind, HearingResult, ThresholdValue
from vitalsense.core.extraction.hearing import (
    StaircaseConfig,
    StaircaseProcedure,
    StaircaseState,
    summarize_hearing,
)
from vitalsense.utils import SessionStateError
from .base import AssessmentSession


FrequencyThresholdMap = Dict[float, ThresholdValue]


@dataclass(frozen=True)
class Stimulus:
    """Tone the host should play now."""
    frequency: float
    level: float
    presented_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"frequency": self.frequency, "level": self.level, "presented_at": self.presented_at}


class HearingTestSession(AssessmentSession):
    """Pure-tone threshold search across frequencies."""

    kind = AssessmentKind.HEARING
    modality = "audio"

    def __init__(
        self,
        session_id: Optional[str] = None,
        frequencies: Optional[Sequence[float]] = None,
        config: Optional[StaircaseConfig] = None,
        max_duration: Optional[float] = None
    ):
        """
        Initialize session.

        Args:
            session_id: Identifier
            frequencies: Test frequencies in presentation order
            config: Staircase parameters shared by every frequency
            max_duration: Session deadline in seconds
        """
        super().__init__(
            session_id=session_id,
            max_duration=max_duration or settings.hearing_max_session_seconds,
        )
        self.config = config or StaircaseConfig.for_hearing()
        self.frequencies = [float(f) for f in (frequencies or settings.hearing_frequencies)]
        self.procedures: Dict[float, StaircaseProcedure] = {
            f: StaircaseProcedure(self.config, dimension=f) for f in self.frequencies
        }
        self._index = 0
        self._stimulus: Optional[Stimulus] = None

    @property
    def current_frequency(self) -> Optional[float]:
        if self._index >= len(self.frequencies):
            return None
        return self.frequencies[self._index]

    @property
    def current_procedure(self) -> Optional[StaircaseProcedure]:
        frequency = self.current_frequency
        return self.procedures[frequency] if frequency is not None else None

    @property
    def current_stimulus(self) -> Optional[Stimulus]:
        """Stimulus awaiting a response, if any."""
        return self._stimulus

    @property
    def thresholds(self) -> FrequencyThresholdMap:
        return {f: p.threshold for f, p in self.procedures.items()}

    def present_next(self, now: float) -> Stimulus:
        """
        Present the next stimulus of the current frequency.

        Raises:
            SessionStateError: if a stimulus is already awaiting a response
        """
        self._ensure_active("present stimulus")
        self._observe(now)
        procedure = self.current_procedure
        if procedure is None or procedure.state != StaircaseState.PRESENTING:
            raise SessionStateError(
                "A stimulus is already awaiting a response",
                state=procedure.state.value if procedure else "complete",
            )
        level = procedure.present(now)
        self._stimulus = Stimulus(frequency=self.current_frequency, level=level, presented_at=now)
        self._emit("stimulus", self._stimulus)
        return self._stimulus

    def on_stimulus_response(self, heard: bool) -> Optional[Stimulus]:
        """
        Record the subject's answer to the pending stimulus.

        Returns:
            The answered stimulus
        """
        return self._record(bool(heard), timed_out=False)

    def on_stimulus_timeout(self) -> Optional[Stimulus]:
        """Score the pending stimulus as not heard."""
        return self._record(False, timed_out=True)

    def _record(self, heard: bool, timed_out: bool) -> Optional[Stimulus]:
        self._ensure_active("record response")
        procedure = self.current_procedure
        if procedure is None or self._stimulus is None:
            raise SessionStateError("No stimulus is awaiting a response", state="presenting")
        answered = self._stimulus
        procedure.respond(heard, timed_out=timed_out)
        self._stimulus = None
        self._advance()
        return answered

    def _advance(self) -> None:
        procedure = self.current_procedure
        if procedure is None or not procedure.converged:
            return
        self.log.info(f"{self.current_frequency:.0f} Hz threshold: {procedure.threshold}")
        self._emit("threshold", {"frequency": self.current_frequency, "threshold": procedure.threshold})
        self._index += 1
        if self._index >= len(self.frequencies):
            self._finish(partial=False)

    def _on_tick(self, now: float) -> None:
        procedure = self.current_procedure
        if procedure is None:
            return
        if procedure.state == StaircaseState.AWAITING_RESPONSE:
            if procedure.check_timeout(now):
                self.log.debug(f"No response at {self._stimulus.level} dB; scored as not heard")
                self._stimulus = None
                self._advance()
        elif procedure.state == StaircaseState.PRESENTING:
            self.present_next(now)

    def _finalize(self, partial: bool) -> HearingResult:
        partial_frequencies: List[float] = []
        for frequency, procedure in self.procedures.items():
            procedure.finalize()
            # Includes frequencies cut short by the trial budget
            if procedure.session.partial:
                partial_frequencies.append(frequency)
        self._stimulus = None
        return summarize_hearing(
            self.thresholds,
            trials={f: p.trials for f, p in self.procedures.items()},
            partial_frequencies=partial_frequencies,
        )

    def progress(self) -> Dict[str, Any]:
        return {
            "current_frequency": self.current_frequency,
            "completed_frequencies": self._index,
            "total_frequencies": len(self.frequencies),
            "stimulus": self._stimulus.to_dict() if self._stimulus else None,
            "thresholds": {str(f): t for f, t in self.thresholds.items()},
        }
