"""
Adaptive Threshold Search - Pure-Tone Hearing Screen

A generic 1-up/1-down staircase over an ordered intensity scale. Each test
dimension (one audio frequency) owns an independent procedure:

    PRESENTING -> AWAITING_RESPONSE -> ADJUSTING -> PRESENTING | CONVERGED

A heard stimulus lowers the intensity one step, a missed (or timed-out)
stimulus raises it. The search converges at the floor, at the ceiling, or
after three response reversals, and resolves a threshold from the bracket
of heard / not-heard levels.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from vitalsense.config import settings
from vitalsense.utils import get_logger, SessionStateError
from .base import AlertLevel, BEYOND_RANGE, HearingResult, ResultStatus, ThresholdValue

logger = get_logger(__name__)

MIN_TRIALS_FOR_CONVERGENCE = 3
REVERSALS_FOR_CONVERGENCE = 3

# Upper limit of normal hearing per frequency (dB HL)
NORMAL_THRESHOLDS: Dict[float, float] = {
    250: 20, 500: 20, 1000: 20, 2000: 20, 4000: 20, 8000: 25,
}

# Deviation charged for a tone not heard even at the loudest level
BEYOND_RANGE_DEVIATION = 40.0

# Simulated listener profiles: true threshold per frequency (dB)
HEARING_PROFILES: Dict[str, Dict[float, float]] = {
    "normal": {250: 15, 500: 10, 1000: 5, 2000: 5, 4000: 15, 8000: 20},
    "mild-loss": {250: 25, 500: 25, 1000: 30, 2000: 35, 4000: 40, 8000: 45},
    "high-frequency-loss": {250: 15, 500: 15, 1000: 20, 2000: 35, 4000: 55, 8000: 70},
}


class StaircaseState(str, Enum):
    """Procedure states."""
    PRESENTING = "presenting"
    AWAITING_RESPONSE = "awaiting_response"
    ADJUSTING = "adjusting"
    CONVERGED = "converged"


@dataclass(frozen=True)
class ThresholdTrial:
    """One presented stimulus and the subject's response."""
    level: float
    heard: bool
    timed_out: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {"intensity": self.level, "heard": self.heard, "timed_out": self.timed_out}


@dataclass
class StaircaseConfig:
    """
    Staircase parameters.

    Attributes:
        levels: Ascending intensity scale
        start_index: Starting position on the scale (midpoint when omitted)
        trial_timeout: Seconds to wait for a response before scoring "not heard"
        max_trials: Trial budget before finalizing with a partial estimate
    """
    levels: Sequence[float]
    start_index: Optional[int] = None
    trial_timeout: float = 4.0
    max_trials: int = 20

    def __post_init__(self):
        self.levels = tuple(float(level) for level in self.levels)
        if not self.levels:
            raise ValueError("levels must not be empty")
        if any(b <= a for a, b in zip(self.levels, self.levels[1:])):
            raise ValueError("levels must be strictly ascending")
        if self.start_index is None:
            self.start_index = len(self.levels) // 2
        if not 0 <= self.start_index < len(self.levels):
            raise ValueError(f"start_index {self.start_index} outside levels")
        if self.max_trials < MIN_TRIALS_FOR_CONVERGENCE:
            raise ValueError(f"max_trials must be at least {MIN_TRIALS_FOR_CONVERGENCE}")

    @classmethod
    def for_hearing(cls) -> "StaircaseConfig":
        return cls(
            levels=settings.hearing_levels,
            start_index=settings.hearing_start_index,
            trial_timeout=settings.hearing_trial_timeout_seconds,
            max_trials=settings.hearing_max_trials,
        )


@dataclass
class StaircaseSession:
    """Mutable search state for one dimension."""
    dimension: Optional[float]
    index: int
    trials: List[ThresholdTrial] = field(default_factory=list)
    reversals: int = 0
    converged: bool = False
    partial: bool = False
    threshold: ThresholdValue = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "dimension": self.dimension,
            "index": self.index,
            "trials": [t.to_dict() for t in self.trials],
            "reversals": self.reversals,
            "converged": self.converged,
            "partial": self.partial,
            "threshold": self.threshold,
        }


def resolve_threshold(trials: Sequence[ThresholdTrial], levels: Sequence[float]) -> ThresholdValue:
    """
    Resolve a threshold from a trial history.

    L = lowest heard level, H = highest missed level:
    - L at the floor -> L
    - H at the ceiling -> BEYOND_RANGE
    - both present -> (L + H) / 2
    - otherwise whichever exists (None for an empty history)
    """
    heard = [t.level for t in trials if t.heard]
    missed = [t.level for t in trials if not t.heard]
    lowest_heard = min(heard) if heard else None
    highest_missed = max(missed) if missed else None

    if lowest_heard is not None and lowest_heard == levels[0]:
        return lowest_heard
    if highest_missed is not None and highest_missed == levels[-1]:
        return BEYOND_RANGE
    if lowest_heard is not None and highest_missed is not None:
        return (lowest_heard + highest_missed) / 2
    if lowest_heard is not None:
        return lowest_heard
    return highest_missed


class StaircaseProcedure:
    """
    Up/down adaptive search for a single dimension.

    Driven by discrete messages: ``present`` when the stimulus starts,
    ``respond`` when the subject answers and ``check_timeout`` from the
    host's tick.
    """

    def __init__(self, config: StaircaseConfig, dimension: Optional[float] = None):
        """
        Initialize procedure.

        Args:
            config: Intensity scale and timing
            dimension: Label of the searched dimension (e.g. frequency in Hz)
        """
        self.config = config
        self.levels: Tuple[float, ...] = tuple(config.levels)
        self.session = StaircaseSession(dimension=dimension, index=config.start_index)
        self.state = StaircaseState.PRESENTING
        self._presented_at: Optional[float] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def current_level(self) -> float:
        return self.levels[self.session.index]

    @property
    def converged(self) -> bool:
        return self.state == StaircaseState.CONVERGED

    @property
    def threshold(self) -> ThresholdValue:
        return self.session.threshold

    @property
    def trials(self) -> List[ThresholdTrial]:
        return list(self.session.trials)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def present(self, now: Optional[float] = None) -> float:
        """
        Mark the stimulus at the current level as presented.

        Returns:
            The intensity level to play
        """
        if self.state != StaircaseState.PRESENTING:
            raise SessionStateError(
                "Stimulus can only be presented from the presenting state",
                state=self.state.value,
            )
        self.state = StaircaseState.AWAITING_RESPONSE
        self._presented_at = now
        return self.current_level

    def respond(self, heard: bool, timed_out: bool = False) -> StaircaseState:
        """
        Record the response to the presented stimulus and adjust intensity.

        Returns:
            The next state (PRESENTING or CONVERGED)
        """
        if self.state != StaircaseState.AWAITING_RESPONSE:
            raise SessionStateError(
                "No stimulus is awaiting a response",
                state=self.state.value,
            )
        self.state = StaircaseState.ADJUSTING
        session = self.session

        trial = ThresholdTrial(level=self.current_level, heard=bool(heard), timed_out=timed_out)
        if session.trials and session.trials[-1].heard != trial.heard:
            session.reversals += 1
        session.trials.append(trial)

        if trial.heard:
            session.index = max(0, session.index - 1)
        else:
            session.index = min(len(self.levels) - 1, session.index + 1)

        if self._has_converged():
            self._finish(partial=False)
        elif len(session.trials) >= self.config.max_trials:
            logger.warning(
                f"Staircase {session.dimension} hit {self.config.max_trials} trials "
                f"without converging; using partial estimate"
            )
            self._finish(partial=True)
        else:
            self.state = StaircaseState.PRESENTING
        self._presented_at = None
        return self.state

    def check_timeout(self, now: float) -> bool:
        """
        Score an unanswered stimulus as "not heard" once the timeout elapses.

        Returns:
            True if a timeout was applied
        """
        if self.state != StaircaseState.AWAITING_RESPONSE or self._presented_at is None:
            return False
        if now - self._presented_at < self.config.trial_timeout:
            return False
        self.respond(False, timed_out=True)
        return True

    def finalize(self) -> ThresholdValue:
        """Stop searching and resolve from the history so far (partial)."""
        if not self.converged:
            self._finish(partial=True)
        return self.session.threshold

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _has_converged(self) -> bool:
        trials = self.session.trials
        if len(trials) < MIN_TRIALS_FOR_CONVERGENCE:
            return False
        last = trials[-1]
        # Floor: heard at the quietest level; ceiling: missed at the loudest
        if last.heard and last.level == self.levels[0]:
            return True
        if not last.heard and last.level == self.levels[-1]:
            return True
        return self.session.reversals >= REVERSALS_FOR_CONVERGENCE

    def _finish(self, partial: bool) -> None:
        session = self.session
        session.converged = not partial
        session.partial = partial
        session.threshold = resolve_threshold(session.trials, self.levels)
        self.state = StaircaseState.CONVERGED
        logger.debug(
            f"Staircase {session.dimension} finished after {len(session.trials)} trials "
            f"({session.reversals} reversals): threshold={session.threshold}"
        )


def run_procedure(
    procedure: StaircaseProcedure,
    listener: Callable[[float], bool],
) -> ThresholdValue:
    """Drive a procedure to completion with a deterministic listener."""
    while not procedure.converged:
        level = procedure.present()
        procedure.respond(listener(level))
    return procedure.threshold


def summarize_hearing(
    thresholds: Dict[float, ThresholdValue],
    trials: Optional[Dict[float, List[ThresholdTrial]]] = None,
    partial_frequencies: Iterable[float] = (),
    status: Optional[ResultStatus] = None,
    beyond_range_deviation: float = BEYOND_RANGE_DEVIATION,
) -> HearingResult:
    """
    Classify hearing from per-frequency thresholds.

    Uses the mean positive deviation from the normal limit over measured
    frequencies. A beyond-range threshold adds a fixed
    ``beyond_range_deviation`` (40 dB); missing thresholds are skipped.
    """
    total_deviation = 0.0
    measured = 0
    for frequency, threshold in thresholds.items():
        if threshold is None:
            continue
        if threshold == BEYOND_RANGE:
            total_deviation += beyond_range_deviation
        else:
            normal = NORMAL_THRESHOLDS.get(frequency, 20.0)
            total_deviation += max(0.0, float(threshold) - normal)
        measured += 1

    avg_deviation = total_deviation / measured if measured else 0.0
    partial_frequencies = list(partial_frequencies)

    if not thresholds or all(t is None for t in thresholds.values()):
        category, description, alert = (
            "No Data",
            "No responses were recorded, so no hearing thresholds could be estimated.",
            AlertLevel.ERROR,
        )
        status = status or ResultStatus.INSUFFICIENT_DATA
    elif avg_deviation <= 15:
        category, description, alert = (
            "Normal Hearing",
            "Your hearing thresholds fall within the normal range across test frequencies.",
            AlertLevel.SUCCESS,
        )
    elif avg_deviation <= 30:
        category, description, alert = (
            "Mild Hearing Loss",
            "Your results suggest mild hearing loss. Consider a professional hearing evaluation.",
            AlertLevel.INFO,
        )
    elif avg_deviation <= 50:
        category, description, alert = (
            "Moderate Hearing Loss",
            "Your results suggest moderate hearing loss. A professional hearing evaluation is recommended.",
            AlertLevel.WARNING,
        )
    else:
        category, description, alert = (
            "Significant Hearing Loss",
            "Your results suggest significant hearing loss. Please consult with an audiologist.",
            AlertLevel.DANGER,
        )

    if status is None:
        status = ResultStatus.PARTIAL if partial_frequencies else ResultStatus.COMPLETE

    return HearingResult(
        status=status,
        thresholds=dict(thresholds),
        category=category,
        description=description,
        alert_level=alert,
        avg_deviation=avg_deviation,
        trials={f: [t.to_dict() for t in ts] for f, ts in (trials or {}).items()},
        partial_frequencies=partial_frequencies,
    )


def simulate_profile(
    profile: str = "normal",
    config: Optional[StaircaseConfig] = None,
) -> HearingResult:
    """
    Run the full per-frequency search against a simulated listener.

    The listener hears a tone when its level reaches the profile's true
    threshold for that frequency.
    """
    true_thresholds = HEARING_PROFILES.get(profile, HEARING_PROFILES["normal"])
    config = config or StaircaseConfig.for_hearing()

    thresholds: Dict[float, ThresholdValue] = {}
    trials: Dict[float, List[ThresholdTrial]] = {}
    for frequency, true_threshold in true_thresholds.items():
        procedure = StaircaseProcedure(config, dimension=frequency)
        thresholds[frequency] = run_procedure(procedure, lambda level: level >= true_threshold)
        trials[frequency] = procedure.trials

    logger.info(f"Simulated '{profile}' hearing profile: {thresholds}")
    return summarize_hearing(thresholds, trials)
