"""
Bounded Sample Windows

Time-ordered, fixed-capacity sample buffers shared between an acquisition
producer (``push``) and a recompute consumer (``snapshot``). The window lock
is held only for the append or the copy, so ingestion never waits on a
running pipeline and a snapshot never observes a half-written sample.
"""
from dataclasses import dataclass
from typing import Deque, Optional, Tuple, Union
from collections import deque
import math
import threading
import numpy as np

from vitalsense.utils import OutOfOrderSampleError

Vector3 = Tuple[float, float, float]
SampleValue = Union[float, Vector3]


@dataclass(frozen=True)
class Sample:
    """
    Single timestamped sample.

    Attributes:
        timestamp: Monotonic instant in seconds
        value: Scalar reading or (x, y, z) / (r, g, b) vector
    """
    timestamp: float
    value: SampleValue

    @property
    def is_vector(self) -> bool:
        return isinstance(self.value, tuple)

    @property
    def magnitude(self) -> float:
        """Euclidean norm for vectors, absolute value for scalars."""
        if isinstance(self.value, tuple):
            return math.sqrt(sum(c * c for c in self.value))
        return abs(self.value)

    def is_finite(self) -> bool:
        if isinstance(self.value, tuple):
            return all(math.isfinite(c) for c in self.value)
        return math.isfinite(self.value)


class SampleWindow:
    """
    Thread-safe, time-ordered ring buffer of samples.

    Capacity is bounded by sample count and, optionally, by the time span
    between the oldest and newest sample. Oldest samples are evicted first
    and are never mutated in place.
    """

    def __init__(self, capacity: int, max_duration: Optional[float] = None):
        """
        Initialize window.

        Args:
            capacity: Maximum number of samples kept
            max_duration: Optional maximum time span in seconds
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = int(capacity)
        self.max_duration = max_duration
        self._lock = threading.Lock()
        self._samples: Deque[Sample] = deque(maxlen=self.capacity)
        self._evicted = 0

    @classmethod
    def from_duration(cls, seconds: float, sample_rate: float) -> "SampleWindow":
        """Window holding ``seconds`` of data at a nominal ``sample_rate``."""
        return cls(capacity=max(1, int(round(seconds * sample_rate))), max_duration=seconds)

    def push(self, sample: Sample) -> None:
        """
        Append a sample, evicting the oldest on overflow.

        Raises:
            OutOfOrderSampleError: if the timestamp precedes the newest stored one
        """
        with self._lock:
            if self._samples and sample.timestamp < self._samples[-1].timestamp:
                raise OutOfOrderSampleError(sample.timestamp, self._samples[-1].timestamp)
            if len(self._samples) == self.capacity:
                self._evicted += 1
            self._samples.append(sample)
            if self.max_duration is not None:
                horizon = sample.timestamp - self.max_duration
                while len(self._samples) > 1 and self._samples[0].timestamp < horizon:
                    self._samples.popleft()
                    self._evicted += 1

    def snapshot(self) -> Tuple[Sample, ...]:
        """Immutable ordered copy of the current contents."""
        with self._lock:
            return tuple(self._samples)

    def values(self) -> np.ndarray:
        """
        Snapshot values as an array.

        Returns:
            (N,) array for scalar samples, (N, 3) for vector samples
        """
        samples = self.snapshot()
        if not samples:
            return np.empty((0,), dtype=np.float64)
        return np.array([s.value for s in samples], dtype=np.float64)

    def timestamps(self) -> np.ndarray:
        return np.array([s.timestamp for s in self.snapshot()], dtype=np.float64)

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    @property
    def evicted_count(self) -> int:
        return self._evicted

    @property
    def first_timestamp(self) -> Optional[float]:
        with self._lock:
            return self._samples[0].timestamp if self._samples else None

    @property
    def last_timestamp(self) -> Optional[float]:
        with self._lock:
            return self._samples[-1].timestamp if self._samples else None

    @property
    def duration(self) -> float:
        """Seconds spanned by the buffered samples."""
        with self._lock:
            if len(self._samples) < 2:
                return 0.0
            return self._samples[-1].timestamp - self._samples[0].timestamp

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)


class PoseWindow(SampleWindow):
    """
    Inertial sample window for one pose or one hand.

    Tagged with an identifier and a target collection duration; the owning
    session stops feeding it once ``target_duration`` has elapsed.
    """

    def __init__(
        self,
        window_id: str,
        target_duration: float,
        sample_rate: float,
        headroom: float = 1.5
    ):
        """
        Initialize pose window.

        Args:
            window_id: Pose name or hand identifier
            target_duration: Collection duration in seconds
            sample_rate: Nominal inertial sample rate in Hz
            headroom: Capacity multiplier to tolerate sensors running fast
        """
        super().__init__(capacity=max(1, int(target_duration * sample_rate * headroom)))
        self.window_id = window_id
        self.target_duration = target_duration
        self.sample_rate = sample_rate

    def magnitudes(self) -> np.ndarray:
        """Per-sample Euclidean magnitude of the buffered vectors."""
        return np.array([s.magnitude for s in self.snapshot()], dtype=np.float64)
