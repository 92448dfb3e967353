"""
Signal Conditioning Primitives

Detrending, a two-stage one-pole band-pass filter and a local-maximum peak
detector. Shared by the PPG heart-rate pipeline and the motion analysis.
"""
from dataclasses import dataclass
from typing import Tuple
import math
import numpy as np
from scipy import signal

from vitalsense.utils import get_logger

logger = get_logger(__name__)


def detrend(series: np.ndarray, radius: int) -> np.ndarray:
    """
    Remove slow drift by subtracting a centred moving average.

    The window for index ``i`` is ``[i - radius, i + radius]`` clipped at the
    series bounds, so edge samples are averaged over fewer neighbours.

    Args:
        series: 1D signal
        radius: Half-width of the averaging window in samples

    Returns:
        Detrended copy of the signal
    """
    x = np.asarray(series, dtype=np.float64)
    n = x.size
    if n == 0:
        return x.copy()
    radius = max(int(radius), 0)

    idx = np.arange(n)
    lo = np.clip(idx - radius, 0, n - 1)
    hi = np.clip(idx + radius, 0, n - 1)
    csum = np.concatenate(([0.0], np.cumsum(x)))
    moving_avg = (csum[hi + 1] - csum[lo]) / (hi - lo + 1)
    return x - moving_avg


@dataclass
class FilterState:
    """Recursion state of a single one-pole stage."""
    prev_input: float = 0.0
    prev_output: float = 0.0
    primed: bool = False

    def reset(self) -> None:
        self.prev_input = 0.0
        self.prev_output = 0.0
        self.primed = False


class BandpassFilter:
    """
    Cascaded one-pole low-pass and high-pass recursive filter.

    Low-pass:  y[i] = x[i](1 - a_low) + y[i-1] a_low,   a_low  = exp(-2π f_low / fs)
    High-pass: z[i] = y[i] - y[i-1] + a_high z[i-1],   a_high = exp(-2π f_high / fs)

    The first sample seeds both stages (y[0] = x[0], z[0] = y[0]).
    """

    def __init__(self, low_cutoff: float, high_cutoff: float, sample_rate: float):
        """
        Initialize filter.

        Args:
            low_cutoff: Low-pass stage corner in Hz (0.5 Hz for PPG)
            high_cutoff: High-pass stage corner in Hz (4 Hz for PPG)
            sample_rate: Sampling rate in Hz
        """
        if sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        self.low_cutoff = low_cutoff
        self.high_cutoff = high_cutoff
        self.sample_rate = sample_rate
        self.a_low = math.exp(-2 * math.pi * low_cutoff / sample_rate)
        self.a_high = math.exp(-2 * math.pi * high_cutoff / sample_rate)
        self._low_state = FilterState()
        self._high_state = FilterState()

    def reset(self) -> None:
        self._low_state.reset()
        self._high_state.reset()

    def step(self, x: float) -> float:
        """Filter one sample causally, updating the per-stage state."""
        low, high = self._low_state, self._high_state

        if not low.primed:
            y = x
            low.primed = True
        else:
            y = x * (1 - self.a_low) + low.prev_output * self.a_low
        low.prev_input, low.prev_output = x, y

        if not high.primed:
            z = y
            high.primed = True
        else:
            z = y - high.prev_input + self.a_high * high.prev_output
        high.prev_input, high.prev_output = y, z
        return z

    def apply(self, series: np.ndarray) -> np.ndarray:
        """
        Filter a full buffer from a fresh state.

        Equivalent to ``reset()`` followed by ``step`` over every sample, run
        through ``scipy.signal.lfilter``. Leaves the filter primed with the
        final sample's state.
        """
        x = np.asarray(series, dtype=np.float64)
        self.reset()
        if x.size == 0:
            return x.copy()

        # Initial conditions reproduce y[0] = x[0] and z[0] = y[0]
        y, _ = signal.lfilter(
            [1.0 - self.a_low], [1.0, -self.a_low], x, zi=[self.a_low * x[0]]
        )
        z, _ = signal.lfilter([1.0, -1.0], [1.0, -self.a_high], y, zi=[0.0])

        self._low_state = FilterState(float(x[-1]), float(y[-1]), True)
        self._high_state = FilterState(float(y[-1]), float(z[-1]), True)
        return np.asarray(z)


@dataclass(frozen=True)
class PeakSet:
    """Ordered peak indices from one evaluation of a filtered series."""
    indices: Tuple[int, ...]
    threshold: float = 0.0

    def __len__(self) -> int:
        return len(self.indices)

    def intervals(self) -> np.ndarray:
        """Differences between consecutive peak indices, in samples."""
        if len(self.indices) < 2:
            return np.empty((0,), dtype=np.float64)
        return np.diff(np.asarray(self.indices, dtype=np.float64))


def find_peaks(
    series: np.ndarray,
    min_distance: int,
    amplitude_factor: float = 0.3
) -> PeakSet:
    """
    Find local maxima separated by at least ``min_distance`` samples.

    Candidates are scipy local maxima (a flat top counts once, at its middle)
    strictly above ``amplitude_factor * max(series)``. Spacing is enforced
    sequentially: a candidate too close to the previously accepted peak
    replaces it only when taller, so one pulse is never counted twice.

    Args:
        series: Filtered 1D signal
        min_distance: Minimum spacing between accepted peaks in samples
        amplitude_factor: Fraction of the series maximum a peak must exceed

    Returns:
        PeakSet with accepted indices in ascending order
    """
    v = np.asarray(series, dtype=np.float64)
    if v.size < 3:
        return PeakSet(indices=())

    threshold = amplitude_factor * float(np.max(v))
    candidates, _ = signal.find_peaks(v, height=threshold)

    peaks: list = []
    for i in candidates:
        if v[i] <= threshold:
            continue
        if not peaks or i - peaks[-1] >= min_distance:
            peaks.append(int(i))
        elif v[i] > v[peaks[-1]]:
            peaks[-1] = int(i)

    return PeakSet(indices=tuple(peaks), threshold=threshold)
