"""
Pytest Configuration and Fixtures

Shared synthetic signal fixtures for assessment engine tests.
"""
import pytest
import numpy as np
from pathlib import Path
from typing import List, Tuple
import sys

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from vitalsense.core.ingestion.window import Sample, PoseWindow


def make_ppg_frames(
    frequency: float = 1.2,
    seconds: float = 15.0,
    sample_rate: float = 30.0,
    amplitude: float = 5.0,
    noise: float = 0.5,
    seed: int = 0,
    red_level: float = 80.0
) -> List[Tuple[float, float, float, float]]:
    """
    Fingertip-over-camera frames as (timestamp, r, g, b).

    Green carries the pulse around 150; by default red and blue sit well
    below it so contact quality is "good". Raise ``red_level`` above 150
    for a poorly placed finger.
    """
    rng = np.random.default_rng(seed)
    n = int(seconds * sample_rate)
    t = np.arange(n) / sample_rate
    green = 150 + amplitude * np.sin(2 * np.pi * frequency * t) + noise * rng.standard_normal(n)
    red = red_level + 0.5 * rng.standard_normal(n)
    blue = 60 + 0.5 * rng.standard_normal(n)
    return [(float(t[i]), float(red[i]), float(green[i]), float(blue[i])) for i in range(n)]


def make_inertial(
    noise: float,
    seconds: float,
    sample_rate: float,
    start: float = 0.0,
    seed: int = 0
) -> List[Tuple[float, float, float, float]]:
    """Accelerometer samples around gravity as (timestamp, x, y, z)."""
    rng = np.random.default_rng(seed)
    n = int(round(seconds * sample_rate))
    xyz = np.array([0.0, 0.0, 9.81]) + noise * rng.standard_normal((n, 3))
    return [
        (start + i / sample_rate, float(xyz[i, 0]), float(xyz[i, 1]), float(xyz[i, 2]))
        for i in range(n)
    ]


def fill_pose_window(
    window_id: str,
    noise: float,
    seconds: float = 10.0,
    sample_rate: float = 20.0,
    seed: int = 0
) -> PoseWindow:
    window = PoseWindow(window_id, seconds, sample_rate)
    for ts, x, y, z in make_inertial(noise, seconds, sample_rate, seed=seed):
        window.push(Sample(ts, (x, y, z)))
    return window


@pytest.fixture
def ppg_frames() -> List[Tuple[float, float, float, float]]:
    """15 s of 72 BPM PPG at 30 Hz with 10% noise."""
    return make_ppg_frames()


@pytest.fixture
def ppg_samples(ppg_frames) -> List[Sample]:
    """The same frames as Sample objects."""
    return [Sample(ts, (r, g, b)) for ts, r, g, b in ppg_frames]


@pytest.fixture
def slow_wave_samples() -> List[Sample]:
    """Noise-free 0.3 Hz oscillation (18 BPM) on the green channel."""
    frames = make_ppg_frames(frequency=0.3, noise=0.0)
    return [Sample(ts, (r, g, b)) for ts, r, g, b in frames]


@pytest.fixture
def temp_session_id() -> str:
    """Generate a temporary session ID."""
    import uuid
    return str(uuid.uuid4())


@pytest.fixture
def ppg_factory():
    """Factory for custom PPG frame sequences."""
    return make_ppg_frames


@pytest.fixture
def inertial_factory():
    """Factory for accelerometer sample sequences."""
    return make_inertial


@pytest.fixture
def pose_window_factory():
    """Factory for pre-filled pose windows."""
    return fill_pose_window
