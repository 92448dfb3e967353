"""vitalsense - signal processing and adaptive assessment engine.

Turns camera colour samples, inertial samples and stimulus responses into
heart-rate readings, hearing thresholds and stability scores.
"""

__version__ = "0.1.0"
