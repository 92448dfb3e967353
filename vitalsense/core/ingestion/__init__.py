"""
Data Ingestion Module

Bounded, time-ordered sample windows fed by camera-colour and
inertial-sensor collaborators.
"""
from .window import Sample, SampleWindow, PoseWindow

__all__ = [
    "Sample",
    "SampleWindow",
    "PoseWindow",
]
