"""Tracking core - fix filtering, distance accumulation and speed smoothing."""

from .clock import SessionClock
from .errors import SensingFailure, SensingUnavailable, TrackingError
from .gate import AccuracyGate
from .geo import great_circle_distance
from .session import TrackSession
from .smoothing import SpeedSmoother

__all__ = [
    "AccuracyGate",
    "SensingFailure",
    "SensingUnavailable",
    "SessionClock",
    "SpeedSmoother",
    "TrackSession",
    "TrackingError",
    "great_circle_distance",
]
