"""Tracking error taxonomy."""

from __future__ import annotations


class TrackingError(Exception):
    """Base class for tracking errors."""


class SensingUnavailable(TrackingError):
    """No location capability is present; a session cannot be started."""


class SensingFailure(TrackingError):
    """
    A single location event failed (timeout, disconnect, permission revoked).

    Not fatal: the session keeps running and recovers on the next good fix.
    """
