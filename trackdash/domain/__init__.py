"""trackdash Domain - shared data models."""

from .models import GeoFix, Position, TrackMetrics, TrackStatus

__all__ = ["GeoFix", "Position", "TrackMetrics", "TrackStatus"]
