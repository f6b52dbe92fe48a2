"""trackdash Domain Models - Pydantic models for location fixes and metrics."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TrackStatus(str, Enum):
    """Quality/status signal exposed to rendering collaborators."""

    TRACKING_ACTIVE = "tracking-active"
    LOW_ACCURACY = "low-accuracy"
    SENSING_ERROR = "sensing-error"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Position:
    """Last accepted coordinate pair (degrees)."""

    latitude: float
    longitude: float


class GeoFix(BaseModel):
    """One location sample reported by the location provider."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    speed: float | None = None  # m/s, provider may omit it
    accuracy: float = Field(..., ge=0)  # horizontal accuracy radius, metres
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def position(self) -> Position:
        return Position(self.latitude, self.longitude)


class TrackMetrics(BaseModel):
    """Point-in-time snapshot of the derived tracking values."""

    model_config = ConfigDict(frozen=True)

    speed_mps: float = 0.0
    distance_m: float = 0.0
    elapsed_seconds: int = 0
    status: TrackStatus = TrackStatus.STOPPED
    running: bool = False
    message: str | None = None

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000.0
