from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


class LoggingConfig(BaseModel):
    level: str = Field("INFO")

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        value = value.upper()
        if value not in logging.getLevelNamesMapping():
            raise ValueError(f"invalid log level: {value}")
        return value


class TrackingConfig(BaseModel):
    """Fix filtering and smoothing parameters."""

    max_accuracy_m: float = Field(20.0, gt=0)
    noise_floor_m: float = Field(0.1, ge=0)
    smoothing_alpha: float = Field(0.3, gt=0, le=1)
    smoothing_window: int = Field(10, ge=1, le=1000)
    tick_interval_sec: float = Field(1.0, gt=0)


class GPSConfig(BaseModel):
    """GPS daemon configuration."""

    host: str = Field("localhost")
    port: int = Field(2947, ge=1, le=65535)
    timeout: float = Field(10.0, ge=1.0)
    reconnect_delay: float = Field(5.0, gt=0)
    mock_mode: bool = Field(False)  # Use mock GPS for testing
    mock_lat: float = Field(41.0082, ge=-90, le=90)
    mock_lon: float = Field(28.9784, ge=-180, le=180)
    mock_speed_mps: float = Field(1.4, ge=0)

    @field_validator("host")
    @classmethod
    def _validate_host(cls, value: str) -> str:
        if not value or any(c.isspace() for c in value):
            raise ValueError("host must be a valid hostname or IP")
        return value


class DisplayConfig(BaseModel):
    metric: bool = Field(True)


class TrackdashConfig(BaseModel):
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    gps: GPSConfig = Field(default_factory=GPSConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Path) -> TrackdashConfig:
    with Path(path).expanduser().open("r", encoding="utf-8") as fp:
        raw = yaml.safe_load(fp) or {}
    try:
        return TrackdashConfig.model_validate(raw)
    except ValidationError as exc:  # pragma: no cover - formatting
        raise ValueError(str(exc)) from exc


def resolve_config_path(cli_path: Path | None) -> Path:
    """Resolve config path by priority: CLI, env, /etc/trackdash, repo configs."""
    candidates: list[Path] = []
    if cli_path:
        p = Path(cli_path).expanduser()
        if p.exists():
            return p.resolve()
        candidates.append(p)
    env = os.environ.get("TRACKDASH_CONFIG")
    if env:
        p = Path(env).expanduser()
        if p.exists():
            return p.resolve()
        candidates.append(p)
    for p in [Path("/etc/trackdash/trackdash.yml"), Path("configs/trackdash.yml")]:
        if p.exists():
            return p.resolve()
        candidates.append(p)
    # Fallback to first candidate even if not exists to surface errors consistently
    return candidates[0] if candidates else Path("configs/trackdash.yml").resolve()


def load_config_or_default(path: Path | None) -> TrackdashConfig:
    """Load the resolved config file, falling back to defaults when none exists."""
    resolved = resolve_config_path(path)
    if not resolved.exists():
        return TrackdashConfig()
    return load_config(resolved)
