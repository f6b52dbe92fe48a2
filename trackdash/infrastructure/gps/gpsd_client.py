"""Async gpsd client with auto-reconnect and an error signal."""

from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import AsyncIterator, Callable, Optional

from ...domain.models import GeoFix
from ...tracking.errors import SensingFailure

logger = logging.getLogger(__name__)

# Accuracy assumed when gpsd reports no error estimate
UNKNOWN_ACCURACY_M = 50.0

ErrorCallback = Callable[[SensingFailure], None]


@dataclass
class GPSClientConfig:
    """GPS daemon connection configuration."""

    host: str = "localhost"
    port: int = 2947
    reconnect_delay: float = 5.0
    timeout: float = 10.0
    max_reconnect_attempts: int = 0  # 0 = infinite


@dataclass
class GPSState:
    """Internal GPS state tracking."""

    connected: bool = False
    fix_count: int = 0
    error_count: int = 0
    last_fix: Optional[datetime] = None


def parse_tpv(data: dict) -> Optional[GeoFix]:
    """
    Parse TPV (Time-Position-Velocity) message from gpsd.

    Accuracy comes from ``eph`` when present, otherwise the larger of
    ``epx``/``epy``; without any estimate the fix is assumed poor.

    Returns:
        GeoFix if valid lat/lon present, None otherwise
    """
    if "lat" not in data or "lon" not in data:
        return None

    try:
        # Mode: 0=unknown, 1=no fix, 2=2D, 3=3D
        if int(data.get("mode", 0)) < 2:
            return None

        if data.get("eph") is not None:
            accuracy = float(data["eph"])
        elif data.get("epx") is not None or data.get("epy") is not None:
            accuracy = max(float(data.get("epx") or 0.0), float(data.get("epy") or 0.0))
        else:
            accuracy = UNKNOWN_ACCURACY_M

        speed = data.get("speed")
        timestamp = datetime.now(UTC)
        if data.get("time"):
            timestamp = datetime.fromisoformat(str(data["time"]).replace("Z", "+00:00"))

        return GeoFix(
            latitude=float(data["lat"]),
            longitude=float(data["lon"]),
            speed=float(speed) if speed is not None else None,
            accuracy=accuracy if math.isfinite(accuracy) else UNKNOWN_ACCURACY_M,
            timestamp=timestamp,
        )

    except (KeyError, ValueError, TypeError) as e:
        logger.error("TPV parse error: %s - data: %s", e, data)
        return None


class AsyncGPSClient:
    """
    Async gpsd client with auto-reconnect.

    Features:
    - Non-blocking async connection
    - Automatic reconnection on disconnect
    - Error callbacks for timeouts and lost connections

    Usage:
        client = AsyncGPSClient()
        client.on_error(lambda err: print(err))

        async for fix in client.stream_fixes():
            print(f"Lat: {fix.latitude}, Lon: {fix.longitude}")
    """

    def __init__(self, config: GPSClientConfig | None = None) -> None:
        self.config = config or GPSClientConfig()
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._running = False
        self._last_fix: Optional[GeoFix] = None
        self._error_callbacks: list[ErrorCallback] = []
        self._state = GPSState()
        self._reconnect_attempts = 0

    @property
    def last_fix(self) -> Optional[GeoFix]:
        return self._last_fix

    @property
    def is_connected(self) -> bool:
        return self._state.connected

    @property
    def state(self) -> GPSState:
        """Get internal state for diagnostics."""
        return self._state

    def on_error(self, callback: ErrorCallback) -> None:
        """Register callback for per-event sensing failures."""
        self._error_callbacks.append(callback)

    def remove_callback(self, callback: ErrorCallback) -> None:
        if callback in self._error_callbacks:
            self._error_callbacks.remove(callback)

    def _report_error(self, message: str) -> None:
        self._state.error_count += 1
        failure = SensingFailure(message)
        for cb in self._error_callbacks:
            try:
                cb(failure)
            except Exception as e:
                logger.error("GPS error callback failed: %s", e)

    async def connect(self) -> bool:
        """
        Connect to gpsd daemon.

        Returns:
            True if connected successfully, False otherwise.
        """
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.config.host, self.config.port),
                timeout=self.config.timeout,
            )

            # Enable JSON streaming mode
            self._writer.write(b'?WATCH={"enable":true,"json":true}\n')
            await self._writer.drain()

            self._state.connected = True
            self._reconnect_attempts = 0
            logger.info("Connected to gpsd at %s:%d", self.config.host, self.config.port)
            return True

        except asyncio.TimeoutError:
            logger.warning("GPS connection timeout to %s:%d", self.config.host, self.config.port)
            self._state.error_count += 1
            return False

        except OSError as e:
            logger.warning("GPS connection failed - is gpsd running? %s", e)
            self._state.error_count += 1
            return False

    async def disconnect(self) -> None:
        """Disconnect from gpsd gracefully."""
        if self._writer:
            try:
                self._writer.write(b'?WATCH={"enable":false}\n')
                await self._writer.drain()
                self._writer.close()
                await self._writer.wait_closed()
            except (OSError, RuntimeError) as e:
                logger.debug("GPS disconnect error ignored: %s", e)

        self._reader = None
        self._writer = None
        self._state.connected = False

    async def stream_fixes(self) -> AsyncIterator[GeoFix]:
        """
        Async generator that yields location fixes.

        Handles reconnection automatically. Read timeouts and lost
        connections are reported through the error callbacks rather than
        raised, so the consumer keeps iterating.
        """
        self._running = True

        while self._running:
            if not self._reader:
                if not await self.connect():
                    self._reconnect_attempts += 1
                    self._report_error("GPS unavailable: cannot reach gpsd")

                    if (
                        self.config.max_reconnect_attempts > 0
                        and self._reconnect_attempts >= self.config.max_reconnect_attempts
                    ):
                        logger.error("GPS max reconnect attempts reached, stopping")
                        break

                    await asyncio.sleep(self.config.reconnect_delay)
                    continue

            try:
                line = await asyncio.wait_for(
                    self._reader.readline(),  # type: ignore[union-attr]
                    timeout=self.config.timeout,
                )

                if not line:
                    raise ConnectionError("GPS connection closed by server")

                data = json.loads(line.decode("utf-8"))
                if not isinstance(data, dict):
                    logger.warning("GPS message is not a JSON object: %.80r", line)
                    continue

                if data.get("class") == "TPV":
                    fix = parse_tpv(data)
                    if fix:
                        self._last_fix = fix
                        self._state.fix_count += 1
                        self._state.last_fix = datetime.now(UTC)
                        yield fix

            except asyncio.TimeoutError:
                logger.debug("GPS read timeout after %.1fs", self.config.timeout)
                self._report_error("Timeout expired while waiting for a position")

            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning("GPS message parse error: %s", e)

            except (ConnectionError, OSError) as e:
                logger.warning("GPS stream error: %s, reconnecting...", e)
                self._report_error(f"GPS connection lost: {e}")
                await self.disconnect()
                await asyncio.sleep(self.config.reconnect_delay)

    async def stop(self) -> None:
        """Stop streaming and disconnect."""
        self._running = False
        await self.disconnect()


class MockGPSClient(AsyncGPSClient):
    """
    Mock GPS client for testing and simulation.

    Walks in a circle around the start point at a constant speed.
    """

    def __init__(
        self,
        start_lat: float = 41.0082,  # Istanbul
        start_lon: float = 28.9784,
        speed_mps: float = 1.4,
        accuracy_m: float = 5.0,
        interval: float = 1.0,
    ) -> None:
        super().__init__()
        self._start_lat = start_lat
        self._start_lon = start_lon
        self._speed = speed_mps
        self._accuracy = accuracy_m
        self._interval = interval
        self._step = 0

    async def connect(self) -> bool:
        """Mock always connects."""
        self._state.connected = True
        logger.info("Mock GPS connected (simulated)")
        return True

    async def disconnect(self) -> None:
        self._state.connected = False

    def _next_fix(self) -> GeoFix:
        radius = 0.001  # ~111 meters
        # Advance the angle so that arc length per step matches the speed
        step_deg = math.degrees(self._speed * self._interval / (radius * 111_195.0))
        angle = math.radians(self._step * step_deg)

        fix = GeoFix(
            latitude=self._start_lat + radius * math.sin(angle),
            longitude=self._start_lon + radius * math.cos(angle),
            speed=self._speed,
            accuracy=self._accuracy,
        )
        self._step += 1
        return fix

    async def stream_fixes(self) -> AsyncIterator[GeoFix]:
        self._running = True
        await self.connect()

        while self._running:
            fix = self._next_fix()
            self._last_fix = fix
            self._state.fix_count += 1
            yield fix
            await asyncio.sleep(self._interval)
