"""
Tracker Service
===============

Wires a location client and a 1 Hz timer to one TrackSession on a single
asyncio event loop, and publishes status changes and metric snapshots on
the event bus for rendering collaborators.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from ...config import TrackdashConfig
from ...core.events import EventBus, EventType
from ...domain.models import TrackMetrics, TrackStatus
from ...infrastructure.gps.gpsd_client import AsyncGPSClient, GPSClientConfig, MockGPSClient
from ...tracking.clock import SessionClock
from ...tracking.errors import SensingFailure, SensingUnavailable
from ...tracking.gate import AccuracyGate
from ...tracking.session import TrackSession
from ...tracking.smoothing import SpeedSmoother

logger = logging.getLogger(__name__)


def build_session(cfg: TrackdashConfig) -> TrackSession:
    """Create a TrackSession from the tracking config section."""
    t = cfg.tracking
    return TrackSession(
        gate=AccuracyGate(max_accuracy_m=t.max_accuracy_m),
        smoother=SpeedSmoother(alpha=t.smoothing_alpha, window_size=t.smoothing_window),
        clock=SessionClock(),
        noise_floor_m=t.noise_floor_m,
    )


def build_client(cfg: TrackdashConfig, mock: bool = False) -> AsyncGPSClient:
    """Create the gpsd client, or the simulator when mock mode is on."""
    g = cfg.gps
    if mock or g.mock_mode:
        return MockGPSClient(
            start_lat=g.mock_lat,
            start_lon=g.mock_lon,
            speed_mps=g.mock_speed_mps,
            interval=cfg.tracking.tick_interval_sec,
        )
    return AsyncGPSClient(
        GPSClientConfig(
            host=g.host,
            port=g.port,
            timeout=g.timeout,
            reconnect_delay=g.reconnect_delay,
        )
    )


class TrackerService:
    """
    Runs one tracking session against a live location client.

    Usage:
        service = TrackerService(AsyncGPSClient())
        await service.start()      # raises SensingUnavailable without gpsd
        ...
        print(service.metrics())
        await service.stop()
    """

    def __init__(
        self,
        client: AsyncGPSClient,
        session: TrackSession | None = None,
        bus: EventBus | None = None,
        tick_interval: float = 1.0,
        restart_delay: float = 1.0,
    ) -> None:
        self.client = client
        self.session = session if session is not None else TrackSession()
        self.bus = bus
        self.tick_interval = tick_interval
        self.restart_delay = restart_delay
        self._fix_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None

        self.session.on_status(self._on_status)
        self.client.on_error(self._on_sensing_failure)

    @classmethod
    def from_config(
        cls, cfg: TrackdashConfig, bus: EventBus | None = None, mock: bool = False
    ) -> TrackerService:
        return cls(
            client=build_client(cfg, mock=mock),
            session=build_session(cfg),
            bus=bus,
            tick_interval=cfg.tracking.tick_interval_sec,
            restart_delay=cfg.gps.reconnect_delay,
        )

    @property
    def is_running(self) -> bool:
        return self.session.is_running

    def metrics(self) -> TrackMetrics:
        return self.session.metrics()

    def _publish(self, event_type: EventType, data: object = None) -> None:
        if self.bus is not None:
            self.bus.emit_nowait(event_type, data=data, source="tracker")

    def _on_status(self, status: TrackStatus, message: Optional[str]) -> None:
        self._publish(EventType.STATUS_CHANGED, self.metrics())

    def _on_sensing_failure(self, failure: SensingFailure) -> None:
        self.session.on_sensing_error(str(failure))

    async def start(self) -> None:
        """
        Start a fresh session.

        Raises:
            SensingUnavailable: the location client cannot be reached.
        """
        if self.session.is_running:
            await self.stop()

        if not await self.client.connect():
            raise SensingUnavailable(
                "Geolocation not available: could not connect to location provider"
            )

        self.session.start()
        self._fix_task = asyncio.create_task(self._consume_fixes())
        self._tick_task = asyncio.create_task(self._tick_loop())
        logger.info("Tracker started (tick every %.1fs)", self.tick_interval)

    async def stop(self) -> None:
        """Stop the session, then cancel the fix subscription and the timer."""
        # Freeze state first so nothing in flight can mutate it
        self.session.stop()

        for task in (self._fix_task, self._tick_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._fix_task = None
        self._tick_task = None

        await self.client.stop()
        logger.info("Tracker stopped")

    async def _consume_fixes(self) -> None:
        """
        Feed fixes into the session until stopped.

        A location stream that fails or ends while the session is running is
        surfaced as a sensing error and re-subscribed after ``restart_delay``.
        """
        while self.session.is_running:
            try:
                async for fix in self.client.stream_fixes():
                    if not self.session.is_running:
                        return
                    # Status listeners publish the resulting metrics
                    self.session.on_fix(fix)
            except Exception as e:
                logger.error("Location stream failed: %s", e)
                self.session.on_sensing_error(f"Location stream failed: {e}")
            else:
                self.session.on_sensing_error("Location stream ended")
            await asyncio.sleep(self.restart_delay)

    async def _tick_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.tick_interval
        while self.session.is_running:
            # Sleep to the scheduled tick rather than a fixed delay to avoid drift
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            next_tick += self.tick_interval
            self.session.tick()
            self._publish(EventType.METRICS_UPDATE, self.metrics())
