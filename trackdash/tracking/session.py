"""
Track Session
=============

Owns the accumulated distance, the last accepted position, the speed
smoother and the session clock for one tracking run.

Lifecycle: Idle -> start() -> Running -> stop() -> Idle. After stop() the
derived values stay readable but no longer change; a new start() begins a
clean session.

Usage:
    session = TrackSession()
    session.start()

    session.on_fix(fix)        # from the location provider
    session.tick()             # from a 1 Hz timer

    print(session.current_distance_meters(), session.current_speed_mps())
    session.stop()
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..domain.models import GeoFix, Position, TrackMetrics, TrackStatus
from .clock import SessionClock
from .gate import AccuracyGate
from .geo import great_circle_distance
from .smoothing import SpeedSmoother

logger = logging.getLogger(__name__)

DEFAULT_NOISE_FLOOR_M = 0.1

StatusCallback = Callable[[TrackStatus, Optional[str]], None]


class TrackSession:
    """
    Stateful orchestrator for fix filtering and accumulation.

    All mutating operations take the same lock, so fixes and clock ticks
    arriving from different threads are serialized and a fix racing stop()
    is either fully applied or fully discarded.
    """

    def __init__(
        self,
        gate: AccuracyGate | None = None,
        smoother: SpeedSmoother | None = None,
        clock: SessionClock | None = None,
        noise_floor_m: float = DEFAULT_NOISE_FLOOR_M,
    ) -> None:
        self.gate = gate if gate is not None else AccuracyGate()
        self.smoother = smoother if smoother is not None else SpeedSmoother()
        self.clock = clock if clock is not None else SessionClock()
        self.noise_floor_m = noise_floor_m

        self._lock = threading.RLock()
        self._running = False
        self._distance_m = 0.0
        self._last_position: Optional[Position] = None
        self._status = TrackStatus.STOPPED
        self._message: Optional[str] = None
        self._callbacks: list[StatusCallback] = []

        self.accepted_fixes = 0
        self.rejected_fixes = 0

    # -- listeners ---------------------------------------------------------

    def on_status(self, callback: StatusCallback) -> None:
        """Register callback for status signals."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: StatusCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _signal(self, status: TrackStatus, message: Optional[str] = None) -> None:
        self._status = status
        self._message = message
        for cb in self._callbacks:
            try:
                cb(status, message)
            except Exception as e:
                logger.error("Status callback error: %s", e)

    # -- lifecycle ---------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Begin a fresh session. Re-initializes if already running."""
        with self._lock:
            self._distance_m = 0.0
            self._last_position = None
            self.smoother.reset()
            self.clock.reset()
            self.clock.start()
            self.accepted_fixes = 0
            self.rejected_fixes = 0
            self._running = True
            logger.info("Tracking session started")
            self._signal(TrackStatus.TRACKING_ACTIVE, "Tracking in progress")

    def stop(self) -> None:
        """Freeze distance and elapsed time; clear the speed history."""
        with self._lock:
            self._running = False
            self.clock.stop()
            self.smoother.reset()
            logger.info(
                "Tracking session stopped: %.1fm in %ds (%d fixes accepted, %d rejected)",
                self._distance_m,
                self.clock.elapsed_seconds,
                self.accepted_fixes,
                self.rejected_fixes,
            )
            self._signal(TrackStatus.STOPPED, "Tracking stopped")

    # -- inputs ------------------------------------------------------------

    def on_fix(self, fix: GeoFix) -> bool:
        """
        Consume one fix from the location provider.

        Returns:
            True if the fix was accepted, False if ignored or rejected.
        """
        with self._lock:
            if not self._running:
                return False

            if not self.gate.accept(fix.accuracy):
                self.rejected_fixes += 1
                logger.debug(
                    "Fix rejected: accuracy %.1fm > %.1fm",
                    fix.accuracy,
                    self.gate.max_accuracy_m,
                )
                self._signal(
                    TrackStatus.LOW_ACCURACY,
                    "Low GPS accuracy, waiting for a better signal",
                )
                return False

            position = fix.position
            if self._last_position is not None:
                delta = great_circle_distance(
                    self._last_position.latitude,
                    self._last_position.longitude,
                    position.latitude,
                    position.longitude,
                )
                # Sub-floor deltas are jitter at rest
                if delta > self.noise_floor_m:
                    self._distance_m += delta

            # Base point advances even when the delta was discarded
            self._last_position = position
            self.smoother.update(fix.speed)
            self.accepted_fixes += 1

            self._signal(TrackStatus.TRACKING_ACTIVE, "Tracking in progress")
            return True

    def on_sensing_error(self, message: str) -> None:
        """Surface a per-event location failure. The session keeps running."""
        with self._lock:
            if not self._running:
                return
            logger.warning("Location sensing error: %s", message)
            self._signal(TrackStatus.SENSING_ERROR, message)

    def tick(self) -> None:
        """Advance elapsed time by one second (only while running)."""
        with self._lock:
            if self._running:
                self.clock.tick()

    # -- getters -----------------------------------------------------------

    def current_distance_meters(self) -> float:
        return self._distance_m

    def current_speed_mps(self) -> float:
        return self.smoother.current_estimate()

    def elapsed_seconds(self) -> int:
        return self.clock.elapsed_seconds

    @property
    def last_position(self) -> Optional[Position]:
        return self._last_position

    @property
    def status(self) -> TrackStatus:
        return self._status

    @property
    def message(self) -> Optional[str]:
        return self._message

    def metrics(self) -> TrackMetrics:
        """Consistent snapshot of all derived values."""
        with self._lock:
            return TrackMetrics(
                speed_mps=self.current_speed_mps(),
                distance_m=self._distance_m,
                elapsed_seconds=self.clock.elapsed_seconds,
                status=self._status,
                running=self._running,
                message=self._message,
            )
