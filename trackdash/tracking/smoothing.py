"""
Speed Smoother
==============

Stabilizes the instantaneous speed reported by GPS receivers, which jitters
from fix to fix and drops out entirely when the receiver has no velocity
solution.

Each raw reading is first blended with the previous smoothed value
(exponential smoothing), then the reported estimate is the mean of the last
``window_size`` smoothed values.

Usage:
    smoother = SpeedSmoother()

    for fix in fixes:
        smoother.update(fix.speed)
    print(f"{smoother.current_estimate():.1f} m/s")
"""

from __future__ import annotations

import math
from collections import deque

DEFAULT_ALPHA = 0.3
DEFAULT_WINDOW_SIZE = 10


class SpeedSmoother:
    """Bounded-window exponential smoothing filter for speed readings."""

    def __init__(
        self, alpha: float = DEFAULT_ALPHA, window_size: int = DEFAULT_WINDOW_SIZE
    ) -> None:
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self.alpha = alpha
        self.window_size = window_size
        self._history: deque[float] = deque(maxlen=window_size)

    @property
    def history(self) -> tuple[float, ...]:
        """Smoothed values currently in the window, oldest first."""
        return tuple(self._history)

    def update(self, raw_speed: float | None) -> float:
        """
        Feed one raw speed reading.

        Args:
            raw_speed: Instantaneous speed in m/s. None, negative or NaN
                readings count as 0.

        Returns:
            The new windowed estimate in m/s.
        """
        if raw_speed is None or math.isnan(raw_speed) or raw_speed < 0:
            raw_speed = 0.0

        if self._history:
            smoothed = self.alpha * raw_speed + (1 - self.alpha) * self._history[-1]
        else:
            smoothed = raw_speed

        self._history.append(smoothed)
        return self.current_estimate()

    def current_estimate(self) -> float:
        """Mean of the smoothed window, 0.0 when empty."""
        if not self._history:
            return 0.0
        return sum(self._history) / len(self._history)

    def reset(self) -> None:
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history)
