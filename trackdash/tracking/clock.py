"""Elapsed-time counter for a tracking session."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SessionClock:
    """
    Integer-second counter advanced by an external 1 Hz tick.

    The tick count is authoritative; no wall-clock alignment is attempted.
    """

    elapsed_seconds: int = 0
    running: bool = False

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False

    def tick(self) -> None:
        """Advance by one second. No effect while stopped."""
        if self.running:
            self.elapsed_seconds += 1

    def reset(self) -> None:
        self.elapsed_seconds = 0
