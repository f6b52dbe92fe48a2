"""
trackdash Event Bus - Async Pub/Sub Event System
================================================

Decouples the tracking core from rendering collaborators: the tracker
service publishes status changes and metric snapshots, displays subscribe.

Usage:
    bus = EventBus()

    @bus.on(EventType.METRICS_UPDATE)
    async def render(event: Event):
        print(f"Speed: {event.data.speed_mps:.1f} m/s")

    await bus.start()
    bus.emit_nowait(EventType.METRICS_UPDATE, data=metrics)
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Coroutine, TypeAlias

logger = logging.getLogger(__name__)

AsyncHandler: TypeAlias = Callable[["Event"], Coroutine[Any, Any, None]]


class EventType(Enum):
    STATUS_CHANGED = auto()
    METRICS_UPDATE = auto()


@dataclass(frozen=True)
class Event:
    type: EventType
    data: Any = None
    timestamp: float = field(default_factory=time.time)
    source: str = "system"


class EventBus:
    """
    Async event bus with pub/sub pattern.

    Events emitted while the bus is not running are dropped, so a bus that
    was never started does not accumulate a backlog.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[AsyncHandler]] = {}
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._running = False
        self._task: asyncio.Task | None = None
        self.handler_errors = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, event_type: EventType, handler: AsyncHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(
            "Subscribed to %s: %s",
            event_type.name,
            getattr(handler, "__name__", repr(handler)),
        )

    def unsubscribe(self, event_type: EventType, handler: AsyncHandler) -> bool:
        """Remove a handler. Returns True if found."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def on(self, event_type: EventType) -> Callable[[AsyncHandler], AsyncHandler]:
        """Decorator for subscribing to events."""
        def decorator(handler: AsyncHandler) -> AsyncHandler:
            self.subscribe(event_type, handler)
            return handler
        return decorator

    def emit_nowait(
        self,
        event_type: EventType,
        data: Any = None,
        source: str = "system",
    ) -> Event | None:
        """Emit from synchronous code running on the bus's event loop."""
        if not self._running:
            logger.debug("Event bus not running, dropping %s", event_type.name)
            return None
        event = Event(type=event_type, data=data, source=source)
        self._queue.put_nowait(event)
        return event

    async def start(self) -> None:
        """Start the event processing loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._process_loop())
        logger.info("Event bus started")

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop the event bus gracefully, draining queued events first."""
        if self._task:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Event queue drain timeout, forcing stop")

            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self._running = False
        logger.info("Event bus stopped")

    async def _process_loop(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._dispatch(event)
            finally:
                self._queue.task_done()

    async def _dispatch(self, event: Event) -> None:
        """Dispatch event to all handlers, isolating handler errors."""
        for handler in list(self._handlers.get(event.type, [])):
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    "Handler error for %s: %s - %s",
                    event.type.name,
                    getattr(handler, "__name__", repr(handler)),
                    e,
                )
                self.handler_errors += 1
