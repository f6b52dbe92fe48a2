"""trackdash Core - event bus shared by the tracker service and displays."""

from .events import Event, EventBus, EventType

__all__ = ["Event", "EventBus", "EventType"]
