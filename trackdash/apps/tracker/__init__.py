"""Tracker app - live session service and terminal dashboard."""

from .display import format_elapsed, render_dashboard
from .service import TrackerService, build_client, build_session

__all__ = [
    "TrackerService",
    "build_client",
    "build_session",
    "format_elapsed",
    "render_dashboard",
]
