"""Terminal rendering of tracking metrics."""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from ...domain.models import TrackMetrics, TrackStatus

MPS_TO_KPH = 3.6
MPS_TO_MPH = 2.23694
M_TO_MILES = 0.000621371

STATUS_LABELS: dict[TrackStatus, tuple[str, str]] = {
    TrackStatus.TRACKING_ACTIVE: ("GPS Active", "green"),
    TrackStatus.LOW_ACCURACY: ("Low Accuracy", "yellow"),
    TrackStatus.SENSING_ERROR: ("GPS Error", "red"),
    TrackStatus.STOPPED: ("Stopped", "dim"),
}


def format_elapsed(seconds: int) -> str:
    """Format seconds as mm:ss (minutes keep counting past 59)."""
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def speed_display(mps: float, metric: bool = True) -> tuple[str, str]:
    if metric:
        return f"{mps * MPS_TO_KPH:.1f}", "km/h"
    return f"{mps * MPS_TO_MPH:.1f}", "mph"


def distance_display(meters: float, metric: bool = True) -> tuple[str, str]:
    if metric:
        return f"{meters / 1000:.2f}", "km"
    return f"{meters * M_TO_MILES:.2f}", "mi"


def speed_color(value: float) -> str:
    """Colour for the speed figure as displayed, in km/h or mph."""
    if value < 20:
        return "green"
    if value < 35:
        return "yellow"
    return "red"


def render_dashboard(metrics: TrackMetrics, metric: bool = True) -> Panel:
    """Build the rich panel showing speed, distance, time and GPS status."""
    speed, speed_unit = speed_display(metrics.speed_mps, metric)
    distance, distance_unit = distance_display(metrics.distance_m, metric)
    label, style = STATUS_LABELS[metrics.status]

    table = Table.grid(padding=(0, 2))
    table.add_column(justify="right", style="bold")
    table.add_column(justify="right")
    table.add_column()
    table.add_row(
        "Speed",
        f"[{speed_color(float(speed))}]{speed}[/]",
        speed_unit,
    )
    table.add_row("Distance", distance, distance_unit)
    table.add_row("Time", format_elapsed(metrics.elapsed_seconds), "")
    table.add_row("GPS", f"[{style}]● {label}[/]", metrics.message or "")

    return Panel(table, title="trackdash", expand=False)
