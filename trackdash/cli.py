from __future__ import annotations

import asyncio
import importlib.metadata as md
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.live import Live

from .apps.tracker.display import render_dashboard
from .apps.tracker.service import TrackerService
from .core.events import Event, EventBus, EventType
from .config import TrackdashConfig, load_config, load_config_or_default, resolve_config_path
from .tracking.errors import SensingUnavailable

# Typer application: tests import this
app = typer.Typer(no_args_is_help=True, add_completion=False, help="trackdash CLI")
console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@app.command()
def version() -> None:
    """Print version information."""
    try:
        dist_version = md.version("trackdash")
    except md.PackageNotFoundError:
        from . import __version__

        dist_version = __version__
    console.print(f"trackdash {dist_version}")
    raise typer.Exit(code=0)


@app.command(name="config-validate")
def config_validate(path: Path = typer.Argument(Path("configs/trackdash.yml"))) -> None:
    """Validate and show resolved configuration."""
    resolved = resolve_config_path(path)
    console.print(f"Using config: {resolved}")
    try:
        cfg: TrackdashConfig = load_config(resolved)
    except (OSError, ValueError) as exc:
        console.print(f"Config validation failed: {exc}")
        raise typer.Exit(code=1) from exc
    console.print("Config OK. Tracking parameters:")
    console.print(f"- max accuracy: {cfg.tracking.max_accuracy_m} m")
    console.print(f"- noise floor: {cfg.tracking.noise_floor_m} m")
    console.print(f"- smoothing: alpha={cfg.tracking.smoothing_alpha} window={cfg.tracking.smoothing_window}")
    console.print(f"- gps: {'mock' if cfg.gps.mock_mode else f'{cfg.gps.host}:{cfg.gps.port}'}")


@app.command()
def config_which(path: Path = typer.Option(Path("configs/trackdash.yml"), "--config", "-c")) -> None:
    """Print resolved config path by priority rules."""
    console.print(str(resolve_config_path(path)))


async def _run_dashboard(
    cfg: TrackdashConfig, mock: bool, duration: float | None, metric: bool
) -> None:
    bus = EventBus()
    service = TrackerService.from_config(cfg, bus=bus, mock=mock)

    with Live(render_dashboard(service.metrics(), metric), console=console, auto_refresh=False) as live:

        async def redraw(event: Event) -> None:
            live.update(render_dashboard(event.data, metric), refresh=True)

        bus.subscribe(EventType.STATUS_CHANGED, redraw)
        bus.subscribe(EventType.METRICS_UPDATE, redraw)
        await bus.start()
        try:
            await service.start()
            try:
                if duration:
                    await asyncio.sleep(duration)
                else:
                    await asyncio.Event().wait()
            finally:
                await service.stop()
        finally:
            await bus.stop()

    console.print(render_dashboard(service.metrics(), metric))


@app.command()
def run(
    config: Path = typer.Option(Path("configs/trackdash.yml"), "--config", "-c"),
    mock: bool = typer.Option(False, "--mock", help="Use simulated GPS instead of gpsd"),
    duration: float | None = typer.Option(None, "--duration", help="Stop after N seconds"),
    imperial: bool = typer.Option(False, "--imperial", help="Show mph and miles"),
) -> None:
    """Start a live tracking session and show the dashboard."""
    try:
        cfg = load_config_or_default(config)
    except (OSError, ValueError) as exc:
        console.print(f"Config validation failed: {exc}")
        raise typer.Exit(code=1) from exc
    _setup_logging(cfg.logging.level)
    metric = cfg.display.metric and not imperial
    try:
        asyncio.run(_run_dashboard(cfg, mock, duration, metric))
    except SensingUnavailable as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        console.print("Tracking stopped.")


def launch() -> None:
    """Entry point when executed as a module/script."""
    sys.exit(cli())


# Click command export (entrypoint)
cli = typer.main.get_command(app)

__all__ = ["app", "cli"]

if __name__ == "__main__":
    launch()
