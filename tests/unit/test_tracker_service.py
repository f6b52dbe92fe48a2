"""Unit tests for the tracker service wiring."""

from __future__ import annotations

import asyncio
import json

import pytest

from trackdash.apps.tracker.service import TrackerService
from trackdash.config import TrackdashConfig
from trackdash.core.events import Event, EventBus, EventType
from trackdash.domain.models import GeoFix, TrackMetrics, TrackStatus
from trackdash.infrastructure.gps.gpsd_client import AsyncGPSClient, GPSClientConfig, MockGPSClient
from trackdash.tracking.errors import SensingUnavailable

pytestmark = pytest.mark.asyncio


class QueueGPSClient(AsyncGPSClient):
    """Location client fed by the test through a queue."""

    def __init__(self, available: bool = True) -> None:
        super().__init__()
        self.fixes: asyncio.Queue[GeoFix] = asyncio.Queue()
        self.available = available
        self.stopped = False

    async def connect(self) -> bool:
        self._state.connected = self.available
        return self.available

    async def disconnect(self) -> None:
        self._state.connected = False

    async def stream_fixes(self):
        self._running = True
        while self._running:
            yield await self.fixes.get()

    async def stop(self) -> None:
        self.stopped = True
        await super().stop()


def fix(lon: float, accuracy: float = 5.0, speed: float = 5.0) -> GeoFix:
    return GeoFix(latitude=0.0, longitude=lon, accuracy=accuracy, speed=speed)


async def settle() -> None:
    await asyncio.sleep(0.02)


async def test_fixes_flow_into_session():
    client = QueueGPSClient()
    service = TrackerService(client, tick_interval=60)
    await service.start()

    client.fixes.put_nowait(fix(0.0))
    client.fixes.put_nowait(fix(0.001))
    client.fixes.put_nowait(fix(0.002, accuracy=50))
    await settle()

    m = service.metrics()
    assert m.distance_m == pytest.approx(111.2, rel=0.01)
    assert m.speed_mps == pytest.approx(5.0)
    assert m.status == TrackStatus.LOW_ACCURACY

    await service.stop()
    assert client.stopped
    assert not service.is_running


async def test_unavailable_sensing_prevents_start():
    service = TrackerService(QueueGPSClient(available=False))
    with pytest.raises(SensingUnavailable):
        await service.start()
    assert not service.is_running
    assert service.metrics().status == TrackStatus.STOPPED


async def test_sensing_failure_is_not_fatal():
    client = QueueGPSClient()
    service = TrackerService(client, tick_interval=60)
    await service.start()

    client._report_error("Timeout expired")
    assert service.is_running
    assert service.metrics().status == TrackStatus.SENSING_ERROR
    assert service.metrics().message == "Timeout expired"

    client.fixes.put_nowait(fix(0.0))
    await settle()
    assert service.metrics().status == TrackStatus.TRACKING_ACTIVE
    await service.stop()


async def test_timer_ticks_and_stops():
    service = TrackerService(QueueGPSClient(), tick_interval=0.01)
    await service.start()
    await asyncio.sleep(0.1)
    await service.stop()

    elapsed = service.metrics().elapsed_seconds
    assert elapsed >= 1
    await asyncio.sleep(0.05)
    assert service.metrics().elapsed_seconds == elapsed


async def test_fixes_after_stop_are_discarded():
    client = QueueGPSClient()
    service = TrackerService(client, tick_interval=60)
    await service.start()
    client.fixes.put_nowait(fix(0.0))
    await settle()
    await service.stop()

    # A late delivery straight into the session is ignored
    assert service.session.on_fix(fix(0.01)) is False
    assert service.metrics().distance_m == 0.0


async def test_events_published_on_bus():
    bus = EventBus()
    statuses: list[TrackStatus] = []
    snapshots: list[TrackMetrics] = []

    @bus.on(EventType.STATUS_CHANGED)
    async def on_status(event: Event) -> None:
        statuses.append(event.data.status)

    @bus.on(EventType.METRICS_UPDATE)
    async def on_metrics(event: Event) -> None:
        snapshots.append(event.data)

    await bus.start()
    client = QueueGPSClient()
    service = TrackerService(client, bus=bus, tick_interval=0.01)
    await service.start()
    client.fixes.put_nowait(fix(0.0, accuracy=99))
    await asyncio.sleep(0.05)
    await service.stop()
    await bus.stop()

    assert statuses[0] == TrackStatus.TRACKING_ACTIVE
    assert TrackStatus.LOW_ACCURACY in statuses
    assert statuses[-1] == TrackStatus.STOPPED
    assert snapshots
    assert all(isinstance(m, TrackMetrics) for m in snapshots)
    assert snapshots[-1].elapsed_seconds >= 1


async def test_from_config_uses_mock_and_tracking_settings():
    cfg = TrackdashConfig.model_validate(
        {"tracking": {"max_accuracy_m": 8.0, "smoothing_window": 4, "tick_interval_sec": 0.5}}
    )
    service = TrackerService.from_config(cfg, mock=True)

    assert isinstance(service.client, MockGPSClient)
    assert service.session.gate.max_accuracy_m == 8.0
    assert service.session.smoother.window_size == 4
    assert service.tick_interval == 0.5
    assert service.restart_delay == cfg.gps.reconnect_delay


class FlakyGPSClient(QueueGPSClient):
    """First subscription fails (or ends) immediately, later ones use the queue."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        super().__init__()
        self.fail_with = fail_with
        self.subscriptions = 0

    async def stream_fixes(self):
        self.subscriptions += 1
        if self.subscriptions == 1:
            if self.fail_with is not None:
                raise self.fail_with
            return
        async for f in super().stream_fixes():
            yield f


@pytest.mark.parametrize(
    "fail_with, message",
    [
        (ConnectionResetError("socket reset"), "Location stream failed: socket reset"),
        (None, "Location stream ended"),
    ],
)
async def test_broken_location_stream_is_reported_and_resubscribed(fail_with, message):
    client = FlakyGPSClient(fail_with)
    service = TrackerService(client, tick_interval=60, restart_delay=0.05)
    await service.start()
    await settle()

    assert service.is_running
    assert service.metrics().status == TrackStatus.SENSING_ERROR
    assert service.metrics().message == message

    await asyncio.sleep(0.1)
    assert client.subscriptions == 2
    client.fixes.put_nowait(fix(0.0))
    await settle()
    assert service.metrics().status == TrackStatus.TRACKING_ACTIVE
    await service.stop()


async def test_start_while_running_begins_fresh_session():
    client = QueueGPSClient()
    service = TrackerService(client, tick_interval=0.01)
    await service.start()
    client.fixes.put_nowait(fix(0.0))
    client.fixes.put_nowait(fix(0.001))
    await asyncio.sleep(0.05)

    before = service.metrics()
    assert before.distance_m > 0
    assert before.speed_mps > 0
    assert before.elapsed_seconds >= 1

    await service.start()
    assert client.stopped
    assert service.is_running
    after = service.metrics()
    assert after.distance_m == 0.0
    assert after.speed_mps == 0.0
    assert after.elapsed_seconds == 0
    assert after.status == TrackStatus.TRACKING_ACTIVE

    # The new run still receives fixes, with the first one as a fresh base point
    client.fixes.put_nowait(fix(0.002))
    client.fixes.put_nowait(fix(0.003))
    await settle()
    assert service.metrics().distance_m == pytest.approx(111.2, rel=0.01)
    await service.stop()


async def test_stop_without_start():
    client = QueueGPSClient()
    service = TrackerService(client)
    await service.stop()

    assert client.stopped
    assert not service.is_running
    m = service.metrics()
    assert m.status == TrackStatus.STOPPED
    assert m.distance_m == 0.0
    assert m.elapsed_seconds == 0


async def test_malformed_gpsd_lines_do_not_break_tracking():
    lines = [
        b"\xff\xfe garbage\n",
        b"[1, 2]\n",
        b"not json\n",
        (json.dumps({"class": "TPV", "mode": 3, "lat": 0.0, "lon": 0.0, "speed": 2.0, "eph": 4.0}) + "\n").encode(),
        (json.dumps({"class": "TPV", "mode": 3, "lat": 0.0, "lon": 0.001, "speed": 2.0, "eph": 4.0}) + "\n").encode(),
    ]

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        for line in lines:
            writer.write(line)
        await writer.drain()
        await reader.read()
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]

    client = AsyncGPSClient(GPSClientConfig(host="127.0.0.1", port=port, timeout=2.0))
    service = TrackerService(client, tick_interval=60)
    await service.start()
    for _ in range(100):
        if service.session.accepted_fixes == 2:
            break
        await asyncio.sleep(0.01)
    await service.stop()
    server.close()

    assert service.session.accepted_fixes == 2
    assert service.metrics().distance_m == pytest.approx(111.2, rel=0.01)
    assert client.state.error_count == 0
