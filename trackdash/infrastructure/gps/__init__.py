"""GPS infrastructure - gpsd client and simulator."""

from .gpsd_client import AsyncGPSClient, GPSClientConfig, MockGPSClient, parse_tpv

__all__ = [
    "AsyncGPSClient",
    "GPSClientConfig",
    "MockGPSClient",
    "parse_tpv",
]
