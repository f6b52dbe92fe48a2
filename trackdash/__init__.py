"""trackdash - live speed, distance and duration from a noisy GPS stream."""

__version__ = "0.1.0"
