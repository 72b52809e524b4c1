from __future__ import annotations


class GlucoseMonitorError(Exception):
    """Base class for all service errors."""


class ConfigError(GlucoseMonitorError):
    """Missing or invalid configuration at startup. Fatal."""


class FetchError(GlucoseMonitorError):
    """Reading source unreachable or returned unusable data. Skip the tick."""


class InvalidReading(FetchError):
    """A record whose value is missing, non-numeric or not finite."""


class NotifyError(GlucoseMonitorError):
    """Notifier call failed. Logged, never retried within the same cycle."""
