"""
Core exception classes for the Legal MCP telemetry pipeline.

This module defines custom exceptions used throughout the pipeline
for better error handling and debugging.
"""


class TelemetryError(Exception):
    """Base exception for all telemetry pipeline errors."""
    pass


class ConfigurationError(TelemetryError):
    """Raised when monitoring options are malformed."""
    pass


class ResourceSamplingError(TelemetryError):
    """Raised when process resource usage cannot be sampled."""
    pass


class MonitorStateError(TelemetryError):
    """Raised when the monitor is driven from an invalid lifecycle state."""
    pass
