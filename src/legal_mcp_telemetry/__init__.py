"""
Legal MCP Telemetry

In-process monitoring for the Legal MCP server: execution traces, resource
sampling, periodic health checks and threshold alerting, all owned by one
PerformanceMonitor constructed at startup and stopped at shutdown.

Version: 0.1.0
"""

__version__ = "0.1.0"
__description__ = "In-process monitoring, health checks and alerting for the Legal MCP server"

from legal_mcp_telemetry.config.settings import PerformanceMonitorOptions, Settings, get_settings
from legal_mcp_telemetry.core.logging import configure_logging, set_request_context, setup_logging
from legal_mcp_telemetry.monitoring import (
    MetricsCollector,
    PerformanceMonitor,
    Trace,
)

# Initialize logging from TELEMETRY_* settings on import
configure_logging()

__all__ = [
    "__version__",
    "__description__",
    "PerformanceMonitorOptions",
    "Settings",
    "get_settings",
    "configure_logging",
    "set_request_context",
    "setup_logging",
    "MetricsCollector",
    "PerformanceMonitor",
    "Trace",
]
