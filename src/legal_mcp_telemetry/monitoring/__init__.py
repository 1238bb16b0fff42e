"""
Performance Monitoring Module

This module provides the in-process monitoring pipeline:
- Execution trace collection with retention and capacity limits
- Process resource sampling
- Health checks aggregated into healthy / warning / critical
- Threshold alerting with deduplication and bounded history
- A PerformanceMonitor that runs all of the above on a fixed interval
"""

from .alert_manager import AlertManager
from .health_checks import HealthCheckManager
from .metrics_collector import MetricsCollector
from .performance_monitor import PerformanceMonitor
from .resource_monitor import ResourceMonitor
from .trace_collector import TraceCollector
from .types import (
    Alert,
    AlertSeverity,
    AlertType,
    CheckStatus,
    HealthCheck,
    HealthCheckContext,
    HealthCheckResult,
    HealthStatus,
    MonitoringReport,
    PerformanceMonitorStats,
    ResourceUsage,
    Trace,
    TraceAnalysis,
)

__all__ = [
    "AlertManager",
    "HealthCheckManager",
    "MetricsCollector",
    "PerformanceMonitor",
    "ResourceMonitor",
    "TraceCollector",
    "Alert",
    "AlertSeverity",
    "AlertType",
    "CheckStatus",
    "HealthCheck",
    "HealthCheckContext",
    "HealthCheckResult",
    "HealthStatus",
    "MonitoringReport",
    "PerformanceMonitorStats",
    "ResourceUsage",
    "Trace",
    "TraceAnalysis",
]
