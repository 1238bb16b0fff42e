"""
Data model for the monitoring pipeline.

Records produced by the collectors and managers are dataclasses with a
``to_dict`` method returning a JSON-ready mapping (ISO-8601 timestamps,
enum values as strings). The read-only protocols at the bottom are the
narrow interfaces the health checks consume.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol
from uuid import uuid4


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class CheckStatus(Enum):
    """Outcome of a single health check."""
    PASS = "pass"
    FAIL = "fail"


class HealthStatus(Enum):
    """Aggregate health of the process."""
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertType(Enum):
    """Signal family an alert was raised from."""
    HEALTH_CHECK = "health_check"
    RESOURCE = "resource"
    PERFORMANCE = "performance"


class AlertSeverity(Enum):
    """Alert severity tiers, ordered by ``rank``."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    AlertSeverity.INFO: 0,
    AlertSeverity.WARNING: 1,
    AlertSeverity.CRITICAL: 2,
}


@dataclass(frozen=True)
class Trace:
    """One completed operation, as reported by request-handling code."""

    id: str
    operation: str
    timestamp: datetime
    duration: float  # ms
    error: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def create(cls,
               operation: str,
               duration_ms: float,
               error: Optional[str] = None,
               metadata: Optional[Dict[str, Any]] = None) -> "Trace":
        """Build a trace stamped with a fresh id and the current time."""
        return cls(
            id=str(uuid4()),
            operation=operation,
            timestamp=utc_now(),
            duration=duration_ms,
            error=error,
            metadata=metadata,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "operation": self.operation,
            "timestamp": self.timestamp.isoformat(),
            "duration": self.duration,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.metadata is not None:
            data["metadata"] = dict(self.metadata)
        return data


@dataclass
class OperationStats:
    """Per-operation count and running mean duration."""
    count: int = 0
    avg_duration: float = 0.0


@dataclass
class SlowOperation:
    operation: str
    duration: float
    timestamp: datetime


@dataclass
class RecentError:
    operation: str
    error: str
    timestamp: datetime


@dataclass
class TraceAnalysis:
    """Statistics derived from the live trace buffer."""

    total_traces: int = 0
    average_response_time: float = 0.0
    error_rate: float = 0.0
    operation_breakdown: Dict[str, OperationStats] = field(default_factory=dict)
    slowest_operations: List[SlowOperation] = field(default_factory=list)
    recent_errors: List[RecentError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_traces": self.total_traces,
            "average_response_time": self.average_response_time,
            "error_rate": self.error_rate,
            "operation_breakdown": {
                name: {"count": stats.count, "avg_duration": stats.avg_duration}
                for name, stats in self.operation_breakdown.items()
            },
            "slowest_operations": [
                {
                    "operation": op.operation,
                    "duration": op.duration,
                    "timestamp": op.timestamp.isoformat(),
                }
                for op in self.slowest_operations
            ],
            "recent_errors": [
                {
                    "operation": err.operation,
                    "error": err.error,
                    "timestamp": err.timestamp.isoformat(),
                }
                for err in self.recent_errors
            ],
        }


@dataclass
class MemoryUsage:
    used: int = 0
    total: int = 0
    usage_percent: float = 0.0  # fraction, 0..1


@dataclass
class CpuUsage:
    usage_percent: float = 0.0  # fraction, 0..1


@dataclass
class ResourceUsage:
    """One resource sample of the current process."""

    timestamp: datetime
    memory: MemoryUsage = field(default_factory=MemoryUsage)
    cpu: CpuUsage = field(default_factory=CpuUsage)
    uptime: int = 0  # seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "memory": {
                "used": self.memory.used,
                "total": self.memory.total,
                "usage_percent": self.memory.usage_percent,
            },
            "cpu": {"usage_percent": self.cpu.usage_percent},
            "uptime": self.uptime,
        }


@dataclass
class HealthCheck:
    """Result of one named check."""

    status: CheckStatus
    message: str
    timestamp: datetime
    data: Optional[Dict[str, Any]] = None

    @property
    def failed(self) -> bool:
        return self.status is CheckStatus.FAIL

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "status": self.status.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class HealthCheckResult:
    """Aggregate of all checks run in one pass."""

    status: HealthStatus
    checks: Dict[str, HealthCheck]
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "checks": {name: check.to_dict() for name, check in self.checks.items()},
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Alert:
    """A threshold breach; ``id`` is deterministic per signal."""

    id: str
    type: AlertType
    severity: AlertSeverity
    message: str
    timestamp: datetime  # first trigger
    data: Optional[Dict[str, Any]] = None
    count: int = 1
    last_seen: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "count": self.count,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
        }
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class MonitoringReport:
    """Point-in-time snapshot for operators."""

    timestamp: datetime
    metrics: Dict[str, Any]
    traces: TraceAnalysis
    alerts: List[Alert]
    performance: Dict[str, Any]
    health: Optional[HealthCheckResult] = None
    resources: Optional[ResourceUsage] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "timestamp": self.timestamp.isoformat(),
            "metrics": self.metrics,
            "traces": self.traces.to_dict(),
            "alerts": [alert.to_dict() for alert in self.alerts],
            "performance": self.performance,
        }
        if self.health is not None:
            result["health"] = self.health.to_dict()
        if self.resources is not None:
            result["resources"] = self.resources.to_dict()
        return result


@dataclass
class PerformanceMonitorStats:
    """Lifetime counters of the pipeline."""

    uptime: int
    checks_performed: int
    alerts_triggered: int
    traces_collected: int
    resource_usage: Optional[ResourceUsage] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "uptime": self.uptime,
            "checks_performed": self.checks_performed,
            "alerts_triggered": self.alerts_triggered,
            "traces_collected": self.traces_collected,
        }
        if self.resource_usage is not None:
            result["resource_usage"] = self.resource_usage.to_dict()
        return result


class MetricsSource(Protocol):
    """Request metrics consumed by the metrics health check.

    ``get_performance_summary`` must carry ``performance_grade`` (A-F),
    ``success_rate`` and ``average_response_time``.
    """

    def get_metrics(self) -> Mapping[str, Any]: ...

    def get_performance_summary(self) -> Mapping[str, Any]: ...


class ResourceSource(Protocol):
    async def get_resource_usage(self) -> ResourceUsage: ...

    def get_last_usage(self) -> Optional[ResourceUsage]: ...

    def get_start_time(self) -> datetime: ...


class TraceSource(Protocol):
    def analyze_traces(self) -> TraceAnalysis: ...

    def get_analysis(self) -> TraceAnalysis: ...

    def get_traces_collected(self) -> int: ...


@dataclass
class HealthCheckContext:
    """Collaborators a health check pass reads from."""

    metrics: MetricsSource
    resource_monitor: ResourceSource
    trace_collector: TraceSource
