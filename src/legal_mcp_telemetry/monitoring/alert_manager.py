"""
Alert Management

Evaluates health, resource and trace signals against thresholds and keeps
the lifecycle of each alert: trigger, repeat (count and severity update),
and clear. Every trigger event is also appended to a bounded history.
"""

from collections import OrderedDict, deque
from dataclasses import replace
from typing import Any, Deque, Dict, List, Optional

import structlog

from ..config.settings import AlertOptions
from .types import (
    Alert,
    AlertSeverity,
    AlertType,
    HealthCheckResult,
    HealthStatus,
    ResourceUsage,
    TraceAnalysis,
    utc_now,
)

logger = structlog.get_logger(__name__)

CRITICAL_RESOURCE_USAGE = 0.95
CRITICAL_THRESHOLD_MULTIPLIER = 2


def _exceeds(value: float, threshold: Any) -> bool:
    # A non-numeric threshold never triggers
    try:
        return value > threshold
    except TypeError:
        return False


class AlertManager:
    """
    Threshold alerting with deduplication by alert id.

    The active set holds at most one alert per id and at most
    ``max_active_alerts`` alerts; at capacity the lowest-severity,
    least-recently-seen alert is evicted to admit a new one.
    """

    def __init__(self, options: Optional[AlertOptions] = None):
        self.options = options or AlertOptions()
        self.logger = logger.bind(component="AlertManager")

        self._active_alerts: "OrderedDict[str, Alert]" = OrderedDict()
        self._alert_history: Deque[Alert] = deque(maxlen=self.options.alert_history)
        self._alerts_triggered = 0

    @property
    def thresholds(self):
        return self.options.thresholds

    def process_health_check(self, result: HealthCheckResult) -> None:
        """Raise or clear ``health_<name>`` for every check in the result."""

        if self.options.disabled:
            return

        severity = (
            AlertSeverity.CRITICAL if result.status is HealthStatus.CRITICAL
            else AlertSeverity.WARNING
        )

        for check_name, check in result.checks.items():
            alert_id = f"health_{check_name}"
            if check.failed:
                self.trigger_alert(Alert(
                    id=alert_id,
                    type=AlertType.HEALTH_CHECK,
                    severity=severity,
                    message=check.message,
                    timestamp=utc_now(),
                    data={"check_name": check_name, **check.to_dict()},
                ))
            else:
                self.clear_alert(alert_id)

    def process_resource_usage(self, usage: ResourceUsage) -> None:
        """Raise or clear ``resource_memory`` and ``resource_cpu``."""

        if self.options.disabled:
            return

        memory_percent = usage.memory.usage_percent
        if _exceeds(memory_percent, self.thresholds.memory_usage):
            self.trigger_alert(Alert(
                id="resource_memory",
                type=AlertType.RESOURCE,
                severity=self._resource_severity(memory_percent),
                message=f"High memory usage: {memory_percent * 100:.1f}%",
                timestamp=utc_now(),
                data={"memory_usage": usage.to_dict()["memory"]},
            ))
        else:
            self.clear_alert("resource_memory")

        cpu_percent = usage.cpu.usage_percent
        if _exceeds(cpu_percent, self.thresholds.cpu_usage):
            self.trigger_alert(Alert(
                id="resource_cpu",
                type=AlertType.RESOURCE,
                severity=self._resource_severity(cpu_percent),
                message=f"High CPU usage: {cpu_percent * 100:.1f}%",
                timestamp=utc_now(),
                data={"cpu_usage": usage.to_dict()["cpu"]},
            ))
        else:
            self.clear_alert("resource_cpu")

    def process_trace_analysis(self, analysis: TraceAnalysis) -> None:
        """Raise or clear ``performance_response_time`` and ``performance_error_rate``."""

        if self.options.disabled:
            return

        response_time = analysis.average_response_time
        response_threshold = self.thresholds.response_time_ms
        if _exceeds(response_time, response_threshold):
            self.trigger_alert(Alert(
                id="performance_response_time",
                type=AlertType.PERFORMANCE,
                severity=self._performance_severity(response_time, response_threshold),
                message=f"High response time: {response_time:.0f}ms",
                timestamp=utc_now(),
                data={"response_time": response_time},
            ))
        else:
            self.clear_alert("performance_response_time")

        error_rate = analysis.error_rate
        error_threshold = self.thresholds.error_rate
        if _exceeds(error_rate, error_threshold):
            self.trigger_alert(Alert(
                id="performance_error_rate",
                type=AlertType.PERFORMANCE,
                severity=self._performance_severity(error_rate, error_threshold),
                message=f"High error rate: {error_rate * 100:.1f}%",
                timestamp=utc_now(),
                data={"error_rate": error_rate},
            ))
        else:
            self.clear_alert("performance_error_rate")

    @staticmethod
    def _resource_severity(value: float) -> AlertSeverity:
        if value > CRITICAL_RESOURCE_USAGE:
            return AlertSeverity.CRITICAL
        return AlertSeverity.WARNING

    @staticmethod
    def _performance_severity(value: float, threshold: float) -> AlertSeverity:
        if value > threshold * CRITICAL_THRESHOLD_MULTIPLIER:
            return AlertSeverity.CRITICAL
        return AlertSeverity.WARNING

    def trigger_alert(self, alert: Alert) -> Alert:
        """
        Record a trigger event for ``alert.id``.

        A repeat of an active alert bumps its count, refreshes ``last_seen``
        and takes the new severity, message and data; the original trigger
        timestamp is kept. A new alert starts at count 1.
        """
        existing = self._active_alerts.get(alert.id)

        if existing is not None:
            existing.count += 1
            existing.last_seen = alert.timestamp
            existing.message = alert.message
            existing.data = alert.data
            if existing.severity is not alert.severity:
                self.logger.info("Alert severity changed",
                                 alert_id=alert.id,
                                 previous=existing.severity.value,
                                 severity=alert.severity.value)
                existing.severity = alert.severity
            self._active_alerts.move_to_end(alert.id)
            current = existing
        else:
            if len(self._active_alerts) >= self.options.max_active_alerts:
                self._evict_one()

            alert.count = 1
            alert.last_seen = alert.timestamp
            self._active_alerts[alert.id] = alert
            self._alerts_triggered += 1
            current = alert

            self.logger.warning("Alert triggered",
                                alert_id=alert.id,
                                type=alert.type.value,
                                severity=alert.severity.value,
                                message=alert.message)

        self._alert_history.append(replace(current))
        return current

    def _evict_one(self) -> None:
        # Active alerts are ordered least- to most-recently seen
        victim = min(self._active_alerts.values(), key=lambda a: a.severity.rank)
        del self._active_alerts[victim.id]

        self.logger.warning("Active alert evicted at capacity",
                            alert_id=victim.id,
                            severity=victim.severity.value,
                            max_active_alerts=self.options.max_active_alerts)

    def clear_alert(self, alert_id: str) -> None:
        """Drop ``alert_id`` from the active set; history is untouched."""

        alert = self._active_alerts.pop(alert_id, None)
        if alert is None:
            return

        duration = utc_now() - alert.timestamp
        self.logger.info("Alert cleared",
                         alert_id=alert_id,
                         type=alert.type.value,
                         duration_ms=int(duration.total_seconds() * 1000))

    def get_active_alerts(self) -> List[Alert]:
        """Copies of the active alerts, least recently seen first."""
        return [replace(alert) for alert in self._active_alerts.values()]

    def get_active_alert(self, alert_id: str) -> Optional[Alert]:
        return self._active_alerts.get(alert_id)

    def get_alerts_triggered(self) -> int:
        """Lifetime count of first-trigger events."""
        return self._alerts_triggered

    def get_alert_history(self) -> List[Alert]:
        return list(self._alert_history)

    def get_summary(self) -> Dict[str, Any]:
        """Active alert counts by severity."""
        by_severity = {severity.value: 0 for severity in AlertSeverity}
        for alert in self._active_alerts.values():
            by_severity[alert.severity.value] += 1
        return {
            "active": len(self._active_alerts),
            "by_severity": by_severity,
            "triggered_total": self._alerts_triggered,
            "history_size": len(self._alert_history),
        }
