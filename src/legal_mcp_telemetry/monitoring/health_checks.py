"""
Health Check Management

Runs the metrics, resources and performance checks against the process's
own subsystems and folds them into one healthy / warning / critical status.
"""

import asyncio
from typing import Any, Dict, Mapping, Optional

import structlog

from ..config.settings import PERFORMANCE_GRADES, HealthCheckOptions
from .types import (
    CheckStatus,
    HealthCheck,
    HealthCheckContext,
    HealthCheckResult,
    HealthStatus,
    ResourceSource,
    TraceSource,
    utc_now,
)

logger = structlog.get_logger(__name__)

RESOURCE_USAGE_LIMIT = 0.9
RESPONSE_TIME_LIMIT_MS = 3000
ERROR_RATE_LIMIT = 0.1


def meets_grade(grade: Any, minimum: str) -> bool:
    """True if ``grade`` is ``minimum`` or better on the A (best) to F scale."""
    if not isinstance(grade, str) or grade.upper() not in PERFORMANCE_GRADES:
        return False
    return PERFORMANCE_GRADES.index(grade.upper()) <= PERFORMANCE_GRADES.index(minimum)


def aggregate_status(checks: Mapping[str, HealthCheck]) -> HealthStatus:
    """No failures is healthy, one is a warning, two or more is critical."""
    failed = sum(1 for check in checks.values() if check.failed)
    if failed == 0:
        return HealthStatus.HEALTHY
    if failed == 1:
        return HealthStatus.WARNING
    return HealthStatus.CRITICAL


class HealthCheckManager:
    """Runs all health checks and retains the last result."""

    def __init__(self, options: Optional[HealthCheckOptions] = None):
        self.options = options or HealthCheckOptions()
        self.logger = logger.bind(component="HealthCheckManager")

        self._last_result: Optional[HealthCheckResult] = None
        self._checks_performed = 0

    async def run_all_checks(self, context: HealthCheckContext) -> HealthCheckResult:
        """
        Run every check and aggregate them.

        Never raises: a failure while running the checks yields a critical
        result with a single failing ``system`` check.
        """
        if self.options.disabled:
            return HealthCheckResult(
                status=HealthStatus.HEALTHY,
                checks={},
                timestamp=utc_now(),
            )

        self._checks_performed += 1
        checks: Dict[str, HealthCheck] = {}

        try:
            checks["metrics"] = self._check_metrics(context.metrics)
            checks["resources"] = await self._check_resources(context.resource_monitor)
            checks["performance"] = self._check_performance(context.trace_collector)

            self._last_result = HealthCheckResult(
                status=aggregate_status(checks),
                checks=checks,
                timestamp=utc_now(),
            )

        except Exception as e:
            self.logger.error("Health check failed", error=str(e), exc_info=True)

            now = utc_now()
            self._last_result = HealthCheckResult(
                status=HealthStatus.CRITICAL,
                checks={
                    "system": HealthCheck(
                        status=CheckStatus.FAIL,
                        message=f"Health check system error: {e}",
                        timestamp=now,
                    )
                },
                timestamp=now,
            )

        return self._last_result

    def _check_metrics(self, metrics) -> HealthCheck:
        metrics_data = metrics.get_metrics()
        summary = metrics.get_performance_summary()
        grade = summary.get("performance_grade")

        passed = meets_grade(grade, self.options.minimum_grade)
        return HealthCheck(
            status=CheckStatus.PASS if passed else CheckStatus.FAIL,
            message=f"Performance grade: {grade}",
            timestamp=utc_now(),
            data={
                "grade": grade,
                "success_rate": summary.get("success_rate"),
                "response_time": metrics_data.get("average_response_time"),
            },
        )

    async def _check_resources(self, resource_monitor: ResourceSource) -> HealthCheck:
        timeout = self.options.timeout_ms / 1000.0
        try:
            usage = await asyncio.wait_for(resource_monitor.get_resource_usage(), timeout)
        except asyncio.TimeoutError:
            return HealthCheck(
                status=CheckStatus.FAIL,
                message=f"Resource check timed out after {self.options.timeout_ms}ms",
                timestamp=utc_now(),
            )
        except Exception as e:
            return HealthCheck(
                status=CheckStatus.FAIL,
                message=f"Resource check failed: {e}",
                timestamp=utc_now(),
            )

        memory_ok = usage.memory.usage_percent < RESOURCE_USAGE_LIMIT
        cpu_ok = usage.cpu.usage_percent < RESOURCE_USAGE_LIMIT

        return HealthCheck(
            status=CheckStatus.PASS if memory_ok and cpu_ok else CheckStatus.FAIL,
            message=(
                f"Memory: {usage.memory.usage_percent * 100:.1f}%, "
                f"CPU: {usage.cpu.usage_percent * 100:.1f}%"
            ),
            timestamp=utc_now(),
            data=usage.to_dict(),
        )

    def _check_performance(self, trace_collector: TraceSource) -> HealthCheck:
        analysis = trace_collector.get_analysis()
        response_time_ok = analysis.average_response_time < RESPONSE_TIME_LIMIT_MS
        error_rate_ok = analysis.error_rate < ERROR_RATE_LIMIT

        return HealthCheck(
            status=CheckStatus.PASS if response_time_ok and error_rate_ok else CheckStatus.FAIL,
            message=(
                f"Avg response: {analysis.average_response_time:.0f}ms, "
                f"Error rate: {analysis.error_rate * 100:.1f}%"
            ),
            timestamp=utc_now(),
            data=analysis.to_dict(),
        )

    def get_last_result(self) -> Optional[HealthCheckResult]:
        return self._last_result

    def get_checks_performed(self) -> int:
        return self._checks_performed
