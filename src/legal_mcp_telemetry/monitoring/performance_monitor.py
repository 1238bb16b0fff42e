"""
Performance Monitoring Orchestrator

Owns the trace collector, resource monitor, health check manager and alert
manager, and runs one monitoring cycle per interval:

    health checks -> alerts, resource sample -> alerts, trace analysis -> alerts

Cycles never overlap. The loop arms the next wait only after the current
cycle has finished, and ``run_cycle`` refuses to start while another cycle
is in flight.
"""

import asyncio
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError
import structlog

from ..config.settings import PerformanceMonitorOptions
from ..core.exceptions import ConfigurationError, MonitorStateError
from .alert_manager import AlertManager
from .health_checks import HealthCheckManager
from .resource_monitor import MemoryProbe, ResourceMonitor
from .trace_collector import TraceCollector
from .types import (
    HealthCheckContext,
    HealthCheckResult,
    MetricsSource,
    MonitoringReport,
    PerformanceMonitorStats,
    ResourceUsage,
    Trace,
    TraceAnalysis,
    utc_now,
)

logger = structlog.get_logger(__name__)


def _coerce_options(
    options: Union[PerformanceMonitorOptions, Mapping[str, Any], None]
) -> PerformanceMonitorOptions:
    if options is None:
        return PerformanceMonitorOptions()
    if isinstance(options, PerformanceMonitorOptions):
        return options
    try:
        return PerformanceMonitorOptions.model_validate(dict(options))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid monitoring options: {e}") from e


class PerformanceMonitor:
    """
    Centralized in-process monitoring with health checks and alerting.

    Constructed inside a running event loop, monitoring starts immediately.
    Otherwise call :meth:`start` (or use ``async with``) once a loop runs.
    Call :meth:`stop` at shutdown.
    """

    def __init__(self,
                 metrics: MetricsSource,
                 options: Union[PerformanceMonitorOptions, Mapping[str, Any], None] = None,
                 memory_probe: Optional[MemoryProbe] = None,
                 autostart: bool = True):
        """
        Build the pipeline.

        Args:
            metrics: Request metrics source read by the metrics health check
            options: Options model or mapping; a malformed mapping raises
                ConfigurationError
            memory_probe: Optional ``() -> (used, total)`` override for
                memory sampling
            autostart: Start monitoring now if an event loop is running
        """
        self.options = _coerce_options(options)
        self.metrics = metrics
        self.logger = logger.bind(component="PerformanceMonitor")

        self.alerts = AlertManager(self.options.alerts)
        self.health_checks = HealthCheckManager(self.options.health_checks)
        self.resource_monitor = ResourceMonitor(self.options.resources, memory_probe=memory_probe)
        self.trace_collector = TraceCollector(self.options.tracing)

        self._is_monitoring = False
        self._monitor_task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._cycle_in_flight = False

        if autostart:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                self.logger.debug("No running event loop; monitoring starts on start()")
            else:
                self.start()

    @property
    def interval_seconds(self) -> float:
        return self.options.monitoring_interval_ms / 1000.0

    @property
    def is_running(self) -> bool:
        return self._is_monitoring

    def start(self) -> None:
        """Start the monitoring loop on the running event loop."""

        if self._is_monitoring:
            self.logger.warning("Performance monitoring already running")
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise MonitorStateError("start() requires a running event loop") from e

        self._is_monitoring = True
        self._stop_event = asyncio.Event()
        self._monitor_task = loop.create_task(self._monitoring_loop(self._stop_event))

        self.logger.info("Performance monitoring started",
                         monitoring_interval_ms=self.options.monitoring_interval_ms,
                         alerts_enabled=not self.options.alerts.disabled,
                         health_checks_enabled=not self.options.health_checks.disabled,
                         resource_monitoring_enabled=not self.options.resources.disabled,
                         tracing_enabled=not self.options.tracing.disabled)

    def stop(self) -> None:
        """
        Stop monitoring. Idempotent.

        No cycle starts after this returns; a cycle already in flight runs
        to completion.
        """
        if not self._is_monitoring:
            return

        self._is_monitoring = False
        if self._stop_event is not None:
            self._stop_event.set()

        self.logger.info("Performance monitoring stopped")

    async def wait_closed(self) -> None:
        """Wait for the monitoring loop to exit after :meth:`stop`."""
        task = self._monitor_task
        if task is not None:
            await task
            self._monitor_task = None

    async def __aenter__(self) -> "PerformanceMonitor":
        if not self._is_monitoring:
            self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
        await self.wait_closed()

    async def _monitoring_loop(self, stop_event: asyncio.Event) -> None:
        """Wait one interval, run a cycle, repeat until stopped."""

        while self._is_monitoring:
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

            if stop_event.is_set():
                break

            await self.run_cycle()

    async def run_cycle(self) -> bool:
        """
        Run one monitoring cycle.

        Returns False without doing anything if another cycle is in flight.
        Errors are logged and never propagate.
        """
        if self._cycle_in_flight:
            self.logger.debug("Monitoring cycle skipped; previous cycle still running")
            return False

        self._cycle_in_flight = True
        try:
            await self.perform_health_check()
            await self.check_resource_usage()
            await self.process_traces()
        except Exception as e:
            self.logger.error("Error during monitoring cycle", error=str(e), exc_info=True)
        finally:
            self._cycle_in_flight = False

        return True

    async def perform_health_check(self) -> HealthCheckResult:
        """Run all health checks and feed the result to the alert manager."""

        result = await self.health_checks.run_all_checks(HealthCheckContext(
            metrics=self.metrics,
            resource_monitor=self.resource_monitor,
            trace_collector=self.trace_collector,
        ))

        self.alerts.process_health_check(result)

        self.logger.debug("Health check completed",
                          status=result.status.value,
                          checks_run=len(result.checks),
                          failed_checks=sum(1 for c in result.checks.values() if c.failed))

        return result

    async def check_resource_usage(self) -> ResourceUsage:
        """Sample resource usage and feed it to the alert manager."""

        usage = await self.resource_monitor.get_resource_usage()
        self.alerts.process_resource_usage(usage)
        return usage

    async def process_traces(self) -> TraceAnalysis:
        """Analyze collected traces and feed the analysis to the alert manager."""

        analysis = self.trace_collector.analyze_traces()
        self.alerts.process_trace_analysis(analysis)
        return analysis

    def collect_trace(self, trace: Trace) -> None:
        """Ingest a trace from request-handling code."""
        self.trace_collector.collect_trace(trace)

    def get_monitoring_report(self) -> MonitoringReport:
        """
        Assemble a report from the last health result and resource sample.

        Trace analysis is computed fresh rather than taken from the last
        cycle.
        """
        return MonitoringReport(
            timestamp=utc_now(),
            metrics=dict(self.metrics.get_metrics()),
            health=self.health_checks.get_last_result(),
            resources=self.resource_monitor.get_last_usage(),
            traces=self.trace_collector.get_analysis(),
            alerts=self.alerts.get_active_alerts(),
            performance=dict(self.metrics.get_performance_summary()),
        )

    def get_stats(self) -> PerformanceMonitorStats:
        """Get lifetime counters of the pipeline."""

        uptime = utc_now() - self.resource_monitor.get_start_time()
        return PerformanceMonitorStats(
            uptime=int(uptime.total_seconds()),
            checks_performed=self.health_checks.get_checks_performed(),
            alerts_triggered=self.alerts.get_alerts_triggered(),
            traces_collected=self.trace_collector.get_traces_collected(),
            resource_usage=self.resource_monitor.get_last_usage(),
        )
