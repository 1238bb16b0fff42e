"""
Trace Collection

Keeps a bounded, time-windowed log of completed operations and derives
response-time and error statistics from it on demand.
"""

import heapq
import threading
import time
from collections import deque
from contextlib import asynccontextmanager, contextmanager
from dataclasses import replace
from datetime import timedelta, timezone
from typing import Any, Deque, Dict, List, Optional
from uuid import uuid4

import structlog

from ..config.settings import TracingOptions
from ..core.logging import current_request_context
from .types import (
    OperationStats,
    RecentError,
    SlowOperation,
    Trace,
    TraceAnalysis,
    utc_now,
)

logger = structlog.get_logger(__name__)

TOP_N = 10


class TraceCollector:
    """
    Bounded log of execution traces.

    The buffer is append-only in arrival order; eviction drops entries older
    than the retention window and then the oldest arrivals beyond
    ``max_traces``. Derived views never reorder it.
    """

    def __init__(self, options: Optional[TracingOptions] = None):
        self.options = options or TracingOptions()
        self.logger = logger.bind(component="TraceCollector")

        self._traces: Deque[Trace] = deque()
        self._traces_collected = 0

        # Request handlers may report from worker threads
        self._lock = threading.RLock()

    def collect_trace(self, trace: Trace) -> None:
        """Ingest one trace, then apply age and capacity eviction."""

        if self.options.disabled:
            return

        if trace.timestamp.tzinfo is None:
            # Naive timestamps are taken as UTC
            trace = replace(trace, timestamp=trace.timestamp.replace(tzinfo=timezone.utc))

        with self._lock:
            self._traces.append(trace)
            self._traces_collected += 1

            cutoff = utc_now() - timedelta(milliseconds=self.options.retention_time_ms)
            expired = sum(1 for t in self._traces if t.timestamp < cutoff)
            if expired:
                self._traces = deque(t for t in self._traces if t.timestamp >= cutoff)

            overflow = len(self._traces) - self.options.max_traces
            for _ in range(max(overflow, 0)):
                self._traces.popleft()

        if expired or overflow > 0:
            self.logger.debug("Traces evicted",
                              expired=expired,
                              overflow=max(overflow, 0),
                              buffered=len(self._traces))

    def analyze_traces(self) -> TraceAnalysis:
        """Compute statistics over the current buffer."""

        with self._lock:
            traces = list(self._traces)

        if not traces:
            return TraceAnalysis()

        total = len(traces)
        average_response_time = sum(t.duration for t in traces) / total
        errors = [t for t in traces if t.error]

        breakdown: Dict[str, OperationStats] = {}
        for trace in traces:
            stats = breakdown.setdefault(trace.operation, OperationStats())
            stats.count += 1
            stats.avg_duration = (
                stats.avg_duration * (stats.count - 1) + trace.duration
            ) / stats.count

        slowest = heapq.nlargest(TOP_N, traces, key=lambda t: t.duration)
        recent = heapq.nlargest(TOP_N, errors, key=lambda t: t.timestamp)

        return TraceAnalysis(
            total_traces=total,
            average_response_time=average_response_time,
            error_rate=len(errors) / total,
            operation_breakdown=breakdown,
            slowest_operations=[
                SlowOperation(operation=t.operation, duration=t.duration, timestamp=t.timestamp)
                for t in slowest
            ],
            recent_errors=[
                RecentError(operation=t.operation, error=t.error, timestamp=t.timestamp)
                for t in recent
            ],
        )

    def get_analysis(self) -> TraceAnalysis:
        return self.analyze_traces()

    def get_traces_collected(self) -> int:
        """Lifetime ingestion count, independent of the buffer size."""
        return self._traces_collected

    def get_traces(self) -> List[Trace]:
        """Copy of the buffer in arrival order."""
        with self._lock:
            return list(self._traces)

    def __len__(self) -> int:
        return len(self._traces)

    @contextmanager
    def track(self, operation: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Time a block and collect it as a trace.

        The trace metadata carries the request and session ids set with
        ``set_request_context``, if any.

        Usage:
            with collector.track("search_cases"):
                result = run_search()
        """
        start_time = time.perf_counter()
        started_at = utc_now()
        trace_metadata = {**current_request_context(), **(metadata or {})}
        error = None
        try:
            yield
        except Exception as e:
            error = str(e) or type(e).__name__
            raise
        finally:
            self.collect_trace(Trace(
                id=str(uuid4()),
                operation=operation,
                timestamp=started_at,
                duration=(time.perf_counter() - start_time) * 1000.0,
                error=error,
                metadata=trace_metadata or None,
            ))

    @asynccontextmanager
    async def track_async(self, operation: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Async variant of :meth:`track`.

        Usage:
            async with collector.track_async("get_opinion"):
                result = await client.get_opinion(opinion_id)
        """
        with self.track(operation, metadata):
            yield
