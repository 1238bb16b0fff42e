"""
Request Metrics Collection

Counts requests, failures and cache lookups for the server, keeps a rolling
average response time, and grades overall performance on an A-F scale.
Counters are mirrored into a Prometheus registry for scraping.
"""

import threading
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
import structlog

from .types import utc_now

logger = structlog.get_logger(__name__)

MAX_RESPONSE_TIME_SAMPLES = 100


def grade_for_score(score: float) -> str:
    """Map a 0-100 performance score to a letter grade."""
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"


class MetricsCollector:
    """
    Request metrics for the server process.

    Implements the metrics source read by the health checks:
    ``get_metrics`` and ``get_performance_summary``.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize the collector with its own Prometheus registry."""
        self.registry = registry or CollectorRegistry()
        self._setup_prometheus_metrics()

        self._lock = threading.RLock()
        self._reset_state()

        logger.info("MetricsCollector initialized")

    def _setup_prometheus_metrics(self) -> None:
        """Setup Prometheus metrics collectors."""

        self.request_counter = Counter(
            'legal_mcp_requests_total',
            'Total number of requests',
            ['status'],
            registry=self.registry
        )

        self.cache_counter = Counter(
            'legal_mcp_cache_lookups_total',
            'Cache lookups by result',
            ['result'],
            registry=self.registry
        )

        self.response_time_histogram = Histogram(
            'legal_mcp_response_time_seconds',
            'Request response time in seconds',
            buckets=[0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry
        )

    def _reset_state(self) -> None:
        self._start_time = utc_now()
        self._response_times: Deque[float] = deque(maxlen=MAX_RESPONSE_TIME_SAMPLES)
        self._requests_total = 0
        self._requests_successful = 0
        self._requests_failed = 0
        self._cache_hits = 0
        self._cache_misses = 0
        self._average_response_time = 0.0
        self._last_request_time: Optional[datetime] = None

    def record_request(self, response_time_ms: float, from_cache: bool = False) -> None:
        """Record a successful request."""

        with self._lock:
            self._requests_total += 1
            self._requests_successful += 1
            self._last_request_time = utc_now()
            if from_cache:
                self._cache_hits += 1
            else:
                self._cache_misses += 1
            self._update_response_time(response_time_ms)

        self.request_counter.labels(status="success").inc()
        self.cache_counter.labels(result="hit" if from_cache else "miss").inc()

        logger.debug("Request recorded",
                     response_time_ms=response_time_ms,
                     from_cache=from_cache,
                     total_requests=self._requests_total)

    def record_failure(self, response_time_ms: float) -> None:
        """Record a failed request."""

        with self._lock:
            self._requests_total += 1
            self._requests_failed += 1
            self._last_request_time = utc_now()
            self._update_response_time(response_time_ms)

        self.request_counter.labels(status="failure").inc()

        logger.debug("Failed request recorded",
                     response_time_ms=response_time_ms,
                     total_requests=self._requests_total,
                     failure_rate=self.get_failure_rate())

    def record_cache_hit(self) -> None:
        with self._lock:
            self._cache_hits += 1
        self.cache_counter.labels(result="hit").inc()

    def record_cache_miss(self) -> None:
        with self._lock:
            self._cache_misses += 1
        self.cache_counter.labels(result="miss").inc()

    def _update_response_time(self, response_time_ms: float) -> None:
        self._response_times.append(response_time_ms)
        self._average_response_time = sum(self._response_times) / len(self._response_times)
        self.response_time_histogram.observe(response_time_ms / 1000.0)

    def get_uptime_seconds(self) -> int:
        return int((utc_now() - self._start_time).total_seconds())

    def get_failure_rate(self) -> float:
        if self._requests_total == 0:
            return 0.0
        return self._requests_failed / self._requests_total

    def get_cache_hit_rate(self) -> float:
        total_lookups = self._cache_hits + self._cache_misses
        if total_lookups == 0:
            return 0.0
        return self._cache_hits / total_lookups

    def get_metrics(self) -> Dict[str, Any]:
        """Get current request metrics."""

        with self._lock:
            return {
                'requests_total': self._requests_total,
                'requests_successful': self._requests_successful,
                'requests_failed': self._requests_failed,
                'cache_hits': self._cache_hits,
                'cache_misses': self._cache_misses,
                'average_response_time': self._average_response_time,
                'last_request_time': (
                    self._last_request_time.isoformat() if self._last_request_time else ''
                ),
                'uptime_seconds': self.get_uptime_seconds(),
            }

    def get_health(self) -> Dict[str, Any]:
        """Get a tri-state health view of the request metrics alone."""

        metrics = self.get_metrics()
        failure_rate = self.get_failure_rate()
        cache_hit_rate = self.get_cache_hit_rate()

        checks = {
            'uptime': {
                'status': 'pass' if metrics['uptime_seconds'] > 0 else 'fail',
                'message': f"Server has been running for {metrics['uptime_seconds']} seconds",
                'value': metrics['uptime_seconds'],
            },
            'failure_rate': {
                'status': 'pass' if failure_rate < 0.25 else 'fail',
                'message': f"Request failure rate is {failure_rate * 100:.1f}%",
                'value': failure_rate,
            },
            'response_time': {
                'status': 'pass' if metrics['average_response_time'] < 3000 else 'fail',
                'message': f"Average response time is {metrics['average_response_time']:.0f}ms",
                'value': metrics['average_response_time'],
            },
            # Cache is optional
            'cache_performance': {
                'status': 'pass',
                'message': f"Cache hit rate is {cache_hit_rate * 100:.1f}%",
                'value': cache_hit_rate,
            },
        }

        failed = sum(1 for check in checks.values() if check['status'] == 'fail')
        if failed == 0:
            status = 'healthy'
        elif failed == 1:
            status = 'warning'
        else:
            status = 'critical'

        return {'status': status, 'checks': checks, 'metrics': metrics}

    def get_performance_summary(self) -> Dict[str, Any]:
        """Get request rate, success rate and an A-F performance grade."""

        metrics = self.get_metrics()
        uptime_minutes = metrics['uptime_seconds'] / 60

        request_rate = metrics['requests_total'] / uptime_minutes if uptime_minutes > 0 else 0.0
        success_rate = (
            metrics['requests_successful'] / metrics['requests_total']
            if metrics['requests_total'] > 0 else 1.0
        )
        cache_effectiveness = self.get_cache_hit_rate()

        # 40% success rate, 20% cache effectiveness, 40% response time
        score = success_rate * 40
        score += min(cache_effectiveness * 2, 1) * 20
        score += min(1000 / (metrics['average_response_time'] or 1000), 1) * 40

        return {
            'request_rate': request_rate,
            'success_rate': success_rate,
            'cache_effectiveness': cache_effectiveness,
            'average_response_time': metrics['average_response_time'],
            'performance_score': score,
            'performance_grade': grade_for_score(score),
        }

    def export_prometheus(self) -> str:
        """Current metrics in Prometheus text format."""
        return generate_latest(self.registry).decode('utf-8')

    def reset(self) -> None:
        """Reset counters and restart the uptime clock."""

        with self._lock:
            self._reset_state()

        logger.info("Metrics reset")
