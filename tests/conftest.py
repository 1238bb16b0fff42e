"""
Pytest configuration and fixtures for the telemetry pipeline tests.

This module provides common test fixtures and configuration
for the entire test suite.
"""

from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from legal_mcp_telemetry.core.logging import setup_logging
from legal_mcp_telemetry.monitoring.types import Trace, utc_now


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Set up logging for tests."""
    setup_logging(log_level="DEBUG", environment="testing")


class StubMetrics:
    """Metrics source returning fixed values."""

    def __init__(self, grade: str = "A", success_rate: float = 1.0,
                 average_response_time: float = 120.0):
        self.grade = grade
        self.success_rate = success_rate
        self.average_response_time = average_response_time

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "requests_total": 10,
            "requests_successful": 10,
            "requests_failed": 0,
            "average_response_time": self.average_response_time,
            "uptime_seconds": 5,
        }

    def get_performance_summary(self) -> Dict[str, Any]:
        return {
            "performance_grade": self.grade,
            "success_rate": self.success_rate,
            "average_response_time": self.average_response_time,
        }


class MemoryProbe:
    """Memory probe whose reported usage fraction can be changed between samples."""

    def __init__(self, fraction: float = 0.5, total: int = 1_000_000):
        self.fraction = fraction
        self.total = total
        self.calls = 0

    def __call__(self) -> Tuple[int, int]:
        self.calls += 1
        return int(self.total * self.fraction), self.total


@pytest.fixture
def stub_metrics() -> StubMetrics:
    """Healthy metrics source."""
    return StubMetrics()


@pytest.fixture
def memory_probe() -> MemoryProbe:
    """Memory probe reporting 50% usage."""
    return MemoryProbe()


@pytest.fixture
def make_trace() -> Callable[..., Trace]:
    """Factory for traces, optionally aged by ``age_ms``."""

    counter = {"n": 0}

    def _make(operation: str = "search_cases",
              duration: float = 100.0,
              error: Optional[str] = None,
              age_ms: float = 0.0,
              metadata: Optional[Dict[str, Any]] = None) -> Trace:
        counter["n"] += 1
        return Trace(
            id=f"trace-{counter['n']}",
            operation=operation,
            timestamp=utc_now() - timedelta(milliseconds=age_ms),
            duration=duration,
            error=error,
            metadata=metadata,
        )

    return _make


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers based on file location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
