"""
Unit tests for the request metrics collector.
"""

import pytest

from legal_mcp_telemetry.monitoring.metrics_collector import (
    MAX_RESPONSE_TIME_SAMPLES,
    MetricsCollector,
    grade_for_score,
)


class TestGrading:
    @pytest.mark.parametrize("score,grade", [
        (95, "A"), (90, "A"), (85, "B"), (70, "C"), (65, "D"), (10, "F"),
    ])
    def test_grade_for_score(self, score, grade) -> None:
        assert grade_for_score(score) == grade


class TestMetricsCollector:
    """Test counters and derived summaries."""

    def test_initial_state(self) -> None:
        metrics = MetricsCollector().get_metrics()

        assert metrics["requests_total"] == 0
        assert metrics["average_response_time"] == 0
        assert metrics["last_request_time"] == ""

    def test_record_request_and_failure(self) -> None:
        collector = MetricsCollector()

        collector.record_request(100.0, from_cache=True)
        collector.record_request(300.0)
        collector.record_failure(500.0)

        metrics = collector.get_metrics()
        assert metrics["requests_total"] == 3
        assert metrics["requests_successful"] == 2
        assert metrics["requests_failed"] == 1
        assert metrics["cache_hits"] == 1
        assert metrics["cache_misses"] == 1
        assert metrics["average_response_time"] == pytest.approx(300.0)
        assert metrics["last_request_time"] != ""

    def test_average_uses_recent_samples_only(self) -> None:
        collector = MetricsCollector()
        collector.record_request(10_000.0)
        for _ in range(MAX_RESPONSE_TIME_SAMPLES):
            collector.record_request(100.0)

        assert collector.get_metrics()["average_response_time"] == pytest.approx(100.0)

    def test_performance_summary_without_traffic(self) -> None:
        summary = MetricsCollector().get_performance_summary()

        # 40 (success) + 0 (cache) + 40 (response time) = 80
        assert summary["success_rate"] == 1.0
        assert summary["performance_grade"] == "B"

    def test_performance_summary_fast_cached_traffic(self) -> None:
        collector = MetricsCollector()
        for _ in range(10):
            collector.record_request(200.0, from_cache=True)

        summary = collector.get_performance_summary()

        assert summary["cache_effectiveness"] == 1.0
        assert summary["performance_grade"] == "A"

    def test_performance_summary_failing_slow_traffic(self) -> None:
        collector = MetricsCollector()
        for _ in range(5):
            collector.record_failure(8000.0)

        summary = collector.get_performance_summary()

        assert summary["success_rate"] == 0.0
        assert summary["performance_grade"] == "F"

    def test_get_health(self) -> None:
        collector = MetricsCollector()
        for _ in range(3):
            collector.record_failure(4000.0)

        health = collector.get_health()

        assert health["checks"]["failure_rate"]["status"] == "fail"
        assert health["checks"]["response_time"]["status"] == "fail"
        assert health["status"] == "critical"

    def test_prometheus_export(self) -> None:
        collector = MetricsCollector()
        collector.record_request(120.0)
        collector.record_failure(80.0)

        text = collector.export_prometheus()

        assert 'legal_mcp_requests_total{status="success"} 1.0' in text
        assert 'legal_mcp_requests_total{status="failure"} 1.0' in text
        assert "legal_mcp_response_time_seconds_count 2.0" in text

    def test_reset(self) -> None:
        collector = MetricsCollector()
        collector.record_request(100.0)

        collector.reset()

        assert collector.get_metrics()["requests_total"] == 0
        assert collector.get_metrics()["average_response_time"] == 0

    def test_standalone_cache_lookups(self) -> None:
        collector = MetricsCollector()

        collector.record_cache_hit()
        collector.record_cache_hit()
        collector.record_cache_miss()

        assert collector.get_cache_hit_rate() == pytest.approx(2 / 3)
        assert 'legal_mcp_cache_lookups_total{result="hit"} 2.0' in collector.export_prometheus()
