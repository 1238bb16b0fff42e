"""
Unit tests for configuration management.

This module tests the option models, threshold defaults and environment
variable loading of the host settings.
"""

import pytest
from pydantic import ValidationError

from legal_mcp_telemetry.config.settings import (
    AlertOptions,
    AlertThresholds,
    HealthCheckOptions,
    PerformanceMonitorOptions,
    Settings,
    TracingOptions,
    get_settings,
)


class TestAlertThresholds:
    """Test threshold defaults."""

    def test_defaults(self):
        thresholds = AlertThresholds()

        assert thresholds.response_time_ms == 5000
        assert thresholds.error_rate == 0.25
        assert thresholds.memory_usage == 0.85
        assert thresholds.cpu_usage == 0.9

    def test_none_falls_back_to_default(self):
        thresholds = AlertThresholds(memory_usage=None, error_rate=0.1)

        assert thresholds.memory_usage == 0.85
        assert thresholds.error_rate == 0.1

    def test_unknown_threshold_rejected(self):
        with pytest.raises(ValidationError):
            AlertThresholds(disk_usage=0.5)


class TestOptionModels:
    """Test option validation."""

    def test_monitor_defaults(self):
        options = PerformanceMonitorOptions()

        assert options.monitoring_interval_ms == 30000
        assert options.alerts.max_active_alerts == 100
        assert options.alerts.alert_history == 1000
        assert options.health_checks.timeout_ms == 5000
        assert options.resources.sample_interval_ms == 5000
        assert options.tracing.max_traces == 1000
        assert options.tracing.retention_time_ms == 3_600_000

    @pytest.mark.parametrize("model,field", [
        (TracingOptions, "max_traces"),
        (TracingOptions, "retention_time_ms"),
        (AlertOptions, "max_active_alerts"),
        (AlertOptions, "alert_history"),
        (HealthCheckOptions, "timeout_ms"),
    ])
    def test_limits_must_be_positive(self, model, field):
        with pytest.raises(ValidationError):
            model(**{field: 0})

    def test_minimum_grade_normalized(self):
        assert HealthCheckOptions(minimum_grade="b").minimum_grade == "B"

        with pytest.raises(ValidationError):
            HealthCheckOptions(minimum_grade="E")

    def test_nested_mapping(self):
        options = PerformanceMonitorOptions.model_validate({
            "alerts": {"thresholds": {"cpu_usage": 0.5}},
        })

        assert options.alerts.thresholds.cpu_usage == 0.5
        assert options.alerts.thresholds.memory_usage == 0.85


class TestSettings:
    """Test host settings loading."""

    def test_defaults(self):
        settings = Settings()

        assert settings.environment == "development"
        assert settings.log_level == "INFO"
        assert settings.is_development
        assert not settings.is_production

    def test_environment_validation(self):
        assert Settings(environment="PRODUCTION").is_production

        with pytest.raises(ValidationError):
            Settings(environment="invalid")

    def test_log_level_validation(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

        with pytest.raises(ValidationError):
            Settings(log_level="VERBOSE")

    def test_nested_environment_variables(self, monkeypatch):
        monkeypatch.setenv("TELEMETRY_ENVIRONMENT", "staging")
        monkeypatch.setenv("TELEMETRY_MONITORING__TRACING__MAX_TRACES", "50")
        monkeypatch.setenv("TELEMETRY_MONITORING__ALERTS__THRESHOLDS__MEMORY_USAGE", "0.7")

        settings = Settings()

        assert settings.environment == "staging"
        assert settings.monitoring.tracing.max_traces == 50
        assert settings.monitoring.alerts.thresholds.memory_usage == 0.7

    def test_get_settings_is_cached(self, monkeypatch):
        get_settings.cache_clear()
        try:
            monkeypatch.setenv("TELEMETRY_LOG_LEVEL", "WARNING")
            first = get_settings()
            monkeypatch.setenv("TELEMETRY_LOG_LEVEL", "ERROR")

            assert get_settings() is first
            assert first.log_level == "WARNING"
        finally:
            get_settings.cache_clear()
