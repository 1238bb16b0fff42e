"""
Configuration management for the telemetry pipeline.

Option models are plain pydantic models so the monitor can be built from
code or from a mapping; ``Settings`` layers environment variables and an
optional ``.env`` file on top of them for the host process.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PERFORMANCE_GRADES = ("A", "B", "C", "D", "F")


class AlertThresholds(BaseModel):
    """Trigger thresholds for alert evaluation.

    These defaults are the single source of truth for every threshold; a
    ``None`` value is replaced by the default for that field.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    response_time_ms: Optional[float] = Field(5000.0, description="Average response time, ms")
    error_rate: Optional[float] = Field(0.25, description="Fraction of traces carrying an error")
    memory_usage: Optional[float] = Field(0.85, description="Fraction of memory in use")
    cpu_usage: Optional[float] = Field(0.9, description="Fraction of CPU in use")

    @field_validator("response_time_ms", "error_rate", "memory_usage", "cpu_usage", mode="before")
    @classmethod
    def fill_missing_threshold(cls, v, info):
        if v is None:
            return cls.model_fields[info.field_name].default
        return v


class AlertOptions(BaseModel):
    """Alert manager options."""

    model_config = ConfigDict(extra="forbid")

    disabled: bool = False
    max_active_alerts: int = Field(100, gt=0)
    alert_history: int = Field(1000, gt=0)
    thresholds: AlertThresholds = Field(default_factory=AlertThresholds)


class HealthCheckOptions(BaseModel):
    """Health check manager options."""

    model_config = ConfigDict(extra="forbid")

    disabled: bool = False
    timeout_ms: int = Field(5000, gt=0)
    minimum_grade: str = "C"

    @field_validator("minimum_grade")
    @classmethod
    def validate_minimum_grade(cls, v: str) -> str:
        """Validate the grade against the A-F scale."""
        if v.upper() not in PERFORMANCE_GRADES:
            raise ValueError(f"Minimum grade must be one of: {PERFORMANCE_GRADES}")
        return v.upper()


class ResourceOptions(BaseModel):
    """Resource monitor options."""

    model_config = ConfigDict(extra="forbid")

    disabled: bool = False
    sample_interval_ms: int = Field(5000, gt=0)
    memory_limit_bytes: Optional[int] = Field(
        None, gt=0, description="Memory budget of the process; total physical memory when unset"
    )


class TracingOptions(BaseModel):
    """Trace collector options."""

    model_config = ConfigDict(extra="forbid")

    disabled: bool = False
    max_traces: int = Field(1000, gt=0)
    retention_time_ms: int = Field(3_600_000, gt=0)


class PerformanceMonitorOptions(BaseModel):
    """Options for the whole monitoring pipeline."""

    model_config = ConfigDict(extra="forbid")

    monitoring_interval_ms: int = Field(30000, gt=0)
    alerts: AlertOptions = Field(default_factory=AlertOptions)
    health_checks: HealthCheckOptions = Field(default_factory=HealthCheckOptions)
    resources: ResourceOptions = Field(default_factory=ResourceOptions)
    tracing: TracingOptions = Field(default_factory=TracingOptions)


class Settings(BaseSettings):
    """Host process settings, read from ``TELEMETRY_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TELEMETRY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )

    environment: str = "development"
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    monitoring: PerformanceMonitorOptions = Field(default_factory=PerformanceMonitorOptions)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed_environments = {"development", "staging", "production", "testing"}
        if v.lower() not in allowed_environments:
            raise ValueError(f"Environment must be one of: {allowed_environments}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level value."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of: {allowed_levels}")
        return v.upper()

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()


__all__ = [
    "AlertThresholds",
    "AlertOptions",
    "HealthCheckOptions",
    "ResourceOptions",
    "TracingOptions",
    "PerformanceMonitorOptions",
    "Settings",
    "get_settings",
    "PERFORMANCE_GRADES",
]
