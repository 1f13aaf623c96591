"""
Configuration management for FairWatch.

Uses Pydantic Settings for type-safe configuration with environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Base paths
ROOT_DIR = Path(__file__).parent.parent.parent
PACKAGE_DIR = ROOT_DIR / "fairwatch"
DATA_DIR = ROOT_DIR / "data"
LOGS_DIR = ROOT_DIR / "logs"


class DatabaseSettings(BaseSettings):
    """MongoDB database configuration."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    host: str = "localhost"
    port: int = 27017
    name: str = "fairwatch"
    username: str | None = None
    password: str | None = None
    server_selection_timeout_ms: int = 5000

    @property
    def connection_string(self) -> str:
        """Generate MongoDB connection string."""
        if self.username and self.password:
            return f"mongodb://{self.username}:{self.password}@{self.host}:{self.port}"
        return f"mongodb://{self.host}:{self.port}"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
    file_path: Path = LOGS_DIR / "fairwatch.log"
    rotation: str = "10 MB"
    retention: str = "30 days"
    console_output: bool = True
    file_output: bool = True


class MonitoringSettings(BaseSettings):
    """Bias monitoring, alerting and retention configuration."""

    model_config = SettingsConfigDict(env_prefix="MONITOR_")

    # Default detector thresholds (score below threshold is worse)
    warning_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    critical_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    parity_warning_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    parity_critical_threshold: float = Field(default=0.6, ge=0.0, le=1.0)

    # Sample adequacy
    min_group_sample_size: int = Field(default=5, ge=1)
    min_total_sample_size: int = Field(default=10, ge=1)

    # Alerting
    escalation_owner: str = "admin"
    alert_min_severity: Literal["low", "medium", "high", "critical"] = "medium"
    dedup_window_hours: float | None = None

    # Retention (days)
    alert_retention_days: int = 365
    audit_retention_days: int = 2555

    # Workers and scheduling
    max_workers: int = Field(default=4, ge=1)
    dashboard_refresh_hours: float = Field(default=24.0, gt=0)
    recent_history_size: int = Field(default=500, ge=0)

    # Confidence intervals
    bootstrap_resamples: int = Field(default=200, ge=10)
    bootstrap_max_sample_size: int = 500
    random_seed: int = 42

    @model_validator(mode="after")
    def validate_threshold_order(self) -> "MonitoringSettings":
        """Critical thresholds must not exceed warning thresholds."""
        if self.critical_threshold > self.warning_threshold:
            raise ValueError("critical_threshold must be <= warning_threshold")
        if self.parity_critical_threshold > self.parity_warning_threshold:
            raise ValueError("parity_critical_threshold must be <= parity_warning_threshold")
        return self


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    name: str = "FairWatch"
    version: str = "0.1.0"
    description: str = "Fairness metrics and bias monitoring for hiring processes"
    debug: bool = False

    # Environment
    environment: Literal["development", "production", "testing"] = "development"
    storage_backend: Literal["mongodb", "memory"] = "mongodb"

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("storage_backend", mode="before")
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        """Accept backend names case-insensitively."""
        return v.lower() if isinstance(v, str) else v


_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Get or create the cached settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reload_settings() -> AppSettings:
    """Force reload settings from environment."""
    global _settings
    _settings = AppSettings()
    return _settings
