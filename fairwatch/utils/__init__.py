"""
Utility modules for FairWatch.

This package contains shared utilities used across the application:
- config: Configuration management
- logger: Logging infrastructure
- constants: Enums and lookup tables
- exceptions: Error taxonomy
"""

from fairwatch.utils.config import (
    AppSettings,
    MonitoringSettings,
    get_settings,
    reload_settings,
    ROOT_DIR,
    DATA_DIR,
    LOGS_DIR,
)
from fairwatch.utils.constants import (
    APP_NAME,
    APP_DISPLAY_NAME,
    VERSION,
    AlertStatus,
    AuditAction,
    ComplianceStatus,
    MetricFamily,
    ProcessType,
    Severity,
)
from fairwatch.utils.exceptions import (
    AlertNotEligible,
    AuditEntryImmutable,
    FairWatchError,
    InconsistentAggregateScore,
    InsufficientSampleSize,
    MissingRecommendedAction,
    PersistenceUnavailable,
    ThresholdConfigInvalid,
)
from fairwatch.utils.logger import (
    setup_logging,
    get_logger,
    audit_log,
    log,
)

__all__ = [
    # Config
    "AppSettings",
    "MonitoringSettings",
    "get_settings",
    "reload_settings",
    "ROOT_DIR",
    "DATA_DIR",
    "LOGS_DIR",
    # Constants
    "APP_NAME",
    "APP_DISPLAY_NAME",
    "VERSION",
    "AlertStatus",
    "AuditAction",
    "ComplianceStatus",
    "MetricFamily",
    "ProcessType",
    "Severity",
    # Exceptions
    "AlertNotEligible",
    "AuditEntryImmutable",
    "FairWatchError",
    "InconsistentAggregateScore",
    "InsufficientSampleSize",
    "MissingRecommendedAction",
    "PersistenceUnavailable",
    "ThresholdConfigInvalid",
    # Logger
    "setup_logging",
    "get_logger",
    "audit_log",
    "log",
]
