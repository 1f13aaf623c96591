"""
Bias monitoring: evaluation orchestration, alerts, audit trail and scheduling.

Components:
- BiasMonitoringService: Facade over calculator, detector, alerts and audit
- AlertManager: Alert creation, deduplication and state machine
- AuditTrailRecorder: Append-only compliance audit trail
- ThresholdRegistry: Versioned threshold snapshots
- MonitoringScheduler: Periodic dashboard refresh and retention purge
"""

from .alert_manager import AlertManager
from .audit_trail import AuditTrailRecorder
from .locks import ProcessLockRegistry
from .notifications import LoggingNotificationSink, NotificationDispatcher, NotificationSink
from .scheduler import MonitoringScheduler
from .service import (
    BiasMonitoringService,
    EvaluationRequest,
    MonitoringOutcome,
    build_monitoring_service,
)
from .thresholds import ThresholdRegistry, diff_configs

__all__ = [
    "AlertManager",
    "AuditTrailRecorder",
    "BiasMonitoringService",
    "EvaluationRequest",
    "LoggingNotificationSink",
    "MonitoringOutcome",
    "MonitoringScheduler",
    "NotificationDispatcher",
    "NotificationSink",
    "ProcessLockRegistry",
    "ThresholdRegistry",
    "build_monitoring_service",
    "diff_configs",
]
