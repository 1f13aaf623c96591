"""
Repositories for FairWatch data access.

This module provides repository classes for all collections, implementing
the repository pattern over a pluggable DocumentStore.
"""

# Base repository
from .base import BaseRepository

# Entity repositories
from .alert_repository import AlertRepository
from .audit_repository import AuditRepository
from .metrics_repository import FairnessMetricsRepository, MonitoringResultRepository

__all__ = [
    "BaseRepository",
    "AlertRepository",
    "AuditRepository",
    "FairnessMetricsRepository",
    "MonitoringResultRepository",
]
