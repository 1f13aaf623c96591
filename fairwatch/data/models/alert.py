"""
Alert data models for FairWatch.

An alert tracks the human response to a fairness violation for a
process, through active, acknowledged and resolved states.
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from fairwatch.utils.constants import (
    AlertStatus,
    ComplianceStatus,
    NotificationChannel,
    NotificationStatus,
    ProcessType,
    Severity,
    ViolationType,
)

from .base import BaseDocument, EmbeddedModel, utcnow
from .bias import Violation

ALERT_RETENTION_DAYS = 365


class BiasAnalysisSummary(EmbeddedModel):
    """Snapshot of the evaluation that raised the alert."""

    overall_bias_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    compliance_status: ComplianceStatus = ComplianceStatus.UNDER_REVIEW
    detected_patterns: list[str] = Field(default_factory=list)
    mitigation_recommendations: list[str] = Field(default_factory=list)
    metrics_id: Optional[str] = None
    analysis_timestamp: datetime = Field(default_factory=utcnow)


class Resolution(EmbeddedModel):
    action: str = Field(min_length=1)
    description: str = Field(min_length=1)
    timestamp: datetime = Field(default_factory=utcnow)


class NotificationRecord(EmbeddedModel):
    """One dispatch attempt to one notification sink."""

    channel: NotificationChannel
    recipient: str
    sent_at: datetime = Field(default_factory=utcnow)
    status: NotificationStatus = NotificationStatus.PENDING
    error: Optional[str] = None


class ViolationOccurrence(EmbeddedModel):
    """A repeat detection merged into an existing alert."""

    detected_at: datetime = Field(default_factory=utcnow)
    severity: Severity
    violation_type: ViolationType
    observed_value: float
    metrics_id: Optional[str] = None


class Alert(BaseDocument):
    """Alert document for a fairness violation on a monitored process."""

    alert_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    process_id: str
    process_type: ProcessType
    violation: Violation
    bias_analysis: BiasAnalysisSummary = Field(default_factory=BiasAnalysisSummary)

    status: AlertStatus = AlertStatus.ACTIVE
    priority: Severity
    assigned_to: Optional[str] = None

    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution: Optional[Resolution] = None

    notifications: list[NotificationRecord] = Field(default_factory=list)
    evidence: list[ViolationOccurrence] = Field(default_factory=list)
    occurrence_count: int = Field(default=1, ge=1)
    last_detected_at: datetime = Field(default_factory=utcnow)
    retention_period_days: int = Field(default=ALERT_RETENTION_DAYS, ge=1)

    @model_validator(mode="after")
    def validate_state_fields(self) -> "Alert":
        if self.status == AlertStatus.RESOLVED and self.resolution is None:
            raise ValueError("resolved alerts require a resolution record")
        if self.status == AlertStatus.ACKNOWLEDGED and not self.acknowledged_by:
            raise ValueError("acknowledged alerts require an acknowledging actor")
        return self

    @property
    def metric(self) -> str:
        return self.violation.metric

    @property
    def attribute(self) -> str:
        return self.violation.attribute

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        """Process, metric family and attribute; repeats of the same breach merge."""
        return (self.process_id, *self.violation.signature)

    @property
    def is_open(self) -> bool:
        return self.status != AlertStatus.RESOLVED

    @property
    def age_hours(self) -> float:
        return (utcnow() - self.created_at).total_seconds() / 3600

    @property
    def response_time_minutes(self) -> Optional[float]:
        if self.acknowledged_at is None:
            return None
        return (self.acknowledged_at - self.created_at).total_seconds() / 60

    @property
    def resolution_time_hours(self) -> Optional[float]:
        if self.resolved_at is None:
            return None
        return (self.resolved_at - self.created_at).total_seconds() / 3600

    @computed_field
    @property
    def expires_at(self) -> Optional[datetime]:
        """When a resolved alert leaves its retention window; stored for purges."""
        if self.resolved_at is None:
            return None
        return self.resolved_at + timedelta(days=self.retention_period_days)

    class Settings:
        """MongoDB collection settings."""

        name = "alerts"
        indexes = [
            "alert_id",
            "process_id",
            "status",
            "priority",
            "process_type",
            "violation.metric",
            "resolved_at",
            "expires_at",
            "created_at",
        ]


class AlertQuery(BaseModel):
    """Filter and pagination for listing alerts."""

    status: Optional[AlertStatus] = None
    severity: Optional[Severity] = None
    process_type: Optional[ProcessType] = None
    process_id: Optional[str] = None
    assigned_to: Optional[str] = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class AlertPage(BaseModel):
    """One page of alerts plus pagination info."""

    alerts: list[Alert] = Field(default_factory=list)
    total: int = 0
    limit: int = 20
    offset: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.alerts) < self.total
