"""
Audit trail data models for FairWatch.

Defines the append-only audit entry schema that ties every detection and
alert lifecycle action to a compliance record.
"""

import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from fairwatch.utils.constants import (
    ActorType,
    AuditAction,
    ComplianceFramework,
    EthicalImpactLevel,
    Severity,
    SEVERITY_ETHICAL_IMPACT,
)

from .base import BaseDocument, EmbeddedModel, utcnow

DEFAULT_RETENTION_DAYS = 2555  # ~7 years


class ActorInfo(EmbeddedModel):
    """Information about the entity that performed the action."""

    actor_type: ActorType = ActorType.SYSTEM
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    role: Optional[str] = None

    @classmethod
    def system(cls, name: str = "fairwatch") -> "ActorInfo":
        return cls(actor_type=ActorType.SYSTEM, actor_id=name, actor_name=name)

    @classmethod
    def user(cls, actor_id: str, actor_name: Optional[str] = None) -> "ActorInfo":
        return cls(actor_type=ActorType.USER, actor_id=actor_id, actor_name=actor_name)


class ResourceInfo(EmbeddedModel):
    """Information about the resource affected by the action."""

    resource_type: str  # "alert", "process", "fairness_metrics", "thresholds"
    resource_id: str
    resource_name: Optional[str] = None


class ChangeRecord(EmbeddedModel):
    """Record of a specific field change."""

    field_name: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    change_type: str = "update"  # "create", "update", "delete"


class AuditEntry(BaseDocument):
    """
    Audit trail entry for compliance reporting.

    Entries are frozen and never edited. Corrections are new entries whose
    corrects_entry_id points at the original.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        frozen=True,
    )

    entry_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=utcnow)

    action: AuditAction
    action_description: str
    actor: ActorInfo = Field(default_factory=ActorInfo)
    resource: Optional[ResourceInfo] = None
    changes: list[ChangeRecord] = Field(default_factory=list)

    ethical_impact: EthicalImpactLevel = EthicalImpactLevel.NONE
    compliance_implications: list[ComplianceFramework] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)

    corrects_entry_id: Optional[str] = None
    retention_period_days: int = Field(default=DEFAULT_RETENTION_DAYS, ge=1)

    @computed_field
    @property
    def expires_at(self) -> datetime:
        """Persisted with the entry; retention purges match on it."""
        return self.timestamp + timedelta(days=self.retention_period_days)

    @property
    def is_correction(self) -> bool:
        return self.corrects_entry_id is not None

    class Settings:
        """MongoDB collection settings."""

        name = "audit_entries"
        indexes = [
            "entry_id",
            "action",
            "actor.actor_id",
            "actor.actor_type",
            "resource.resource_type",
            "resource.resource_id",
            "ethical_impact",
            "timestamp",
            "expires_at",
        ]


class AuditEntryCreate(BaseModel):
    """Schema for creating a new audit entry."""

    action: AuditAction
    action_description: str
    actor: Optional[ActorInfo] = None
    resource: Optional[ResourceInfo] = None
    changes: list[ChangeRecord] = Field(default_factory=list)
    ethical_impact: EthicalImpactLevel = EthicalImpactLevel.NONE
    compliance_implications: list[ComplianceFramework] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)
    corrects_entry_id: Optional[str] = None


class AuditQuery(BaseModel):
    """Query parameters for searching the audit trail."""

    action: Optional[AuditAction] = None
    actor_id: Optional[str] = None
    actor_type: Optional[ActorType] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    min_ethical_impact: Optional[EthicalImpactLevel] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)


class AuditSummary(BaseModel):
    """Summary statistics for the audit trail."""

    total_entries: int = 0
    entries_by_action: dict[str, int] = Field(default_factory=dict)
    entries_by_actor_type: dict[str, int] = Field(default_factory=dict)
    entries_by_impact: dict[str, int] = Field(default_factory=dict)
    corrections_count: int = 0
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None


# Utility functions for creating common audit entries


def create_detection_run_audit(
    process_id: str,
    process_type: str,
    compliance_status: str,
    violation_count: int,
    overall_severity: Optional[Severity],
    bias_score: Optional[float],
    metrics_id: Optional[str] = None,
    mode: str = "batch",
    actor: Optional[ActorInfo] = None,
) -> AuditEntryCreate:
    """Create an audit entry for a detection run over a process."""
    impact = (
        SEVERITY_ETHICAL_IMPACT[Severity(overall_severity)]
        if overall_severity
        else EthicalImpactLevel.NONE
    )
    return AuditEntryCreate(
        action=AuditAction.DETECTION_RUN if mode == "batch" else AuditAction.QUICK_CHECK,
        action_description=(
            f"Bias evaluation of process '{process_id}' found {violation_count} "
            f"violation(s); status {compliance_status}"
        ),
        actor=actor or ActorInfo(actor_type=ActorType.BATCH_JOB if mode == "batch" else ActorType.SYSTEM),
        resource=ResourceInfo(resource_type="process", resource_id=process_id, resource_name=process_type),
        ethical_impact=impact,
        compliance_implications=[ComplianceFramework.EEOC] if violation_count else [],
        context={
            "mode": mode,
            "compliance_status": compliance_status,
            "violation_count": violation_count,
            "bias_score": bias_score,
            "metrics_id": metrics_id,
        },
    )


def create_alert_transition_audit(
    action: AuditAction,
    alert_id: str,
    actor: ActorInfo,
    old_status: Optional[str],
    new_status: str,
    severity: Severity,
    details: Optional[dict[str, Any]] = None,
) -> AuditEntryCreate:
    """Create an audit entry for an alert creation or state change."""
    return AuditEntryCreate(
        action=action,
        action_description=f"Alert '{alert_id}' {old_status or 'new'} -> {new_status}",
        actor=actor,
        resource=ResourceInfo(resource_type="alert", resource_id=alert_id),
        changes=[
            ChangeRecord(
                field_name="status",
                old_value=old_status,
                new_value=new_status,
                change_type="create" if old_status is None else "update",
            )
        ],
        ethical_impact=SEVERITY_ETHICAL_IMPACT[Severity(severity)],
        compliance_implications=[ComplianceFramework.EEOC],
        context=details or {},
    )


def create_threshold_update_audit(
    actor: ActorInfo,
    changes: list[ChangeRecord],
    version: int,
    accepted: bool = True,
    errors: Optional[list[str]] = None,
) -> AuditEntryCreate:
    """Create an audit entry for an accepted or rejected threshold update."""
    return AuditEntryCreate(
        action=AuditAction.THRESHOLD_UPDATED if accepted else AuditAction.THRESHOLD_UPDATE_REJECTED,
        action_description=(
            f"Threshold configuration updated to version {version}"
            if accepted
            else f"Threshold update rejected; version {version} remains active"
        ),
        actor=actor,
        resource=ResourceInfo(resource_type="thresholds", resource_id=str(version)),
        changes=changes,
        ethical_impact=EthicalImpactLevel.MEDIUM if accepted else EthicalImpactLevel.LOW,
        compliance_implications=[ComplianceFramework.EEOC, ComplianceFramework.NIST],
        context={"errors": errors} if errors else {},
    )
