"""
Audit trail recorder.

Every detection run, alert transition and configuration change is written
as an append-only AuditEntry and mirrored to the audit log sink.
"""

from datetime import datetime
from typing import Optional

from fairwatch.data.models.audit import (
    ActorInfo,
    AuditEntry,
    AuditEntryCreate,
    AuditQuery,
    AuditSummary,
    ChangeRecord,
    ResourceInfo,
)
from fairwatch.data.repositories.audit_repository import AuditRepository
from fairwatch.utils.constants import AuditAction
from fairwatch.utils.exceptions import FairWatchError
from fairwatch.utils.logger import audit_log, get_logger

logger = get_logger(__name__)

_AUDIT_TYPES = {
    AuditAction.METRICS_CALCULATED: "DETECTION",
    AuditAction.DETECTION_RUN: "DETECTION",
    AuditAction.QUICK_CHECK: "DETECTION",
    AuditAction.REPORT_GENERATED: "DETECTION",
    AuditAction.ALERT_CREATED: "ALERT",
    AuditAction.ALERT_EVIDENCE_MERGED: "ALERT",
    AuditAction.ALERT_ACKNOWLEDGED: "ALERT",
    AuditAction.ALERT_RESOLVED: "ALERT",
    AuditAction.THRESHOLD_UPDATED: "CONFIG",
    AuditAction.THRESHOLD_UPDATE_REJECTED: "CONFIG",
    AuditAction.CORRECTION: "CORRECTION",
    AuditAction.RECORDS_PURGED: "RETENTION",
}


class AuditTrailRecorder:
    """Append-only recorder over the audit repository."""

    def __init__(self, repository: AuditRepository):
        self._repository = repository

    def record(self, entry: AuditEntryCreate) -> AuditEntry:
        """Persist an entry and mirror it to the audit log."""
        stored = self._repository.log(entry)
        action = AuditAction(stored.action)
        audit_log(
            action.value,
            {
                "entry_id": stored.entry_id,
                "actor": stored.actor.actor_id or stored.actor.actor_type,
                "resource": stored.resource.model_dump() if stored.resource else None,
                "impact": stored.ethical_impact,
                **stored.context,
            },
            audit_type=_AUDIT_TYPES[action],
        )
        return stored

    def record_correction(
        self,
        original_entry_id: str,
        actor: ActorInfo,
        description: str,
        changes: Optional[list[ChangeRecord]] = None,
    ) -> AuditEntry:
        """
        Record a correction to an earlier entry.

        The original entry is never modified; the correction references it.
        """
        original = self._repository.get(original_entry_id)
        if original is None:
            raise FairWatchError(
                "AUDIT_ENTRY_NOT_FOUND",
                f"Audit entry '{original_entry_id}' does not exist",
                {"entry_id": original_entry_id},
            )
        return self.record(
            AuditEntryCreate(
                action=AuditAction.CORRECTION,
                action_description=description,
                actor=actor,
                resource=original.resource
                or ResourceInfo(resource_type="audit_entry", resource_id=original_entry_id),
                changes=changes or [],
                ethical_impact=original.ethical_impact,
                compliance_implications=original.compliance_implications,
                context={"corrected_action": original.action},
                corrects_entry_id=original_entry_id,
            )
        )

    def ensure_indexes(self) -> None:
        self._repository.ensure_indexes()

    def query(self, query: AuditQuery) -> list[AuditEntry]:
        return self._repository.search(query)

    def count(self, query: AuditQuery) -> int:
        return self._repository.count_matching(query)

    def corrections_for(self, entry_id: str) -> list[AuditEntry]:
        return self._repository.get_corrections(entry_id)

    def summarize(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> AuditSummary:
        return self._repository.get_summary(start, end)

    def purge_expired(self, now: datetime) -> int:
        """Remove entries past their retention period; returns the count."""
        removed = self._repository.purge_expired(now)
        if removed:
            logger.info(f"Audit retention purge removed {removed} entries")
        return removed
