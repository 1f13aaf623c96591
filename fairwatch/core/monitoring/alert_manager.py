"""
Alert lifecycle management.

Converts detector violations into persisted alerts, merges repeat
detections into the open alert for the same breach, and runs the
active -> acknowledged -> resolved state machine with compare-and-swap
transitions.
"""

from datetime import datetime, timedelta
from typing import Optional

from fairwatch.data.models.alert import (
    Alert,
    AlertPage,
    AlertQuery,
    BiasAnalysisSummary,
    Resolution,
    ViolationOccurrence,
)
from fairwatch.data.models.audit import ActorInfo, create_alert_transition_audit
from fairwatch.data.models.base import utcnow
from fairwatch.data.models.bias import Violation
from fairwatch.data.repositories.alert_repository import OPEN_STATUSES, AlertRepository
from fairwatch.utils.constants import AlertStatus, AuditAction, ProcessType, Severity
from fairwatch.utils.exceptions import AlertNotEligible
from fairwatch.utils.logger import get_logger

from .audit_trail import AuditTrailRecorder
from .notifications import NotificationDispatcher

logger = get_logger(__name__)


class AlertManager:
    """Creates, deduplicates and transitions alerts."""

    def __init__(
        self,
        repository: AlertRepository,
        audit: AuditTrailRecorder,
        dispatcher: Optional[NotificationDispatcher] = None,
        escalation_owner: str = "admin",
        dedup_window_hours: Optional[float] = None,
        retention_days: int = 365,
    ):
        """
        Args:
            repository: Alert persistence.
            audit: Recorder for lifecycle audit entries.
            dispatcher: Notification fan-out for new alerts.
            escalation_owner: Assignee for critical alerts.
            dedup_window_hours: Only merge into open alerts detected within
                this window; None merges until the alert is resolved.
            retention_days: How long resolved alerts are kept; stamped on each
                alert when it is created.
        """
        self._repository = repository
        self._audit = audit
        self._dispatcher = dispatcher or NotificationDispatcher()
        self.escalation_owner = escalation_owner
        self.dedup_window_hours = dedup_window_hours
        self.retention_days = retention_days

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_from_violation(
        self,
        process_id: str,
        process_type: ProcessType,
        violation: Violation,
        analysis: Optional[BiasAnalysisSummary] = None,
        min_severity: Severity = Severity.MEDIUM,
    ) -> Optional[Alert]:
        """
        Raise an alert for a violation, or merge it into an open duplicate.

        Returns None when the violation is below ``min_severity``.
        """
        severity = Severity(violation.severity)
        if severity.rank < Severity(min_severity).rank:
            logger.debug(
                f"Skipping {severity.value} violation on {process_id}/{violation.attribute}: "
                f"below alert minimum {Severity(min_severity).value}"
            )
            return None

        analysis = analysis or BiasAnalysisSummary()
        since = None
        if self.dedup_window_hours is not None:
            since = utcnow() - timedelta(hours=self.dedup_window_hours)

        existing = self._repository.find_open_duplicate(
            process_id, violation.metric, violation.attribute, since=since
        )
        if existing is not None:
            merged = self._merge(existing, violation, analysis)
            if merged is not None:
                return merged
            # resolved between lookup and merge; raise a fresh alert

        return self._create(process_id, process_type, violation, analysis)

    def _create(
        self,
        process_id: str,
        process_type: ProcessType,
        violation: Violation,
        analysis: BiasAnalysisSummary,
    ) -> Alert:
        severity = Severity(violation.severity)
        alert = Alert(
            process_id=process_id,
            process_type=process_type,
            violation=violation,
            bias_analysis=analysis,
            priority=severity,
            assigned_to=self.escalation_owner if severity == Severity.CRITICAL else None,
            last_detected_at=violation.detected_at,
            retention_period_days=self.retention_days,
        )
        alert = self._repository.create(alert)

        records = self._dispatcher.dispatch(alert)
        if records:
            alert = self._repository.update(
                alert.alert_id,
                {"notifications": [r.model_dump() for r in alert.notifications + records]},
            ) or alert

        self._audit.record(
            create_alert_transition_audit(
                AuditAction.ALERT_CREATED,
                alert.alert_id,
                ActorInfo.system(),
                old_status=None,
                new_status=AlertStatus.ACTIVE.value,
                severity=severity,
                details={
                    "process_id": process_id,
                    "metric": violation.metric,
                    "attribute": violation.attribute,
                    "assigned_to": alert.assigned_to,
                },
            )
        )
        logger.info(
            f"Created {severity.value} alert {alert.alert_id} for {process_id} "
            f"({violation.metric}/{violation.attribute})"
        )
        return alert

    def _merge(
        self,
        existing: Alert,
        violation: Violation,
        analysis: BiasAnalysisSummary,
    ) -> Optional[Alert]:
        old_priority = Severity(existing.priority)
        new_priority = Severity.highest([old_priority, Severity(violation.severity)])
        occurrence = ViolationOccurrence(
            detected_at=violation.detected_at,
            severity=violation.severity,
            violation_type=violation.violation_type,
            observed_value=violation.observed_value,
            metrics_id=analysis.metrics_id,
        )
        fields = {
            "evidence": [o.model_dump() for o in existing.evidence + [occurrence]],
            "occurrence_count": existing.occurrence_count + 1,
            "last_detected_at": violation.detected_at,
            "bias_analysis": analysis.model_dump(),
        }
        if new_priority != old_priority:
            fields["priority"] = new_priority
            fields["violation"] = violation.model_dump()
            if new_priority == Severity.CRITICAL and not existing.assigned_to:
                fields["assigned_to"] = self.escalation_owner

        merged = self._repository.update(
            existing.alert_id,
            fields,
            expected={"status": OPEN_STATUSES, "occurrence_count": existing.occurrence_count},
        )
        if merged is None:
            return None

        self._audit.record(
            create_alert_transition_audit(
                AuditAction.ALERT_EVIDENCE_MERGED,
                merged.alert_id,
                ActorInfo.system(),
                old_status=existing.status,
                new_status=merged.status,
                severity=new_priority,
                details={
                    "occurrence_count": merged.occurrence_count,
                    "old_priority": old_priority.value,
                    "new_priority": new_priority.value,
                },
            )
        )
        if new_priority != old_priority:
            logger.warning(
                f"Alert {merged.alert_id} escalated {old_priority.value} -> {new_priority.value}"
            )
        return merged

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def acknowledge(self, alert_id: str, actor: str) -> Alert:
        """Move an active alert to acknowledged."""
        now = utcnow()
        updated = self._repository.transition(
            alert_id,
            [AlertStatus.ACTIVE],
            {
                "status": AlertStatus.ACKNOWLEDGED,
                "acknowledged_by": actor,
                "acknowledged_at": now,
            },
        )
        if updated is None:
            raise AlertNotEligible(alert_id, "acknowledge")

        self._audit.record(
            create_alert_transition_audit(
                AuditAction.ALERT_ACKNOWLEDGED,
                alert_id,
                ActorInfo.user(actor),
                old_status=AlertStatus.ACTIVE.value,
                new_status=AlertStatus.ACKNOWLEDGED.value,
                severity=updated.priority,
                details={"response_time_minutes": updated.response_time_minutes},
            )
        )
        logger.info(f"Alert {alert_id} acknowledged by {actor}")
        return updated

    def resolve(self, alert_id: str, actor: str, action: str, description: str) -> Alert:
        """Resolve an active or acknowledged alert with a resolution record."""
        resolution = Resolution(action=action, description=description)
        previous = self._repository.get(alert_id)
        if previous is None:
            raise AlertNotEligible(alert_id, "resolve")

        updated = self._repository.transition(
            alert_id,
            OPEN_STATUSES,
            {
                "status": AlertStatus.RESOLVED,
                "resolved_by": actor,
                "resolved_at": resolution.timestamp,
                "resolution": resolution.model_dump(),
                "expires_at": resolution.timestamp + timedelta(days=previous.retention_period_days),
            },
        )
        if updated is None:
            raise AlertNotEligible(alert_id, "resolve")

        self._audit.record(
            create_alert_transition_audit(
                AuditAction.ALERT_RESOLVED,
                alert_id,
                ActorInfo.user(actor),
                old_status=previous.status,
                new_status=AlertStatus.RESOLVED.value,
                severity=updated.priority,
                details={
                    "action": action,
                    "description": description,
                    "resolution_time_hours": updated.resolution_time_hours,
                },
            )
        )
        logger.info(f"Alert {alert_id} resolved by {actor}: {action}")
        return updated

    # -------------------------------------------------------------------------
    # Queries and retention
    # -------------------------------------------------------------------------

    def ensure_indexes(self) -> None:
        self._repository.ensure_indexes()

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        return self._repository.get(alert_id)

    def list_alerts(self, query: Optional[AlertQuery] = None) -> AlertPage:
        query = query or AlertQuery()
        alerts, total = self._repository.search(query)
        return AlertPage(alerts=alerts, total=total, limit=query.limit, offset=query.offset)

    def open_alerts(self) -> list[Alert]:
        return self._repository.get_open()

    def created_between(self, start: datetime, end: datetime) -> list[Alert]:
        return self._repository.get_created_between(start, end)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete resolved alerts whose stored retention window has elapsed."""
        return self._repository.purge_expired(now or utcnow())
