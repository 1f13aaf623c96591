"""
Tests for fairwatch.core.monitoring.alert_manager — alert creation,
deduplication, escalation and the acknowledge/resolve state machine.
"""

import threading
from datetime import timedelta

import pytest

from fairwatch.core.monitoring import AlertManager, NotificationDispatcher
from fairwatch.data.models import AlertQuery, AuditQuery, BiasAnalysisSummary, utcnow
from fairwatch.data.repositories import AlertRepository
from fairwatch.utils.constants import (
    AlertStatus,
    AuditAction,
    MetricFamily,
    NotificationStatus,
    ProcessType,
    Severity,
)
from fairwatch.utils.exceptions import AlertNotEligible


def _raise(manager, violation, process_id="proc-1", **kwargs):
    return manager.create_from_violation(process_id, ProcessType.HIRING_DECISION, violation, **kwargs)


# ── Creation ─────────────────────────────────────────────────────────────────


class TestCreate:
    def test_creates_active_alert(self, alert_manager, make_violation, recording_sink):
        alert = _raise(alert_manager, make_violation(Severity.HIGH))

        assert alert.status == AlertStatus.ACTIVE
        assert alert.priority == Severity.HIGH
        assert alert.assigned_to is None
        assert recording_sink.sent == [alert.alert_id]
        assert alert.notifications[0].status == NotificationStatus.SENT

    def test_critical_assigned_to_escalation_owner(self, alert_manager, make_violation):
        alert = _raise(alert_manager, make_violation(Severity.CRITICAL))
        assert alert.assigned_to == "compliance-lead"

    def test_below_minimum_severity_skipped(self, alert_manager, make_violation):
        assert _raise(alert_manager, make_violation(Severity.LOW)) is None
        assert _raise(alert_manager, make_violation(Severity.MEDIUM), min_severity=Severity.HIGH) is None
        assert alert_manager.list_alerts().total == 0

    def test_creation_is_audited(self, alert_manager, audit_recorder, make_violation):
        alert = _raise(alert_manager, make_violation())
        entries = audit_recorder.query(AuditQuery(action=AuditAction.ALERT_CREATED))
        assert [e.resource.resource_id for e in entries] == [alert.alert_id]
        assert entries[0].changes[0].new_value == "active"

    def test_analysis_snapshot_kept(self, alert_manager, make_violation):
        analysis = BiasAnalysisSummary(overall_bias_score=0.4, metrics_id="m-1")
        alert = _raise(alert_manager, make_violation(), analysis=analysis)
        assert alert.bias_analysis.metrics_id == "m-1"

    def test_failed_notification_recorded(
        self, store, audit_recorder, make_violation, failing_sink, recording_sink
    ):
        manager = AlertManager(
            AlertRepository(store),
            audit_recorder,
            dispatcher=NotificationDispatcher([failing_sink, recording_sink]),
        )
        alert = _raise(manager, make_violation())
        assert [n.status for n in alert.notifications] == ["failed", "sent"]
        assert alert.notifications[0].error == "socket closed"


# ── Deduplication ────────────────────────────────────────────────────────────


class TestDeduplication:
    def test_repeat_merges_into_open_alert(self, alert_manager, make_violation, recording_sink):
        first = _raise(alert_manager, make_violation(Severity.HIGH))
        second = _raise(alert_manager, make_violation(Severity.HIGH, observed_value=0.65))

        assert second.alert_id == first.alert_id
        assert second.occurrence_count == 2
        assert second.evidence[0].observed_value == 0.65
        assert alert_manager.list_alerts().total == 1
        assert recording_sink.sent == [first.alert_id]

    def test_escalation_on_merge(self, alert_manager, make_violation):
        first = _raise(alert_manager, make_violation(Severity.MEDIUM, observed_value=0.85))
        merged = _raise(alert_manager, make_violation(Severity.CRITICAL, observed_value=0.4))

        assert merged.alert_id == first.alert_id
        assert merged.priority == Severity.CRITICAL
        assert merged.assigned_to == "compliance-lead"
        assert merged.violation.observed_value == 0.4

    def test_lower_severity_does_not_downgrade(self, alert_manager, make_violation):
        _raise(alert_manager, make_violation(Severity.HIGH))
        merged = _raise(alert_manager, make_violation(Severity.MEDIUM))
        assert merged.priority == Severity.HIGH

    def test_merge_is_audited(self, alert_manager, audit_recorder, make_violation):
        _raise(alert_manager, make_violation())
        _raise(alert_manager, make_violation())
        assert audit_recorder.count(AuditQuery(action=AuditAction.ALERT_EVIDENCE_MERGED)) == 1

    @pytest.mark.parametrize(
        "process_id,changes",
        [
            ("proc-2", {}),
            ("proc-1", {"attribute": "race"}),
            ("proc-1", {"metric": MetricFamily.DISPARATE_IMPACT}),
        ],
    )
    def test_different_breach_is_new_alert(self, alert_manager, make_violation, process_id, changes):
        first = _raise(alert_manager, make_violation())
        second = _raise(alert_manager, make_violation(**changes), process_id=process_id)
        assert second.alert_id != first.alert_id

    def test_resolved_alert_not_reused(self, alert_manager, make_violation):
        first = _raise(alert_manager, make_violation())
        alert_manager.resolve(first.alert_id, "ana", "recalibrated", "Reviewer scores normalized")
        second = _raise(alert_manager, make_violation())
        assert second.alert_id != first.alert_id
        assert second.occurrence_count == 1

    def test_dedup_window(self, store, audit_recorder, make_violation):
        manager = AlertManager(AlertRepository(store), audit_recorder, dedup_window_hours=1)
        stale = make_violation(detected_at=utcnow() - timedelta(hours=3))
        first = _raise(manager, stale)
        second = _raise(manager, make_violation())
        assert second.alert_id != first.alert_id


# ── State machine ────────────────────────────────────────────────────────────


class TestTransitions:
    def test_acknowledge(self, alert_manager, audit_recorder, make_violation):
        alert = _raise(alert_manager, make_violation())
        acknowledged = alert_manager.acknowledge(alert.alert_id, "ana")

        assert acknowledged.status == AlertStatus.ACKNOWLEDGED
        assert acknowledged.acknowledged_by == "ana"
        assert acknowledged.response_time_minutes is not None
        entry = audit_recorder.query(AuditQuery(action=AuditAction.ALERT_ACKNOWLEDGED))[0]
        assert entry.actor.actor_id == "ana"

    def test_resolve_from_acknowledged(self, alert_manager, make_violation):
        alert = _raise(alert_manager, make_violation())
        alert_manager.acknowledge(alert.alert_id, "ana")
        resolved = alert_manager.resolve(alert.alert_id, "ben", "retrained", "Model retrained on balanced data")

        assert resolved.status == AlertStatus.RESOLVED
        assert resolved.resolved_by == "ben"
        assert resolved.resolution.action == "retrained"
        assert not resolved.is_open

    def test_resolve_directly_from_active(self, alert_manager, audit_recorder, make_violation):
        alert = _raise(alert_manager, make_violation())
        alert_manager.resolve(alert.alert_id, "ben", "false_positive", "Sample drawn from pilot only")
        entry = audit_recorder.query(AuditQuery(action=AuditAction.ALERT_RESOLVED))[0]
        assert entry.changes[0].old_value == "active"

    def test_acknowledge_twice_rejected(self, alert_manager, make_violation):
        alert = _raise(alert_manager, make_violation())
        alert_manager.acknowledge(alert.alert_id, "ana")
        with pytest.raises(AlertNotEligible) as exc_info:
            alert_manager.acknowledge(alert.alert_id, "ben")
        assert exc_info.value.transition == "acknowledge"

    def test_resolve_twice_rejected(self, alert_manager, make_violation):
        alert = _raise(alert_manager, make_violation())
        alert_manager.resolve(alert.alert_id, "ben", "fixed", "done")
        with pytest.raises(AlertNotEligible):
            alert_manager.resolve(alert.alert_id, "ben", "fixed", "again")

    def test_acknowledge_resolved_rejected(self, alert_manager, make_violation):
        alert = _raise(alert_manager, make_violation())
        alert_manager.resolve(alert.alert_id, "ben", "fixed", "done")
        with pytest.raises(AlertNotEligible):
            alert_manager.acknowledge(alert.alert_id, "ana")

    def test_unknown_alert(self, alert_manager):
        with pytest.raises(AlertNotEligible):
            alert_manager.acknowledge("missing", "ana")
        with pytest.raises(AlertNotEligible):
            alert_manager.resolve("missing", "ana", "fixed", "done")

    def test_concurrent_acknowledge_single_winner(self, alert_manager, audit_recorder, make_violation):
        alert = _raise(alert_manager, make_violation())
        workers = 8
        barrier = threading.Barrier(workers)
        acknowledged, rejected = [], []

        def acknowledge(actor):
            barrier.wait()
            try:
                acknowledged.append(alert_manager.acknowledge(alert.alert_id, actor))
            except AlertNotEligible as exc:
                rejected.append(exc)

        threads = [threading.Thread(target=acknowledge, args=(f"reviewer-{i}",)) for i in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(acknowledged) == 1
        assert len(rejected) == workers - 1
        assert alert_manager.get_alert(alert.alert_id).acknowledged_by == acknowledged[0].acknowledged_by
        assert audit_recorder.count(AuditQuery(action=AuditAction.ALERT_ACKNOWLEDGED)) == 1


# ── Queries and retention ────────────────────────────────────────────────────


class TestQueries:
    def test_filter_and_paginate(self, alert_manager, make_violation):
        for attribute in ("gender", "race", "age"):
            _raise(alert_manager, make_violation(Severity.HIGH, attribute=attribute))
        _raise(alert_manager, make_violation(Severity.CRITICAL, attribute="disability"))

        high = alert_manager.list_alerts(AlertQuery(severity=Severity.HIGH, limit=2))
        assert high.total == 3
        assert len(high.alerts) == 2
        assert high.has_more

        assigned = alert_manager.list_alerts(AlertQuery(assigned_to="compliance-lead"))
        assert [a.attribute for a in assigned.alerts] == ["disability"]

    def test_open_alerts(self, alert_manager, make_violation):
        first = _raise(alert_manager, make_violation(attribute="gender"))
        _raise(alert_manager, make_violation(attribute="race"))
        alert_manager.resolve(first.alert_id, "ben", "fixed", "done")
        assert [a.attribute for a in alert_manager.open_alerts()] == ["race"]


class TestRetention:
    def test_purge_only_old_resolved_alerts(self, alert_manager, make_violation):
        old = _raise(alert_manager, make_violation(attribute="gender"))
        _raise(alert_manager, make_violation(attribute="race"))
        alert_manager.resolve(old.alert_id, "ben", "fixed", "done")

        assert alert_manager.purge_expired(utcnow() + timedelta(days=30)) == 0
        assert alert_manager.purge_expired(utcnow() + timedelta(days=366)) == 1
        assert alert_manager.get_alert(old.alert_id) is None
        assert len(alert_manager.open_alerts()) == 1

    def test_purge_uses_retention_stamped_at_creation(self, store, audit_recorder, make_violation):
        short_lived = AlertManager(AlertRepository(store), audit_recorder, retention_days=30)
        alert = _raise(short_lived, make_violation())
        resolved = short_lived.resolve(alert.alert_id, "ben", "fixed", "done")

        assert resolved.retention_period_days == 30
        assert resolved.expires_at == resolved.resolved_at + timedelta(days=30)

        default_manager = AlertManager(AlertRepository(store), audit_recorder)
        assert default_manager.purge_expired(utcnow() + timedelta(days=31)) == 1
        assert default_manager.get_alert(alert.alert_id) is None
