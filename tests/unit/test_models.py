"""
Tests for Pydantic data models in fairwatch.data.models.
"""

from datetime import datetime, timedelta

import pytest
from bson import ObjectId
from pydantic import ValidationError

from fairwatch.data.models import (
    ActorInfo,
    Alert,
    AlertPage,
    AuditEntry,
    ChangeRecord,
    ComponentWeights,
    ConfidenceInterval,
    DetectedBias,
    FairnessContext,
    MetricThreshold,
    MonitoringResult,
    Resolution,
    ThresholdConfig,
    create_alert_transition_audit,
    create_detection_run_audit,
    create_threshold_update_audit,
)
from fairwatch.utils.config import MonitoringSettings
from fairwatch.utils.constants import (
    ActorType,
    AlertStatus,
    AuditAction,
    BiasType,
    EthicalImpactLevel,
    MetricFamily,
    ProcessType,
    Severity,
)
from fairwatch.utils.exceptions import MissingRecommendedAction


# ── Fairness models ──────────────────────────────────────────────────────────


class TestFairnessContext:
    def test_for_process_sets_stage(self):
        context = FairnessContext.for_process(ProcessType.INTERVIEW_SCHEDULING)
        assert context.stage == "interview"
        assert context.process_type == "hiring"

    def test_period_must_be_ordered(self):
        with pytest.raises(ValidationError):
            FairnessContext(period_start=datetime(2024, 2, 1), period_end=datetime(2024, 1, 1))


class TestConfidenceInterval:
    def test_lower_above_upper_rejected(self):
        with pytest.raises(ValidationError):
            ConfidenceInterval(lower_bound=0.8, upper_bound=0.2)


class TestComponentWeights:
    def test_all_zero_rejected(self):
        with pytest.raises(ValidationError):
            ComponentWeights(
                demographic_parity=0,
                equalized_odds=0,
                predictive_equality=0,
                treatment_equality=0,
                disparate_impact=0,
            )

    def test_by_family_covers_all_families(self):
        assert set(ComponentWeights().by_family()) == set(MetricFamily)


class TestFairnessMetricsDocument:
    def test_round_trips_through_mongo_dict(self, calculator, biased_outcomes):
        metrics = calculator.calculate(biased_outcomes, process_id="proc-1")
        data = metrics.model_dump_mongo()
        assert "_id" not in data
        restored = type(metrics).model_validate(data)
        assert restored.overall_fairness_score == metrics.overall_fairness_score
        assert restored.demographic_parity.attributes["gender"].parity_ratio == pytest.approx(0.5556, abs=1e-4)

    def test_json_dump_serializes_object_id(self, calculator, fair_outcomes):
        metrics = calculator.calculate(fair_outcomes).model_copy(update={"id": ObjectId()})
        assert isinstance(metrics.model_dump(mode="json", by_alias=True)["_id"], str)


# ── Bias models ──────────────────────────────────────────────────────────────


class TestViolation:
    def test_signature(self, make_violation):
        violation = make_violation(metric=MetricFamily.DISPARATE_IMPACT, attribute="race")
        assert violation.signature == ("disparate_impact", "race")

    def test_enum_values_stored(self, make_violation):
        assert make_violation(Severity.CRITICAL).severity == "critical"


class TestDetectedBias:
    @pytest.mark.parametrize("severity", [Severity.HIGH, Severity.CRITICAL])
    def test_high_severity_requires_actions(self, severity):
        with pytest.raises(MissingRecommendedAction):
            DetectedBias(bias_type=BiasType.DEMOGRAPHIC, severity=severity, confidence=0.9)

    def test_medium_severity_without_actions_allowed(self):
        bias = DetectedBias(bias_type=BiasType.SYSTEMIC, severity=Severity.MEDIUM, confidence=0.5)
        assert bias.recommended_actions == []

    def test_confidence_bounded(self):
        with pytest.raises(ValidationError):
            DetectedBias(bias_type=BiasType.SYSTEMIC, severity=Severity.LOW, confidence=1.5)


class TestMonitoringResult:
    def test_violation_count(self, make_violation):
        result = MonitoringResult(
            process_id="p",
            process_type=ProcessType.HIRING_DECISION,
            stage="decision",
            violations=[make_violation(), make_violation(attribute="race")],
        )
        assert result.violation_count == 2
        assert result.compliance_status == "under_review"


# ── Alerts ───────────────────────────────────────────────────────────────────


class TestAlert:
    def _alert(self, make_violation, **kwargs) -> Alert:
        return Alert(
            process_id="proc-1",
            process_type=ProcessType.APPLICATION_REVIEW,
            violation=make_violation(),
            priority=Severity.HIGH,
            **kwargs,
        )

    def test_defaults(self, make_violation):
        alert = self._alert(make_violation)
        assert alert.status == "active"
        assert alert.is_open
        assert alert.occurrence_count == 1
        assert alert.dedup_key == ("proc-1", "demographic_parity", "gender")

    def test_resolved_requires_resolution(self, make_violation):
        with pytest.raises(ValidationError):
            self._alert(make_violation, status=AlertStatus.RESOLVED)

    def test_acknowledged_requires_actor(self, make_violation):
        with pytest.raises(ValidationError):
            self._alert(make_violation, status=AlertStatus.ACKNOWLEDGED)

    def test_timing_properties(self, make_violation):
        created = datetime(2024, 1, 1, 9, 0)
        alert = self._alert(
            make_violation,
            created_at=created,
            status=AlertStatus.RESOLVED,
            acknowledged_by="ana",
            acknowledged_at=created + timedelta(minutes=30),
            resolved_by="ana",
            resolved_at=created + timedelta(hours=6),
            resolution=Resolution(action="retrained", description="reviewers recalibrated"),
        )
        assert alert.response_time_minutes == 30
        assert alert.resolution_time_hours == 6
        assert alert.expires_at == created + timedelta(hours=6, days=365)
        assert not alert.is_open

    def test_resolution_requires_text(self):
        with pytest.raises(ValidationError):
            Resolution(action="", description="x")


class TestAlertPage:
    def test_has_more(self):
        assert AlertPage(alerts=[], total=5, limit=2, offset=0).has_more
        assert not AlertPage(alerts=[], total=0).has_more


# ── Audit ────────────────────────────────────────────────────────────────────


class TestAuditEntry:
    def test_entries_are_frozen(self):
        entry = AuditEntry(action=AuditAction.DETECTION_RUN, action_description="run")
        with pytest.raises(ValidationError):
            entry.action_description = "edited"

    def test_expiry_and_correction_flag(self):
        entry = AuditEntry(
            action=AuditAction.CORRECTION,
            action_description="fix",
            timestamp=datetime(2024, 1, 1),
            retention_period_days=10,
            corrects_entry_id="abc",
        )
        assert entry.expires_at == datetime(2024, 1, 11)
        assert entry.is_correction

    def test_detection_run_audit(self):
        entry = create_detection_run_audit(
            "proc-1", "hiring_decision", "non_compliant", 2, Severity.CRITICAL, 0.44, metrics_id="m1"
        )
        assert entry.action == AuditAction.DETECTION_RUN
        assert entry.ethical_impact == EthicalImpactLevel.CRITICAL
        assert entry.actor.actor_type == ActorType.BATCH_JOB
        assert entry.context["violation_count"] == 2

    def test_quick_check_audit(self):
        entry = create_detection_run_audit("proc-1", "matching", "compliant", 0, None, 0.0, mode="quick")
        assert entry.action == AuditAction.QUICK_CHECK
        assert entry.ethical_impact == EthicalImpactLevel.NONE
        assert entry.compliance_implications == []

    def test_alert_transition_audit(self):
        entry = create_alert_transition_audit(
            AuditAction.ALERT_ACKNOWLEDGED, "a1", ActorInfo.user("ana"), "active", "acknowledged", Severity.HIGH
        )
        assert entry.resource.resource_id == "a1"
        assert entry.changes[0].change_type == "update"
        assert entry.ethical_impact == EthicalImpactLevel.HIGH

    def test_rejected_threshold_audit(self):
        entry = create_threshold_update_audit(
            ActorInfo.user("ana"), [ChangeRecord(field_name="x")], 3, accepted=False, errors=["bad"]
        )
        assert entry.action == AuditAction.THRESHOLD_UPDATE_REJECTED
        assert entry.context == {"errors": ["bad"]}


# ── Thresholds ───────────────────────────────────────────────────────────────


class TestThresholdConfig:
    def test_defaults(self):
        config = ThresholdConfig()
        assert config.for_family(MetricFamily.DEMOGRAPHIC_PARITY) == MetricThreshold(warning=0.8, critical=0.6)
        assert config.for_family("equalized_odds") == MetricThreshold(warning=0.7, critical=0.5)
        assert config.alert_min_severity == "medium"

    def test_critical_above_warning_rejected(self):
        with pytest.raises(ValidationError):
            MetricThreshold(warning=0.5, critical=0.7)

    def test_group_minimum_above_total_rejected(self):
        with pytest.raises(ValidationError):
            ThresholdConfig(min_group_sample_size=20, min_total_sample_size=10)

    def test_frozen(self):
        with pytest.raises(ValidationError):
            ThresholdConfig().near_threshold_margin = 0.5

    def test_from_settings(self):
        settings = MonitoringSettings(warning_threshold=0.75, critical_threshold=0.55, alert_min_severity="high")
        config = ThresholdConfig.from_settings(settings, updated_by="ops")
        assert config.treatment_equality == MetricThreshold(warning=0.75, critical=0.55)
        assert config.disparate_impact == MetricThreshold(warning=0.8, critical=0.6)
        assert config.alert_min_severity == "high"
        assert config.updated_by == "ops"
