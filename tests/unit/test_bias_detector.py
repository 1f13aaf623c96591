"""
Tests for fairwatch.ml.ethics.bias_detector — severity bands, violation
ordering, compliance status, bias classification and quick checks.
"""

import pytest

from fairwatch.data.models import MetricThreshold, ProcessEventData, ThresholdConfig
from fairwatch.ml.ethics import classify_severity, determine_compliance, order_violations
from fairwatch.utils.constants import (
    BiasType,
    ComplianceStatus,
    MetricFamily,
    ProcessType,
    Severity,
    ViolationType,
)


# ── classify_severity() ──────────────────────────────────────────────────────


class TestClassifySeverity:
    band = MetricThreshold(warning=0.8, critical=0.6)

    @pytest.mark.parametrize(
        "score,expected",
        [
            (0.0, (Severity.CRITICAL, ViolationType.THRESHOLD)),
            (0.59, (Severity.CRITICAL, ViolationType.THRESHOLD)),
            (0.6, (Severity.HIGH, ViolationType.THRESHOLD)),
            (0.79, (Severity.HIGH, ViolationType.THRESHOLD)),
            (0.8, (Severity.MEDIUM, ViolationType.PRACTICAL)),
            (0.87, (Severity.MEDIUM, ViolationType.PRACTICAL)),
        ],
    )
    def test_bands(self, score, expected):
        assert classify_severity(score, self.band, 0.1) == expected

    @pytest.mark.parametrize("score", [0.9, 0.95, 1.0])
    def test_no_violation_above_margin(self, score):
        assert classify_severity(score, self.band, 0.1) is None

    def test_zero_margin_disables_practical_band(self):
        assert classify_severity(0.8, self.band, 0.0) is None


# ── determine_compliance() ───────────────────────────────────────────────────


class TestDetermineCompliance:
    def test_no_violations_is_compliant(self):
        assert determine_compliance([]) == ComplianceStatus.COMPLIANT

    def test_critical_is_non_compliant(self, make_violation):
        violations = [make_violation(Severity.MEDIUM), make_violation(Severity.CRITICAL)]
        assert determine_compliance(violations) == ComplianceStatus.NON_COMPLIANT

    @pytest.mark.parametrize("severity", [Severity.HIGH, Severity.MEDIUM])
    def test_high_or_medium_is_partial(self, make_violation, severity):
        assert determine_compliance([make_violation(severity)]) == ComplianceStatus.PARTIALLY_COMPLIANT

    def test_low_only_is_compliant(self, make_violation):
        assert determine_compliance([make_violation(Severity.LOW)]) == ComplianceStatus.COMPLIANT

    def test_missing_data_is_under_review(self):
        assert determine_compliance([], data_available=False) == ComplianceStatus.UNDER_REVIEW


# ── order_violations() ───────────────────────────────────────────────────────


class TestOrderViolations:
    def test_severity_then_deviation(self, make_violation):
        medium = make_violation(Severity.MEDIUM, deviation=0.5, attribute="age")
        high_small = make_violation(Severity.HIGH, deviation=0.05, attribute="race")
        high_large = make_violation(Severity.HIGH, deviation=0.15, attribute="gender")
        critical = make_violation(Severity.CRITICAL, deviation=0.01, attribute="disability")

        ordered = order_violations([medium, high_small, critical, high_large])
        assert [v.attribute for v in ordered] == ["disability", "gender", "race", "age"]


# ── Batch detection ──────────────────────────────────────────────────────────


class TestDetect:
    def test_biased_outcomes_are_critical(self, calculator, detector, biased_outcomes):
        result = detector.detect(calculator.calculate(biased_outcomes))

        assert result.bias_detected
        assert [v.metric for v in result.violations] == ["demographic_parity", "disparate_impact"]
        assert all(v.severity == Severity.CRITICAL for v in result.violations)
        assert all(v.violation_type == ViolationType.THRESHOLD for v in result.violations)
        assert result.violations[0].affected_groups == ["female"]
        assert result.violations[0].threshold == 0.6
        assert result.compliance_status == ComplianceStatus.NON_COMPLIANT
        assert result.overall_severity == Severity.CRITICAL
        assert result.bias_score == pytest.approx(0.4444, abs=1e-4)

    def test_detected_bias_classification(self, calculator, detector, biased_outcomes):
        bias = detector.detect(calculator.calculate(biased_outcomes)).detected_bias

        assert bias.bias_type == BiasType.DEMOGRAPHIC
        assert bias.severity == Severity.CRITICAL
        assert bias.confidence >= 0.99
        assert bias.affected_groups == ["gender:female"]
        assert bias.impact_assessment.affected_population == 100
        assert bias.impact_assessment.legal_risk == "disparate impact litigation exposure"
        assert "Escalate to the compliance officer" in bias.recommended_actions
        assert len(bias.evidence) == 2

    def test_matching_process_is_algorithmic_bias(self, calculator, detector, biased_outcomes):
        metrics = calculator.calculate(biased_outcomes)
        result = detector.detect(metrics, process_type=ProcessType.MATCHING)
        assert result.detected_bias.bias_type == BiasType.ALGORITHMIC

    def test_patterns_and_not_applicable(self, calculator, detector, biased_outcomes):
        result = detector.detect(calculator.calculate(biased_outcomes))
        assert len(result.detected_patterns) == 1
        assert result.detected_patterns[0].startswith("gender: selection rate of 'male' (90%)")
        assert any(reason.startswith("equalized_odds:") for reason in result.not_applicable)

    def test_fair_outcomes_are_compliant(self, calculator, detector, fair_outcomes):
        result = detector.detect(calculator.calculate(fair_outcomes))
        assert not result.bias_detected
        assert result.compliance_status == ComplianceStatus.COMPLIANT
        assert result.detected_bias is None
        assert result.recommendations == []
        assert result.detected_patterns == []

    def test_near_threshold_is_practical(self, calculator, detector, make_outcomes):
        metrics = calculator.calculate(make_outcomes({"m": (50, 100), "f": (42, 100)}))
        result = detector.detect(metrics)
        assert {v.violation_type for v in result.violations} == {ViolationType.PRACTICAL}
        assert {v.severity for v in result.violations} == {Severity.MEDIUM}
        assert result.compliance_status == ComplianceStatus.PARTIALLY_COMPLIANT

    def test_below_warning_is_high(self, calculator, detector, make_outcomes):
        metrics = calculator.calculate(make_outcomes({"m": (50, 100), "f": (35, 100)}))
        result = detector.detect(metrics)
        parity = result.violations[0]
        assert parity.severity == Severity.HIGH
        assert parity.observed_value == pytest.approx(0.7)
        assert parity.deviation == pytest.approx(0.1)
        assert result.detected_bias.recommended_actions

    def test_statistical_violation_without_threshold_breach(self, calculator, detector, make_outcomes):
        config = ThresholdConfig(effect_size_threshold=0.2)
        metrics = calculator.calculate(make_outcomes({"m": (100, 100), "f": (90, 100)}), thresholds=config)
        result = detector.detect(metrics, config)

        assert len(result.violations) == 1
        violation = result.violations[0]
        assert violation.violation_type == ViolationType.STATISTICAL
        assert violation.severity == Severity.MEDIUM
        assert violation.observed_value == metrics.statistical_significance.tests["gender"].adjusted_p_value
        assert violation.affected_groups == ["f"]
        assert result.compliance_status == ComplianceStatus.PARTIALLY_COMPLIANT

    def test_statistical_not_duplicated_when_parity_flagged(self, calculator, detector, biased_outcomes):
        result = detector.detect(calculator.calculate(biased_outcomes))
        assert ViolationType.STATISTICAL not in {v.violation_type for v in result.violations}

    def test_snapshot_version_recorded(self, calculator, detector, fair_outcomes):
        config = ThresholdConfig(version=7)
        result = detector.detect(calculator.calculate(fair_outcomes), config)
        assert result.threshold_version == 7

    def test_stricter_thresholds_flag_more(self, calculator, detector, fair_outcomes):
        strict = ThresholdConfig(demographic_parity=MetricThreshold(warning=0.99, critical=0.97))
        result = detector.detect(calculator.calculate(fair_outcomes), strict)
        assert result.violations[0].metric == MetricFamily.DEMOGRAPHIC_PARITY
        assert result.violations[0].severity == Severity.CRITICAL


# ── Quick check ──────────────────────────────────────────────────────────────


class TestQuickCheck:
    def test_term_flags(self, detector):
        event = ProcessEventData(text="Hiring young Rockstar developers, guys welcome")
        result = detector.quick_check(event)

        categories = {flag.category: flag for flag in result.term_flags}
        assert set(categories) == {"exclusionary_language", "age_bias", "gender_bias"}
        assert categories["exclusionary_language"].terms == ["rockstar"]
        assert result.provisional_score == pytest.approx(0.8)
        assert result.confidence == 0.8
        assert len(result.suggestions) == 3

    def test_no_evaluable_outcomes_is_under_review(self, detector):
        result = detector.quick_check(ProcessEventData(text="A clear, neutral description"))
        assert result.compliance_status == ComplianceStatus.UNDER_REVIEW
        assert result.provisional_score == 0.0
        assert result.flags == []

    def test_rate_rule_uses_recent_history(self, detector, make_outcomes):
        history = make_outcomes({"male": (90, 100), "female": (50, 99)})
        event = ProcessEventData(outcomes=make_outcomes({"female": (0, 1)}, prefix="new-"))
        result = detector.quick_check(event, history)

        assert result.sample_size == 200
        assert result.violations[0].severity == Severity.CRITICAL
        assert result.violations[0].affected_groups == ["female"]
        assert "gender_selection_disparity" in result.flags
        assert result.compliance_status == ComplianceStatus.NON_COMPLIANT
        assert result.provisional_score == pytest.approx(1 - 0.5556, abs=1e-4)

    def test_balanced_history_is_compliant(self, detector, fair_outcomes):
        result = detector.quick_check(ProcessEventData(), fair_outcomes)
        assert result.violations == []
        assert result.compliance_status == ComplianceStatus.COMPLIANT

    def test_small_groups_not_evaluated(self, detector, make_outcomes):
        result = detector.quick_check(ProcessEventData(outcomes=make_outcomes({"a": (3, 3), "b": (0, 3)})))
        assert result.violations == []
        assert result.compliance_status == ComplianceStatus.UNDER_REVIEW

    def test_score_capped_at_one(self, detector, biased_outcomes):
        event = ProcessEventData(text="young ninja guys, culture fit and beer")
        result = detector.quick_check(event, biased_outcomes)
        assert result.provisional_score == 1.0
