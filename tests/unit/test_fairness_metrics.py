"""
Tests for fairwatch.ml.ethics.fairness_metrics — the five metric families,
significance testing and score aggregation.
"""

import pytest

from fairwatch.data.models import ComponentWeights, FairnessContext, OutcomeRecord, ThresholdConfig
from fairwatch.ml.ethics import FairnessCalculator
from fairwatch.utils.constants import ContextProcessType, MetricFamily
from fairwatch.utils.exceptions import InconsistentAggregateScore, InsufficientSampleSize


# ── Demographic parity ───────────────────────────────────────────────────────


class TestDemographicParity:
    def test_parity_ratio(self, calculator, biased_outcomes):
        metrics = calculator.calculate(biased_outcomes)
        gender = metrics.demographic_parity.attributes["gender"]
        assert gender.parity_ratio == pytest.approx(0.5556, abs=1e-4)
        assert gender.selection_rates == {"female": 0.5, "male": 0.9}

    def test_group_intervals_bracket_rates(self, calculator, biased_outcomes):
        metrics = calculator.calculate(biased_outcomes)
        male = metrics.demographic_parity.attributes["gender"].groups["male"]
        assert male.confidence_interval.lower_bound < 0.9 < male.confidence_interval.upper_bound

    def test_all_zero_selections_is_perfect_parity(self, calculator, make_outcomes):
        metrics = calculator.calculate(make_outcomes({"a": (0, 50), "b": (0, 50)}))
        assert metrics.demographic_parity.overall_score == 1.0
        assert metrics.disparate_impact.overall_ratio == 1.0
        assert metrics.overall_fairness_score == 1.0

    def test_single_group_not_applicable(self, calculator, make_outcomes):
        outcomes = make_outcomes({"a": (5, 20)}) + make_outcomes({"x": (5, 10), "y": (5, 10)}, attribute="race")
        metrics = calculator.calculate(outcomes)
        gender = metrics.demographic_parity.attributes["gender"]
        assert gender.parity_ratio is None
        assert "fewer than two groups" in gender.not_applicable_reason
        assert metrics.demographic_parity.attributes["race"].parity_ratio == 1.0

    def test_small_group_not_applicable(self, calculator, make_outcomes):
        outcomes = make_outcomes({"a": (10, 20), "b": (1, 3)}) + make_outcomes(
            {"x": (5, 10), "y": (4, 10)}, attribute="race"
        )
        metrics = calculator.calculate(outcomes)
        assert metrics.demographic_parity.attributes["gender"].not_applicable_reason.startswith("groups ['b']")


# ── Disparate impact ─────────────────────────────────────────────────────────


class TestDisparateImpact:
    def test_four_fifths_rule(self, calculator, biased_outcomes):
        metrics = calculator.calculate(biased_outcomes)
        gender = metrics.disparate_impact.attributes["gender"]
        assert gender.reference_group == "male"
        assert gender.impact_ratios["male"] == 1.0
        assert gender.impact_ratio == pytest.approx(0.5556, abs=1e-4)
        assert gender.four_fifths_compliant is False
        assert metrics.four_fifths_rule_compliance is False

    def test_fair_outcomes_pass(self, calculator, fair_outcomes):
        metrics = calculator.calculate(fair_outcomes)
        assert metrics.disparate_impact.overall_ratio == pytest.approx(0.96)
        assert metrics.four_fifths_rule_compliance is True

    def test_overall_ratio_weighted_by_sample_size(self, calculator, make_outcomes):
        outcomes = make_outcomes({"m": (50, 100), "f": (25, 100)}) + make_outcomes(
            {"x": (10, 10), "y": (10, 10)}, attribute="race"
        )
        metrics = calculator.calculate(outcomes)
        # (0.5 * 200 + 1.0 * 20) / 220
        assert metrics.disparate_impact.overall_ratio == pytest.approx(0.5455, abs=1e-4)


# ── Equalized odds and predictive equality ───────────────────────────────────


class TestRateEquality:
    def test_not_applicable_without_ground_truth(self, calculator, biased_outcomes):
        metrics = calculator.calculate(biased_outcomes)
        assert metrics.equalized_odds.overall_score is None
        assert metrics.predictive_equality.overall_score is None
        assert MetricFamily.EQUALIZED_ODDS in metrics.not_applicable_families
        assert "no ground-truth labels" in metrics.equalized_odds.attributes["gender"].not_applicable_reason

    def test_perfect_predictions_are_equal(self, calculator, make_outcomes):
        metrics = calculator.calculate(
            make_outcomes({"m": (60, 100), "f": (40, 100)}, truth="selected")
        )
        gender = metrics.equalized_odds.attributes["gender"]
        assert gender.tpr_difference == 0.0
        assert gender.fpr_difference == 0.0
        assert metrics.equalized_odds.overall_score == 1.0
        assert metrics.predictive_equality.overall_score == 1.0

    def test_unequal_true_positive_rates(self, calculator):
        outcomes = []
        for group, hired_qualified in (("m", 20), ("f", 10)):
            for i in range(20):
                outcomes.append(
                    OutcomeRecord(groups={"gender": group}, selected=i < hired_qualified, actual_positive=True)
                )
            for _ in range(20):
                outcomes.append(OutcomeRecord(groups={"gender": group}, selected=False, actual_positive=False))

        metrics = calculator.calculate(outcomes)
        gender = metrics.equalized_odds.attributes["gender"]
        assert gender.groups["m"].true_positive_rate == 1.0
        assert gender.groups["f"].true_positive_rate == 0.5
        assert gender.tpr_difference == 0.5
        assert gender.equality_score == 0.5


# ── Treatment equality ───────────────────────────────────────────────────────


class TestTreatmentEquality:
    def test_not_applicable_without_timing(self, calculator, biased_outcomes):
        metrics = calculator.calculate(biased_outcomes)
        assert metrics.treatment_equality.overall_score is None
        assert metrics.treatment_equality.outlier_detection is None

    def test_unequal_decision_times(self, calculator, make_outcomes):
        outcomes = make_outcomes(
            {"m": (10, 20), "f": (10, 20)}, decision_time_hours={"m": 10.0, "f": 20.0}
        )
        gender = calculator.calculate(outcomes).treatment_equality.attributes["gender"]
        assert gender.time_equality == pytest.approx(0.5)
        assert gender.consistency_score == pytest.approx(1 - 5 / 15)
        assert gender.equality_score == pytest.approx(0.5833, abs=1e-4)

    def test_outlier_detection(self, calculator, make_outcomes):
        outcomes = make_outcomes({"m": (5, 10), "f": (5, 10)}, decision_time_hours={"m": 10.0, "f": 10.0})
        outcomes.append(OutcomeRecord(subject_id="slow", groups={"gender": "f"}, selected=False, decision_time_hours=100.0))
        detection = calculator.calculate(outcomes).treatment_equality.outlier_detection
        assert [o.subject_id for o in detection.outliers] == ["slow"]
        assert detection.outlier_rate == pytest.approx(1 / 21)


# ── Significance ─────────────────────────────────────────────────────────────


class TestSignificance:
    def test_significant_disparity(self, calculator, biased_outcomes):
        significance = calculator.calculate(biased_outcomes).statistical_significance
        test = significance.tests["gender"]
        assert test.test_name == "chi_square"
        assert test.is_significant
        assert test.adjusted_p_value == test.p_value
        assert significance.effect_sizes["gender"].interpretation == "medium"
        assert significance.power_analysis.is_adequate
        assert significance.correction.comparisons == 1

    def test_bonferroni_across_attributes(self, calculator, make_outcomes):
        outcomes = make_outcomes({"m": (50, 100), "f": (48, 100)}) + make_outcomes(
            {"x": (30, 60), "y": (28, 60)}, attribute="race"
        )
        significance = calculator.calculate(outcomes).statistical_significance
        assert significance.correction.comparisons == 2
        assert significance.correction.adjusted_alpha == pytest.approx(0.025)
        race = significance.tests["race"]
        assert race.adjusted_p_value == pytest.approx(min(1.0, race.p_value * 2))


# ── Aggregation and validation ───────────────────────────────────────────────


class TestAggregation:
    def test_overall_score_is_mean_of_applicable(self, calculator, biased_outcomes):
        metrics = calculator.calculate(biased_outcomes)
        assert metrics.overall_fairness_score == pytest.approx(0.5556, abs=1e-4)
        interval = metrics.confidence_interval
        assert interval.method == "bootstrap"
        assert interval.lower_bound <= metrics.overall_fairness_score <= interval.upper_bound

    def test_large_samples_use_normal_interval(self, make_outcomes):
        calculator = FairnessCalculator(bootstrap_max_sample_size=100)
        metrics = calculator.calculate(make_outcomes({"m": (50, 100), "f": (48, 100)}))
        assert metrics.confidence_interval.method == "normal"

    def test_skewed_weights_rejected(self, make_outcomes):
        config = ThresholdConfig(component_weights=ComponentWeights(treatment_equality=10.0))
        outcomes = make_outcomes(
            {"m": (90, 100), "f": (50, 100)}, decision_time_hours={"m": 10.0, "f": 10.0}
        )
        with pytest.raises(InconsistentAggregateScore):
            FairnessCalculator(config, bootstrap_resamples=20).calculate(outcomes)

    def test_validation_warns_about_not_applicable_families(self, calculator, biased_outcomes):
        warnings = calculator.calculate(biased_outcomes).validation.validation_warnings
        assert "equalized_odds not applicable" in warnings

    def test_sample_size_info(self, calculator, biased_outcomes):
        sample = calculator.calculate(biased_outcomes).sample_size
        assert sample.total == 200
        assert sample.by_attribute == {"gender": {"female": 100, "male": 100}}
        assert sample.adequacy_score == 1.0


class TestCalculateInputs:
    def test_too_few_outcomes(self, calculator, make_outcomes):
        with pytest.raises(InsufficientSampleSize) as exc_info:
            calculator.calculate(make_outcomes({"m": (2, 4), "f": (2, 4)}))
        assert exc_info.value.total == 8
        assert exc_info.value.code == "INSUFFICIENT_SAMPLE_SIZE"

    def test_no_group_membership(self, calculator):
        outcomes = [OutcomeRecord(selected=True) for _ in range(20)]
        with pytest.raises(InsufficientSampleSize):
            calculator.calculate(outcomes)

    def test_every_group_too_small(self, calculator, make_outcomes):
        outcomes = make_outcomes({"a": (1, 3), "b": (1, 3), "c": (1, 3), "d": (1, 3)})
        with pytest.raises(InsufficientSampleSize):
            calculator.calculate(outcomes)

    def test_context_and_process_carried(self, calculator, fair_outcomes):
        context = FairnessContext(process_type=ContextProcessType.PROMOTION, stage="decision")
        metrics = calculator.calculate(fair_outcomes, context, process_id="proc-1")
        assert metrics.process_id == "proc-1"
        assert metrics.context.process_type == "promotion"

    def test_per_call_thresholds(self, calculator, make_outcomes):
        strict = ThresholdConfig(min_group_sample_size=50, min_total_sample_size=50)
        outcomes = make_outcomes({"m": (10, 20), "f": (10, 20)})
        with pytest.raises(InsufficientSampleSize):
            calculator.calculate(outcomes, thresholds=strict)
