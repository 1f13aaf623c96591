"""
Fairness metrics calculation for bias detection.

Computes the five metric families (demographic parity, equalized odds,
predictive equality, treatment equality, disparate impact) over outcome
records grouped by protected attribute, plus statistical significance,
an aggregated fairness score and its confidence interval.
"""

from collections import defaultdict
from typing import Optional

import numpy as np

from fairwatch.data.models.fairness import (
    AttributeImpactMetrics,
    AttributeParityMetrics,
    AttributeRateEquality,
    AttributeTreatmentMetrics,
    ConfidenceInterval,
    ContingencyTestResult,
    DemographicParityMetrics,
    DisparateImpactMetrics,
    EffectSize,
    EqualizedOddsMetrics,
    FairnessContext,
    FairnessMetrics,
    GroupRateMetrics,
    GroupSelectionMetrics,
    GroupTreatmentMetrics,
    MultipleComparisonCorrection,
    OutcomeRecord,
    OutlierDetection,
    OutlierRecord,
    PowerAnalysisResult,
    PredictiveEqualityMetrics,
    SampleSizeInfo,
    StatisticalSignificanceMetrics,
    TreatmentEqualityMetrics,
    ValidationStatus,
)
from fairwatch.data.models.thresholds import ThresholdConfig
from fairwatch.ml.ethics import statistics
from fairwatch.utils.constants import (
    ADEQUATE_POWER,
    MEDIUM_EFFECT_SIZE,
    SMALL_GROUP_WARNING_SIZE,
    MetricFamily,
)
from fairwatch.utils.exceptions import InsufficientSampleSize
from fairwatch.utils.logger import get_logger

logger = get_logger(__name__)

GroupedOutcomes = dict[str, list[OutcomeRecord]]


def _mean(values: list[float]) -> Optional[float]:
    return float(np.mean(values)) if values else None


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _small_groups(grouped: GroupedOutcomes, minimum: int) -> list[str]:
    return [name for name, records in grouped.items() if len(records) < minimum]


class FairnessCalculator:
    """
    Calculates the fairness metrics bundle for a set of outcomes.

    The calculator holds no mutable state; every call works from the
    ThresholdConfig snapshot it is given (or the one it was built with).
    """

    def __init__(
        self,
        thresholds: Optional[ThresholdConfig] = None,
        bootstrap_resamples: int = 200,
        bootstrap_max_sample_size: int = 500,
        random_seed: Optional[int] = 42,
        confidence_level: float = 0.95,
    ):
        """
        Initialize the fairness calculator.

        Args:
            thresholds: Default configuration snapshot for calculations.
            bootstrap_resamples: Resamples used for the overall-score interval.
            bootstrap_max_sample_size: Above this many outcomes the interval
                uses the normal approximation instead of the bootstrap.
            random_seed: Seed for the bootstrap, for reproducible intervals.
            confidence_level: Level of all reported confidence intervals.
        """
        self.thresholds = thresholds or ThresholdConfig()
        self.bootstrap_resamples = bootstrap_resamples
        self.bootstrap_max_sample_size = bootstrap_max_sample_size
        self.random_seed = random_seed
        self.confidence_level = confidence_level

    def calculate(
        self,
        outcomes: list[OutcomeRecord],
        context: Optional[FairnessContext] = None,
        process_id: Optional[str] = None,
        thresholds: Optional[ThresholdConfig] = None,
    ) -> FairnessMetrics:
        """
        Calculate the fairness metrics bundle.

        Args:
            outcomes: Outcome records tagged with protected-attribute groups.
            context: Scope of the calculation.
            process_id: Monitored process the outcomes belong to, if any.
            thresholds: Configuration snapshot; defaults to the calculator's.

        Returns:
            A validated FairnessMetrics bundle.

        Raises:
            InsufficientSampleSize: Too few outcomes, or no metric family
                could be computed.
            InconsistentAggregateScore: The weighted overall score drifted
                from the unweighted component mean.
        """
        config = thresholds or self.thresholds
        total = len(outcomes)

        if total < config.min_total_sample_size:
            raise InsufficientSampleSize(
                f"{total} outcomes is below the minimum of {config.min_total_sample_size}",
                total=total,
                minimum=config.min_total_sample_size,
            )

        by_attribute = self._group_by_attribute(outcomes)
        if not by_attribute:
            raise InsufficientSampleSize(
                "No outcome carries protected-attribute group membership",
                total=total,
                minimum=config.min_total_sample_size,
            )

        significance = self._calculate_significance(by_attribute, total, config)
        demographic_parity = self._calculate_demographic_parity(by_attribute, significance, config)
        equalized_odds, predictive_equality = self._calculate_rate_equality(by_attribute, config)
        treatment_equality = self._calculate_treatment_equality(outcomes, by_attribute, config)
        disparate_impact = self._calculate_disparate_impact(by_attribute, demographic_parity, config)

        component_scores = {
            MetricFamily.DEMOGRAPHIC_PARITY: demographic_parity.overall_score,
            MetricFamily.EQUALIZED_ODDS: equalized_odds.overall_score,
            MetricFamily.PREDICTIVE_EQUALITY: predictive_equality.overall_score,
            MetricFamily.TREATMENT_EQUALITY: treatment_equality.overall_score,
            MetricFamily.DISPARATE_IMPACT: disparate_impact.overall_ratio,
        }
        if all(score is None for score in component_scores.values()):
            raise InsufficientSampleSize(
                "No fairness metric could be computed from the supplied outcomes",
                total=total,
                minimum=config.min_group_sample_size,
            )

        warnings: list[str] = []
        overall_score = self._aggregate(component_scores, config, warnings)
        interval = self._score_interval(
            outcomes, by_attribute, component_scores, overall_score, config
        )
        sample_size = self._sample_size_info(by_attribute, total, config)
        validation = self._validate(
            by_attribute, component_scores, significance, config, warnings
        )

        metrics = FairnessMetrics(
            process_id=process_id,
            context=context or FairnessContext(),
            demographic_parity=demographic_parity,
            equalized_odds=equalized_odds,
            predictive_equality=predictive_equality,
            treatment_equality=treatment_equality,
            disparate_impact=disparate_impact,
            statistical_significance=significance,
            overall_fairness_score=overall_score,
            confidence_interval=interval,
            sample_size=sample_size,
            component_weights=config.component_weights,
            validation=validation,
        )

        logger.info(
            f"Fairness metrics {metrics.metrics_id}: overall={overall_score:.4f}, "
            f"n={total}, attributes={sorted(by_attribute)}, "
            f"not_applicable={[f.value for f in metrics.not_applicable_families]}"
        )
        return metrics

    # -------------------------------------------------------------------------
    # Grouping
    # -------------------------------------------------------------------------

    @staticmethod
    def _group_by_attribute(outcomes: list[OutcomeRecord]) -> dict[str, GroupedOutcomes]:
        grouped: dict[str, GroupedOutcomes] = defaultdict(lambda: defaultdict(list))
        for record in outcomes:
            for attribute, group in record.groups.items():
                grouped[attribute][group].append(record)
        return {
            attribute: {group: groups[group] for group in sorted(groups)}
            for attribute, groups in sorted(grouped.items())
        }

    # -------------------------------------------------------------------------
    # Statistical significance
    # -------------------------------------------------------------------------

    def _calculate_significance(
        self,
        by_attribute: dict[str, GroupedOutcomes],
        total: int,
        config: ThresholdConfig,
    ) -> StatisticalSignificanceMetrics:
        alpha = config.significance_level
        tests: dict[str, ContingencyTestResult] = {}
        effect_sizes: dict[str, EffectSize] = {}
        max_df = 1

        for attribute, grouped in by_attribute.items():
            if len(grouped) < 2:
                continue
            table = statistics.contingency_table(
                [sum(r.selected for r in records) for records in grouped.values()],
                [len(records) for records in grouped.values()],
            )
            result = statistics.contingency_test(table, alpha)
            tests[attribute] = ContingencyTestResult(
                attribute=attribute,
                test_name=result.test_name,
                statistic=result.statistic,
                degrees_of_freedom=result.degrees_of_freedom,
                p_value=_clamp(result.p_value),
                critical_value=result.critical_value,
                is_significant=result.is_significant,
            )
            value = statistics.cramers_v(table)
            effect_sizes[attribute] = EffectSize(
                attribute=attribute,
                value=value,
                interpretation=statistics.interpret_effect_size(value),
            )
            max_df = max(max_df, len(grouped) - 1)

        correction = None
        overall_p = None
        if tests:
            adjusted, adjusted_alpha = statistics.bonferroni(
                {attribute: t.p_value for attribute, t in tests.items()}, alpha
            )
            tests = {
                attribute: t.model_copy(
                    update={
                        "adjusted_p_value": adjusted[attribute],
                        "is_significant": adjusted[attribute] < alpha,
                    }
                )
                for attribute, t in tests.items()
            }
            correction = MultipleComparisonCorrection(
                adjusted_alpha=adjusted_alpha, comparisons=len(tests)
            )
            overall_p = min(adjusted.values())

        power = statistics.chi_square_power(MEDIUM_EFFECT_SIZE, total, max_df, alpha)
        return StatisticalSignificanceMetrics(
            tests=tests,
            effect_sizes=effect_sizes,
            power_analysis=PowerAnalysisResult(
                power=_clamp(power),
                effect_size=MEDIUM_EFFECT_SIZE,
                sample_size=total,
                alpha=alpha,
                degrees_of_freedom=max_df,
                is_adequate=power >= ADEQUATE_POWER,
            ),
            correction=correction,
            overall_p_value=overall_p,
        )

    # -------------------------------------------------------------------------
    # Demographic parity
    # -------------------------------------------------------------------------

    def _calculate_demographic_parity(
        self,
        by_attribute: dict[str, GroupedOutcomes],
        significance: StatisticalSignificanceMetrics,
        config: ThresholdConfig,
    ) -> DemographicParityMetrics:
        attributes: dict[str, AttributeParityMetrics] = {}

        for attribute, grouped in by_attribute.items():
            groups = {}
            for name, records in grouped.items():
                selected = sum(r.selected for r in records)
                lower, upper = statistics.wilson_interval(
                    selected, len(records), self.confidence_level
                )
                groups[name] = GroupSelectionMetrics(
                    group=name,
                    sample_size=len(records),
                    selected_count=selected,
                    selection_rate=statistics.proportion(selected, len(records)),
                    confidence_interval=ConfidenceInterval(
                        lower_bound=lower,
                        upper_bound=upper,
                        confidence_level=self.confidence_level,
                    ),
                )

            test = significance.tests.get(attribute)
            reason = self._parity_not_applicable_reason(grouped, config)
            attributes[attribute] = AttributeParityMetrics(
                attribute=attribute,
                groups=groups,
                parity_ratio=(
                    None
                    if reason
                    else round(statistics.min_max_ratio([g.selection_rate for g in groups.values()]), 4)
                ),
                p_value=test.p_value if test else None,
                not_applicable_reason=reason,
            )

        ratios = [a.parity_ratio for a in attributes.values() if a.parity_ratio is not None]
        return DemographicParityMetrics(
            overall_score=_mean(ratios),
            attributes=attributes,
            not_applicable_reason=None if ratios else "no attribute has adequately sized groups",
        )

    @staticmethod
    def _parity_not_applicable_reason(grouped: GroupedOutcomes, config: ThresholdConfig) -> Optional[str]:
        if len(grouped) < 2:
            return "fewer than two groups observed"
        small = _small_groups(grouped, config.min_group_sample_size)
        if small:
            return (
                f"groups {small} below minimum sample size {config.min_group_sample_size}"
            )
        return None

    # -------------------------------------------------------------------------
    # Equalized odds and predictive equality
    # -------------------------------------------------------------------------

    def _calculate_rate_equality(
        self,
        by_attribute: dict[str, GroupedOutcomes],
        config: ThresholdConfig,
    ) -> tuple[EqualizedOddsMetrics, PredictiveEqualityMetrics]:
        odds: dict[str, AttributeRateEquality] = {}
        predictive: dict[str, AttributeRateEquality] = {}

        for attribute, grouped in by_attribute.items():
            labelled = {
                name: [r for r in records if r.actual_positive is not None]
                for name, records in grouped.items()
            }
            labelled = {name: records for name, records in labelled.items() if records}
            group_rates = {name: self._group_rates(name, records) for name, records in labelled.items()}

            reason = None
            if not labelled:
                reason = "no ground-truth labels available"
            elif len(labelled) < 2:
                reason = "ground truth available for fewer than two groups"
            else:
                small = _small_groups(labelled, config.min_group_sample_size)
                if small:
                    reason = f"labelled groups {small} below minimum sample size {config.min_group_sample_size}"

            tpr_diff = self._rate_difference(group_rates, "true_positive_rate")
            fpr_diff = self._rate_difference(group_rates, "false_positive_rate")
            precision_diff = self._rate_difference(group_rates, "precision")

            odds_score = self._equality_score(reason, [tpr_diff, fpr_diff])
            predictive_score = self._equality_score(reason, [fpr_diff, precision_diff])

            odds[attribute] = AttributeRateEquality(
                attribute=attribute,
                groups=group_rates,
                tpr_difference=tpr_diff,
                fpr_difference=fpr_diff,
                precision_difference=precision_diff,
                equality_score=odds_score,
                not_applicable_reason=reason or (None if odds_score is not None else "rates undefined for all groups"),
            )
            predictive[attribute] = AttributeRateEquality(
                attribute=attribute,
                groups=group_rates,
                tpr_difference=tpr_diff,
                fpr_difference=fpr_diff,
                precision_difference=precision_diff,
                equality_score=predictive_score,
                not_applicable_reason=reason or (None if predictive_score is not None else "rates undefined for all groups"),
            )

        odds_scores = [a.equality_score for a in odds.values() if a.equality_score is not None]
        predictive_scores = [a.equality_score for a in predictive.values() if a.equality_score is not None]
        return (
            EqualizedOddsMetrics(
                overall_score=_mean(odds_scores),
                attributes=odds,
                not_applicable_reason=None if odds_scores else "ground truth unavailable or insufficient",
            ),
            PredictiveEqualityMetrics(
                overall_score=_mean(predictive_scores),
                attributes=predictive,
                not_applicable_reason=None if predictive_scores else "ground truth unavailable or insufficient",
            ),
        )

    @staticmethod
    def _group_rates(name: str, records: list[OutcomeRecord]) -> GroupRateMetrics:
        positives = [r for r in records if r.actual_positive]
        negatives = [r for r in records if not r.actual_positive]
        selected = [r for r in records if r.selected]
        true_positives = sum(1 for r in positives if r.selected)
        false_positives = sum(1 for r in negatives if r.selected)
        return GroupRateMetrics(
            group=name,
            sample_size=len(records),
            actual_positives=len(positives),
            actual_negatives=len(negatives),
            true_positive_rate=true_positives / len(positives) if positives else None,
            false_positive_rate=false_positives / len(negatives) if negatives else None,
            precision=true_positives / len(selected) if selected else None,
        )

    @staticmethod
    def _rate_difference(group_rates: dict[str, GroupRateMetrics], field_name: str) -> Optional[float]:
        values = [getattr(g, field_name) for g in group_rates.values()]
        values = [v for v in values if v is not None]
        if len(values) < 2:
            return None
        return round(statistics.max_abs_difference(values), 4)

    @staticmethod
    def _equality_score(reason: Optional[str], differences: list[Optional[float]]) -> Optional[float]:
        available = [d for d in differences if d is not None]
        if reason or not available:
            return None
        return round(_clamp(1.0 - max(available)), 4)

    # -------------------------------------------------------------------------
    # Treatment equality
    # -------------------------------------------------------------------------

    def _calculate_treatment_equality(
        self,
        outcomes: list[OutcomeRecord],
        by_attribute: dict[str, GroupedOutcomes],
        config: ThresholdConfig,
    ) -> TreatmentEqualityMetrics:
        attributes: dict[str, AttributeTreatmentMetrics] = {}

        for attribute, grouped in by_attribute.items():
            groups = {}
            time_means: list[float] = []
            resource_means: list[float] = []
            timed_counts: dict[str, list[OutcomeRecord]] = {}

            for name, records in grouped.items():
                times = [r.decision_time_hours for r in records if r.decision_time_hours is not None]
                resources = [r.resource_allocation for r in records if r.resource_allocation is not None]
                groups[name] = GroupTreatmentMetrics(
                    group=name,
                    sample_size=len(records),
                    mean_decision_time=_mean(times),
                    decision_time_cv=statistics.coefficient_of_variation(times) if times else None,
                    mean_resource_allocation=_mean(resources),
                )
                if times or resources:
                    timed_counts[name] = records
                if times:
                    time_means.append(float(np.mean(times)))
                if resources:
                    resource_means.append(float(np.mean(resources)))

            reason = None
            if len(time_means) < 2 and len(resource_means) < 2:
                reason = "no decision-time or resource data for two or more groups"
            else:
                small = _small_groups(timed_counts, config.min_group_sample_size)
                if small:
                    reason = f"groups {small} below minimum sample size {config.min_group_sample_size}"

            time_equality = statistics.min_max_ratio(time_means) if len(time_means) >= 2 else None
            resource_equality = statistics.min_max_ratio(resource_means) if len(resource_means) >= 2 else None
            consistency_source = time_means if len(time_means) >= 2 else resource_means
            cv = statistics.coefficient_of_variation(consistency_source)
            consistency = _clamp(1.0 - cv) if cv is not None else None

            components = [c for c in (time_equality, resource_equality, consistency) if c is not None]
            equality_score = None if reason or not components else round(_mean(components), 4)

            attributes[attribute] = AttributeTreatmentMetrics(
                attribute=attribute,
                groups=groups,
                time_equality=time_equality,
                resource_equality=resource_equality,
                consistency_score=consistency,
                equality_score=equality_score,
                not_applicable_reason=reason,
            )

        scores = [a.equality_score for a in attributes.values() if a.equality_score is not None]
        return TreatmentEqualityMetrics(
            overall_score=_mean(scores),
            attributes=attributes,
            outlier_detection=self._detect_outliers(outcomes, config),
            not_applicable_reason=None if scores else "process timing and resource data unavailable",
        )

    @staticmethod
    def _detect_outliers(outcomes: list[OutcomeRecord], config: ThresholdConfig) -> Optional[OutlierDetection]:
        timed = [r for r in outcomes if r.decision_time_hours is not None]
        if not timed:
            return None
        flagged = statistics.zscore_outliers(
            [r.decision_time_hours for r in timed], config.outlier_z_threshold
        )
        return OutlierDetection(
            threshold=config.outlier_z_threshold,
            outliers=[
                OutlierRecord(
                    subject_id=timed[index].subject_id,
                    groups=timed[index].groups,
                    value=timed[index].decision_time_hours,
                    z_score=round(z, 4),
                )
                for index, z in flagged
            ],
            outlier_rate=len(flagged) / len(timed),
        )

    # -------------------------------------------------------------------------
    # Disparate impact
    # -------------------------------------------------------------------------

    def _calculate_disparate_impact(
        self,
        by_attribute: dict[str, GroupedOutcomes],
        parity: DemographicParityMetrics,
        config: ThresholdConfig,
    ) -> DisparateImpactMetrics:
        attributes: dict[str, AttributeImpactMetrics] = {}

        for attribute, parity_metrics in parity.attributes.items():
            rates = parity_metrics.selection_rates
            sample_size = sum(parity_metrics.sample_sizes.values())
            if not parity_metrics.is_applicable:
                attributes[attribute] = AttributeImpactMetrics(
                    attribute=attribute,
                    sample_size=sample_size,
                    not_applicable_reason=parity_metrics.not_applicable_reason,
                )
                continue

            reference = max(rates, key=rates.get)
            reference_rate = rates[reference]
            ratios = {
                group: round(rate / reference_rate, 4) if reference_rate > 0 else 1.0
                for group, rate in rates.items()
            }
            ratio = min(ratios.values())
            attributes[attribute] = AttributeImpactMetrics(
                attribute=attribute,
                reference_group=reference,
                impact_ratios=ratios,
                impact_ratio=ratio,
                sample_size=sample_size,
                four_fifths_compliant=ratio >= config.four_fifths_threshold,
            )

        applicable = [a for a in attributes.values() if a.is_applicable]
        if not applicable:
            return DisparateImpactMetrics(
                attributes=attributes,
                not_applicable_reason="no attribute has adequately sized groups",
            )

        weights = np.array([a.sample_size for a in applicable], dtype=float)
        ratios = np.array([a.impact_ratio for a in applicable], dtype=float)
        overall = round(float(np.average(ratios, weights=weights)), 4)
        return DisparateImpactMetrics(
            overall_ratio=overall,
            four_fifths_rule_compliance=overall >= config.four_fifths_threshold,
            attributes=attributes,
        )

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    @staticmethod
    def _weighted_score(
        component_scores: dict[MetricFamily, Optional[float]],
        weights: dict[MetricFamily, float],
    ) -> Optional[float]:
        applicable = {f: s for f, s in component_scores.items() if s is not None}
        total_weight = sum(weights[f] for f in applicable)
        if total_weight <= 0:
            return None
        return sum(_clamp(s) * weights[f] for f, s in applicable.items()) / total_weight

    def _aggregate(
        self,
        component_scores: dict[MetricFamily, Optional[float]],
        config: ThresholdConfig,
        warnings: list[str],
    ) -> float:
        weights = config.component_weights.by_family()
        score = self._weighted_score(component_scores, weights)
        if score is None:
            warnings.append("all applicable components have zero weight; using unweighted mean")
            score = _mean([_clamp(s) for s in component_scores.values() if s is not None])
        return round(score, 4)

    def _score_interval(
        self,
        outcomes: list[OutcomeRecord],
        by_attribute: dict[str, GroupedOutcomes],
        component_scores: dict[MetricFamily, Optional[float]],
        overall_score: float,
        config: ThresholdConfig,
    ) -> ConfidenceInterval:
        total = len(outcomes)
        if total >= self.bootstrap_max_sample_size:
            std_error = float(np.sqrt(overall_score * (1 - overall_score) / total))
            lower, upper = statistics.normal_interval(overall_score, std_error, self.confidence_level)
            method = "normal"
        else:
            statistic = self._bootstrap_statistic(outcomes, by_attribute, component_scores, config)
            lower, upper = statistics.bootstrap_interval(
                total,
                statistic,
                n_resamples=self.bootstrap_resamples,
                confidence=self.confidence_level,
                seed=self.random_seed,
            )
            method = "bootstrap"

        return ConfidenceInterval(
            lower_bound=round(min(lower, overall_score), 4),
            upper_bound=round(max(upper, overall_score), 4),
            confidence_level=self.confidence_level,
            method=method,
        )

    def _bootstrap_statistic(
        self,
        outcomes: list[OutcomeRecord],
        by_attribute: dict[str, GroupedOutcomes],
        component_scores: dict[MetricFamily, Optional[float]],
        config: ThresholdConfig,
    ):
        """
        Overall score recomputed on resampled outcomes.

        Selection-rate components (demographic parity and disparate impact)
        are recomputed on each resample; the remaining components are held
        at their point estimates.
        """
        selected = np.array([r.selected for r in outcomes], dtype=float)
        codes: dict[str, tuple[np.ndarray, int]] = {}
        for attribute, grouped in by_attribute.items():
            lookup = {name: i for i, name in enumerate(grouped)}
            codes[attribute] = (
                np.array([lookup.get(r.groups.get(attribute), -1) for r in outcomes], dtype=int),
                len(lookup),
            )
        weights = config.component_weights.by_family()
        minimum = config.min_group_sample_size

        def statistic(indices: np.ndarray) -> float:
            ratios, sizes = [], []
            for group_codes, n_groups in codes.values():
                sample_codes = group_codes[indices]
                mask = sample_codes >= 0
                counts = np.bincount(sample_codes[mask], minlength=n_groups)
                chosen = np.bincount(sample_codes[mask], weights=selected[indices][mask], minlength=n_groups)
                present = counts > 0
                if present.sum() < 2 or np.any(counts[present] < minimum):
                    continue
                ratios.append(statistics.min_max_ratio(chosen[present] / counts[present]))
                sizes.append(int(counts.sum()))

            scores = dict(component_scores)
            if ratios:
                scores[MetricFamily.DEMOGRAPHIC_PARITY] = float(np.mean(ratios))
                scores[MetricFamily.DISPARATE_IMPACT] = float(np.average(ratios, weights=sizes))
            score = self._weighted_score(scores, weights)
            if score is None:
                score = float(np.mean([s for s in scores.values() if s is not None]))
            return score

        return statistic

    # -------------------------------------------------------------------------
    # Sample size and validation
    # -------------------------------------------------------------------------

    @staticmethod
    def _sample_size_info(
        by_attribute: dict[str, GroupedOutcomes],
        total: int,
        config: ThresholdConfig,
    ) -> SampleSizeInfo:
        by_group = {
            attribute: {name: len(records) for name, records in grouped.items()}
            for attribute, grouped in by_attribute.items()
        }
        sizes = [size for groups in by_group.values() for size in groups.values()]
        adequate = sum(1 for size in sizes if size >= config.min_group_sample_size)
        return SampleSizeInfo(
            total=total,
            by_attribute=by_group,
            minimum_required=config.min_group_sample_size,
            adequacy_score=round(adequate / len(sizes), 4) if sizes else 0.0,
        )

    @staticmethod
    def _validate(
        by_attribute: dict[str, GroupedOutcomes],
        component_scores: dict[MetricFamily, Optional[float]],
        significance: StatisticalSignificanceMetrics,
        config: ThresholdConfig,
        warnings: list[str],
    ) -> ValidationStatus:
        for attribute, grouped in by_attribute.items():
            small = _small_groups(grouped, SMALL_GROUP_WARNING_SIZE)
            if small:
                warnings.append(f"{attribute}: groups {small} have fewer than {SMALL_GROUP_WARNING_SIZE} outcomes")

        power = significance.power_analysis
        if power is not None and not power.is_adequate:
            warnings.append(
                f"statistical power {power.power:.2f} is below {ADEQUATE_POWER} for a medium effect"
            )

        for family, score in component_scores.items():
            if score is None:
                warnings.append(f"{family.value} not applicable")

        return ValidationStatus(is_valid=True, validation_warnings=warnings)
