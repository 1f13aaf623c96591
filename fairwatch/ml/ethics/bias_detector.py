"""
Bias and violation detection for FairWatch.

Evaluates a fairness metrics bundle against the configured thresholds
(batch mode), or a single process event plus recent history with cheap
rate and term rules (quick check), and decides compliance status.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from fairwatch.data.models.base import utcnow
from fairwatch.data.models.bias import BiasEvidence, DetectedBias, ImpactAssessment, Violation
from fairwatch.data.models.fairness import FairnessMetrics, OutcomeRecord, ProcessEventData
from fairwatch.data.models.thresholds import MetricThreshold, ThresholdConfig
from fairwatch.ml.ethics import statistics
from fairwatch.utils.constants import (
    ESCALATION_RECOMMENDATIONS,
    METRIC_BIAS_TYPES,
    METRIC_RECOMMENDATIONS,
    PATTERN_RATE_GAP,
    QUICK_CHECK_CONFIDENCE,
    QUICK_CHECK_TERM_RULES,
    SEVERITY_RISKS,
    BiasType,
    ComplianceStatus,
    MetricFamily,
    ProcessType,
    Severity,
    ViolationType,
)
from fairwatch.utils.logger import get_logger

logger = get_logger(__name__)

_MODEL_DRIVEN_FAMILIES = {
    MetricFamily.DEMOGRAPHIC_PARITY,
    MetricFamily.EQUALIZED_ODDS,
    MetricFamily.PREDICTIVE_EQUALITY,
}


@dataclass
class DetectionResult:
    """Complete result of evaluating one metrics bundle."""

    violations: list[Violation] = field(default_factory=list)
    bias_score: Optional[float] = None
    compliance_status: ComplianceStatus = ComplianceStatus.UNDER_REVIEW
    overall_severity: Optional[Severity] = None
    detected_bias: Optional[DetectedBias] = None
    detected_patterns: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    not_applicable: list[str] = field(default_factory=list)
    metrics_id: Optional[str] = None
    threshold_version: int = 1
    analyzed_at: datetime = field(default_factory=utcnow)

    @property
    def bias_detected(self) -> bool:
        return bool(self.violations)


@dataclass
class TermFlag:
    category: str
    terms: list[str]
    weight: float
    suggestion: str


@dataclass
class QuickCheckResult:
    """Provisional real-time assessment; no statistical tests were run."""

    provisional_score: float = 0.0
    flags: list[str] = field(default_factory=list)
    term_flags: list[TermFlag] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    compliance_status: ComplianceStatus = ComplianceStatus.UNDER_REVIEW
    overall_severity: Optional[Severity] = None
    confidence: float = QUICK_CHECK_CONFIDENCE
    sample_size: int = 0
    threshold_version: int = 1
    checked_at: datetime = field(default_factory=utcnow)


def classify_severity(
    score: float,
    band: MetricThreshold,
    near_threshold_margin: float,
) -> Optional[tuple[Severity, ViolationType]]:
    """
    Map a fairness score to a severity, or None when no violation.

    Below critical is critical, below warning is high, and within the
    margin above warning is a medium, practical violation.
    """
    if score < band.critical:
        return Severity.CRITICAL, ViolationType.THRESHOLD
    if score < band.warning:
        return Severity.HIGH, ViolationType.THRESHOLD
    if score < band.warning * (1 + near_threshold_margin):
        return Severity.MEDIUM, ViolationType.PRACTICAL
    return None


def determine_compliance(violations: list[Violation], data_available: bool = True) -> ComplianceStatus:
    """Compliance verdict; missing data is never reported as compliant."""
    if not data_available:
        return ComplianceStatus.UNDER_REVIEW
    severities = {Severity(v.severity) for v in violations}
    if Severity.CRITICAL in severities:
        return ComplianceStatus.NON_COMPLIANT
    if severities & {Severity.HIGH, Severity.MEDIUM}:
        return ComplianceStatus.PARTIALLY_COMPLIANT
    return ComplianceStatus.COMPLIANT


def order_violations(violations: list[Violation]) -> list[Violation]:
    """Most severe first, then largest deviation from threshold."""
    return sorted(
        violations,
        key=lambda v: (-Severity(v.severity).rank, -v.deviation, str(v.metric), v.attribute),
    )


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(item for item in items if item))


class BiasDetector:
    """
    Turns fairness metrics into typed violations and a compliance verdict.

    Stateless apart from its default threshold snapshot; each call may
    pass the snapshot it should use.
    """

    def __init__(self, thresholds: Optional[ThresholdConfig] = None):
        self.thresholds = thresholds or ThresholdConfig()
        self._term_rules = [
            (re.compile(pattern, re.IGNORECASE), weight, category, suggestion)
            for pattern, weight, category, suggestion in QUICK_CHECK_TERM_RULES
        ]

    # -------------------------------------------------------------------------
    # Batch mode
    # -------------------------------------------------------------------------

    def detect(
        self,
        metrics: FairnessMetrics,
        thresholds: Optional[ThresholdConfig] = None,
        process_type: Optional[ProcessType] = None,
    ) -> DetectionResult:
        """
        Evaluate a metrics bundle.

        Args:
            metrics: Bundle produced by the fairness calculator.
            thresholds: Configuration snapshot; defaults to the detector's.
            process_type: Monitored process type, used to classify bias.

        Returns:
            DetectionResult with ordered violations and compliance status.
        """
        config = thresholds or self.thresholds
        violations = self._threshold_violations(metrics, config)
        violations.extend(self._statistical_violations(metrics, config, violations))
        violations = order_violations(violations)

        overall_severity = Severity.highest(v.severity for v in violations)
        recommendations = self._recommendations(violations, overall_severity)

        result = DetectionResult(
            violations=violations,
            bias_score=round(1.0 - metrics.overall_fairness_score, 4),
            compliance_status=determine_compliance(violations),
            overall_severity=overall_severity,
            detected_patterns=self._detect_patterns(metrics),
            recommendations=recommendations,
            not_applicable=self._not_applicable(metrics),
            metrics_id=metrics.metrics_id,
            threshold_version=config.version,
        )
        if violations:
            result.detected_bias = self._classify_bias(
                violations, metrics, process_type, recommendations
            )

        logger.info(
            f"Detection on {metrics.metrics_id}: {len(violations)} violation(s), "
            f"severity={overall_severity.value if overall_severity else 'none'}, "
            f"status={result.compliance_status.value}"
        )
        return result

    def _threshold_violations(self, metrics: FairnessMetrics, config: ThresholdConfig) -> list[Violation]:
        violations = []
        for family, attribute, score, affected in self._attribute_scores(metrics, config):
            band = config.for_family(family)
            classified = classify_severity(score, band, config.near_threshold_margin)
            if classified is None:
                continue
            severity, violation_type = classified
            crossed = band.critical if severity == Severity.CRITICAL else band.warning
            violations.append(
                Violation(
                    metric=family,
                    attribute=attribute,
                    violation_type=violation_type,
                    severity=severity,
                    observed_value=score,
                    threshold=crossed,
                    deviation=round(band.warning - score, 4),
                    affected_groups=affected,
                    description=(
                        f"{family.value} for '{attribute}' is {score:.3f}, "
                        + (
                            f"below the {severity.value} threshold {crossed}"
                            if violation_type == ViolationType.THRESHOLD
                            else f"within {config.near_threshold_margin:.0%} of the warning threshold {band.warning}"
                        )
                    ),
                    recommended_action=METRIC_RECOMMENDATIONS[family],
                )
            )
        return violations

    def _statistical_violations(
        self,
        metrics: FairnessMetrics,
        config: ThresholdConfig,
        existing: list[Violation],
    ) -> list[Violation]:
        parity_flagged = {
            v.attribute for v in existing if v.metric == MetricFamily.DEMOGRAPHIC_PARITY
        }
        significance = metrics.statistical_significance
        violations = []
        for attribute, test in significance.tests.items():
            effect = significance.effect_sizes.get(attribute)
            parity = metrics.demographic_parity.attributes.get(attribute)
            if (
                not test.is_significant
                or effect is None
                or effect.value < config.effect_size_threshold
                or attribute in parity_flagged
                or parity is None
            ):
                continue
            p_value = test.adjusted_p_value if test.adjusted_p_value is not None else test.p_value
            rates = parity.selection_rates
            violations.append(
                Violation(
                    metric=MetricFamily.DEMOGRAPHIC_PARITY,
                    attribute=attribute,
                    violation_type=ViolationType.STATISTICAL,
                    severity=Severity.MEDIUM,
                    observed_value=p_value,
                    threshold=config.significance_level,
                    deviation=round(effect.value - config.effect_size_threshold, 4),
                    affected_groups=[min(rates, key=rates.get)] if rates else [],
                    description=(
                        f"Selection outcome depends on '{attribute}' "
                        f"({test.test_name}, adjusted p={p_value:.4g}, "
                        f"{effect.measure}={effect.value:.3f} {effect.interpretation})"
                    ),
                    recommended_action=METRIC_RECOMMENDATIONS[MetricFamily.DEMOGRAPHIC_PARITY],
                )
            )
        return violations

    @staticmethod
    def _attribute_scores(metrics: FairnessMetrics, config: ThresholdConfig):
        """Yield (family, attribute, score, affected groups) for every applicable attribute."""
        for attribute, parity in metrics.demographic_parity.attributes.items():
            if parity.parity_ratio is None:
                continue
            rates = parity.selection_rates
            top = max(rates.values())
            affected = [
                g for g, r in rates.items()
                if top > 0 and r / top < config.demographic_parity.warning
            ] or [min(rates, key=rates.get)]
            yield MetricFamily.DEMOGRAPHIC_PARITY, attribute, parity.parity_ratio, affected

        for family, family_metrics in (
            (MetricFamily.EQUALIZED_ODDS, metrics.equalized_odds),
            (MetricFamily.PREDICTIVE_EQUALITY, metrics.predictive_equality),
        ):
            for attribute, equality in family_metrics.attributes.items():
                if equality.equality_score is None:
                    continue
                yield family, attribute, equality.equality_score, _rate_affected_groups(family, equality)

        for attribute, treatment in metrics.treatment_equality.attributes.items():
            if treatment.equality_score is None:
                continue
            timed = {g: m.mean_decision_time for g, m in treatment.groups.items() if m.mean_decision_time is not None}
            affected = [max(timed, key=timed.get)] if timed else []
            yield MetricFamily.TREATMENT_EQUALITY, attribute, treatment.equality_score, affected

        for attribute, impact in metrics.disparate_impact.attributes.items():
            if impact.impact_ratio is None:
                continue
            affected = [
                g for g, r in impact.impact_ratios.items() if r < config.four_fifths_threshold
            ] or [min(impact.impact_ratios, key=impact.impact_ratios.get)]
            yield MetricFamily.DISPARATE_IMPACT, attribute, impact.impact_ratio, affected

    @staticmethod
    def _detect_patterns(metrics: FairnessMetrics) -> list[str]:
        patterns = []
        for attribute, parity in metrics.demographic_parity.attributes.items():
            rates = parity.selection_rates
            if len(rates) < 2 or parity.rate_gap <= PATTERN_RATE_GAP:
                continue
            high = max(rates, key=rates.get)
            low = min(rates, key=rates.get)
            patterns.append(
                f"{attribute}: selection rate of '{high}' ({rates[high]:.0%}) exceeds "
                f"'{low}' ({rates[low]:.0%}) by {parity.rate_gap:.0%}"
            )
        return patterns

    @staticmethod
    def _not_applicable(metrics: FairnessMetrics) -> list[str]:
        reasons = {
            MetricFamily.DEMOGRAPHIC_PARITY: metrics.demographic_parity.not_applicable_reason,
            MetricFamily.EQUALIZED_ODDS: metrics.equalized_odds.not_applicable_reason,
            MetricFamily.PREDICTIVE_EQUALITY: metrics.predictive_equality.not_applicable_reason,
            MetricFamily.TREATMENT_EQUALITY: metrics.treatment_equality.not_applicable_reason,
            MetricFamily.DISPARATE_IMPACT: metrics.disparate_impact.not_applicable_reason,
        }
        return [
            f"{family.value}: {reasons[family] or 'not applicable'}"
            for family in metrics.not_applicable_families
        ]

    @staticmethod
    def _recommendations(violations: list[Violation], overall: Optional[Severity]) -> list[str]:
        if overall is None:
            return []
        return _unique(
            [v.recommended_action for v in violations] + list(ESCALATION_RECOMMENDATIONS[overall])
        )

    def _classify_bias(
        self,
        violations: list[Violation],
        metrics: FairnessMetrics,
        process_type: Optional[ProcessType],
        recommendations: list[str],
    ) -> DetectedBias:
        lead = violations[0]
        family = MetricFamily(lead.metric)
        bias_type = METRIC_BIAS_TYPES[family]
        if process_type is not None and ProcessType(process_type) == ProcessType.MATCHING and family in _MODEL_DRIVEN_FAMILIES:
            bias_type = BiasType.ALGORITHMIC

        severity = Severity.highest(v.severity for v in violations)
        group_sizes = metrics.sample_size.by_attribute
        affected = sorted({(v.attribute, g) for v in violations for g in v.affected_groups})

        return DetectedBias(
            bias_type=bias_type,
            severity=severity,
            confidence=self._confidence(lead, metrics),
            affected_groups=_unique([f"{attribute}:{group}" for attribute, group in affected]),
            evidence=[
                BiasEvidence(
                    evidence_type=f"{MetricFamily(v.metric).value}_{ViolationType(v.violation_type).value}",
                    description=v.description,
                    strength=Severity(v.severity).score,
                    source=f"fairness_metrics:{metrics.metrics_id}",
                )
                for v in violations
            ],
            impact_assessment=ImpactAssessment(
                affected_population=sum(
                    group_sizes.get(attribute, {}).get(group, 0) for attribute, group in affected
                ),
                severity_score=severity.score,
                business_risk=SEVERITY_RISKS[severity][0],
                legal_risk=SEVERITY_RISKS[severity][1],
                reputational_risk=SEVERITY_RISKS[severity][2],
            ),
            recommended_actions=recommendations,
        )

    @staticmethod
    def _confidence(lead: Violation, metrics: FairnessMetrics) -> float:
        """1 - p of the lead attribute's test, discounted when power is inadequate."""
        significance = metrics.statistical_significance
        test = significance.tests.get(lead.attribute)
        if test is None:
            confidence = 0.5
        else:
            p_value = test.adjusted_p_value if test.adjusted_p_value is not None else test.p_value
            confidence = 1.0 - p_value
        power = significance.power_analysis
        if power is not None and not power.is_adequate:
            confidence *= max(power.power, 0.1)
        return round(max(0.0, min(1.0, confidence)), 4)

    # -------------------------------------------------------------------------
    # Real-time mode
    # -------------------------------------------------------------------------

    def quick_check(
        self,
        event: ProcessEventData,
        recent_outcomes: Optional[list[OutcomeRecord]] = None,
        thresholds: Optional[ThresholdConfig] = None,
    ) -> QuickCheckResult:
        """
        Cheap provisional check of one event plus recent history.

        Uses selection-rate ratios and weighted term rules only; no
        statistical tests are run.
        """
        config = thresholds or self.thresholds
        records = list(recent_outcomes or []) + list(event.outcomes)

        violations, evaluated, worst_ratio = self._rate_rule_violations(records, config)
        term_flags = self._term_flags(event.text or "")

        term_score = sum(flag.weight for flag in term_flags)
        rate_score = 1.0 - worst_ratio if worst_ratio is not None else 0.0
        violations = order_violations(violations)

        result = QuickCheckResult(
            provisional_score=round(min(1.0, term_score + rate_score), 4),
            flags=[flag.category for flag in term_flags]
            + [f"{v.attribute}_selection_disparity" for v in violations],
            term_flags=term_flags,
            violations=violations,
            suggestions=_unique(
                [flag.suggestion for flag in term_flags] + [v.recommended_action for v in violations]
            ),
            compliance_status=determine_compliance(violations, data_available=evaluated),
            overall_severity=Severity.highest(v.severity for v in violations),
            sample_size=len(records),
            threshold_version=config.version,
        )
        logger.debug(
            f"Quick check: n={len(records)}, score={result.provisional_score}, flags={result.flags}"
        )
        return result

    @staticmethod
    def _rate_rule_violations(
        records: list[OutcomeRecord],
        config: ThresholdConfig,
    ) -> tuple[list[Violation], bool, Optional[float]]:
        counts: dict[str, dict[str, list[int]]] = {}
        for record in records:
            for attribute, group in record.groups.items():
                tally = counts.setdefault(attribute, {}).setdefault(group, [0, 0])
                tally[0] += int(record.selected)
                tally[1] += 1

        violations = []
        evaluated = False
        worst: Optional[float] = None
        band = config.demographic_parity
        for attribute, groups in sorted(counts.items()):
            if len(groups) < 2 or any(total < config.min_group_sample_size for _, total in groups.values()):
                continue
            evaluated = True
            rates = {g: statistics.proportion(s, t) for g, (s, t) in groups.items()}
            ratio = round(statistics.min_max_ratio(list(rates.values())), 4)
            worst = ratio if worst is None else min(worst, ratio)
            classified = classify_severity(ratio, band, config.near_threshold_margin)
            if classified is None:
                continue
            severity, violation_type = classified
            violations.append(
                Violation(
                    metric=MetricFamily.DEMOGRAPHIC_PARITY,
                    attribute=attribute,
                    violation_type=violation_type,
                    severity=severity,
                    observed_value=ratio,
                    threshold=band.critical if severity == Severity.CRITICAL else band.warning,
                    deviation=round(band.warning - ratio, 4),
                    affected_groups=[min(rates, key=rates.get)],
                    description=f"Provisional selection-rate ratio for '{attribute}' is {ratio:.3f}",
                    recommended_action=METRIC_RECOMMENDATIONS[MetricFamily.DEMOGRAPHIC_PARITY],
                )
            )
        return violations, evaluated, worst

    def _term_flags(self, text: str) -> list[TermFlag]:
        flags = []
        for pattern, weight, category, suggestion in self._term_rules:
            found = [m.group(0).lower() for m in pattern.finditer(text)]
            if found:
                flags.append(TermFlag(category=category, terms=_unique(found), weight=weight, suggestion=suggestion))
        return flags


def _rate_affected_groups(family: MetricFamily, equality) -> list[str]:
    """Group at the disadvantaged extreme of the largest rate gap."""
    candidates = {
        "true_positive_rate": equality.tpr_difference if family == MetricFamily.EQUALIZED_ODDS else None,
        "false_positive_rate": equality.fpr_difference,
        "precision": equality.precision_difference if family == MetricFamily.PREDICTIVE_EQUALITY else None,
    }
    candidates = {name: diff for name, diff in candidates.items() if diff is not None}
    if not candidates:
        return []
    driver = max(candidates, key=candidates.get)
    values = {g: getattr(m, driver) for g, m in equality.groups.items() if getattr(m, driver) is not None}
    if not values:
        return []
    # a high false-positive rate is the disadvantaged side; for the others it is the low end
    pick = max if driver == "false_positive_rate" else min
    return [pick(values, key=values.get)]
