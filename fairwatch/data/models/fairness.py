"""
Fairness metrics data models for FairWatch.

Defines the outcome records fed into the calculator and the nested
metrics bundle it produces. Per-attribute and per-group results are
explicit records keyed by attribute name and group name.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fairwatch.utils.constants import (
    AGGREGATE_SCORE_TOLERANCE,
    ContextProcessType,
    MetricFamily,
    ProcessType,
)
from fairwatch.utils.exceptions import InconsistentAggregateScore

from .base import BaseDocument, EmbeddedModel, utcnow


# =============================================================================
# Inputs
# =============================================================================


class FairnessContext(EmbeddedModel):
    """Scope of a fairness calculation. Frozen once created."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True, frozen=True)

    process_type: ContextProcessType = ContextProcessType.HIRING
    stage: str = "screening"
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    geographic_scope: tuple[str, ...] = ()
    department_scope: tuple[str, ...] = ()
    job_levels: tuple[str, ...] = ()

    @model_validator(mode="after")
    def validate_period(self) -> "FairnessContext":
        if self.period_start and self.period_end and self.period_end < self.period_start:
            raise ValueError("period_end must not precede period_start")
        return self

    @classmethod
    def for_process(cls, process_type: ProcessType, **kwargs) -> "FairnessContext":
        """Build the default context for a monitored process type."""
        process_type = ProcessType(process_type)
        return cls(
            process_type=process_type.context_type,
            stage=process_type.stage,
            **kwargs,
        )


class OutcomeRecord(EmbeddedModel):
    """A single hiring-process outcome tagged with protected-attribute groups."""

    subject_id: Optional[str] = None
    groups: dict[str, str] = Field(default_factory=dict)
    selected: bool
    actual_positive: Optional[bool] = None  # ground truth, e.g. "qualified"
    decision_time_hours: Optional[float] = Field(default=None, ge=0)
    resource_allocation: Optional[float] = Field(default=None, ge=0)
    score: Optional[float] = None


class ProcessEventData(BaseModel):
    """Grouped outcome data supplied with a process event."""

    outcomes: list[OutcomeRecord] = Field(default_factory=list)
    text: Optional[str] = None
    context: Optional[FairnessContext] = None


# =============================================================================
# Shared pieces
# =============================================================================


class ConfidenceInterval(EmbeddedModel):
    """Two-sided confidence interval."""

    lower_bound: float
    upper_bound: float
    confidence_level: float = Field(default=0.95, gt=0, lt=1)
    method: str = "wilson"

    @model_validator(mode="after")
    def validate_bounds(self) -> "ConfidenceInterval":
        if self.lower_bound > self.upper_bound:
            raise ValueError("lower_bound must not exceed upper_bound")
        return self


class SampleSizeInfo(EmbeddedModel):
    """Sample-size adequacy for a calculation run."""

    total: int = 0
    by_attribute: dict[str, dict[str, int]] = Field(default_factory=dict)
    minimum_required: int = 0
    adequacy_score: float = Field(default=0.0, ge=0.0, le=1.0)


class ValidationStatus(EmbeddedModel):
    """Outcome of validating a metrics bundle."""

    is_valid: bool = True
    validation_errors: list[str] = Field(default_factory=list)
    validation_warnings: list[str] = Field(default_factory=list)
    validated_by: str = "system"
    validated_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# Demographic parity
# =============================================================================


class GroupSelectionMetrics(EmbeddedModel):
    """Selection outcome for one group of one attribute."""

    group: str
    sample_size: int = Field(ge=0)
    selected_count: int = Field(ge=0)
    selection_rate: float = Field(ge=0.0, le=1.0)
    confidence_interval: ConfidenceInterval


class AttributeParityMetrics(EmbeddedModel):
    """Demographic parity for one protected attribute."""

    attribute: str
    groups: dict[str, GroupSelectionMetrics] = Field(default_factory=dict)
    parity_ratio: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    p_value: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    not_applicable_reason: Optional[str] = None

    @property
    def is_applicable(self) -> bool:
        return self.parity_ratio is not None

    @property
    def selection_rates(self) -> dict[str, float]:
        return {name: g.selection_rate for name, g in self.groups.items()}

    @property
    def sample_sizes(self) -> dict[str, int]:
        return {name: g.sample_size for name, g in self.groups.items()}

    @property
    def rate_gap(self) -> float:
        """Largest difference in selection rate between any two groups."""
        rates = list(self.selection_rates.values())
        return max(rates) - min(rates) if rates else 0.0


class DemographicParityMetrics(EmbeddedModel):
    """Demographic parity across all protected attributes."""

    overall_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    attributes: dict[str, AttributeParityMetrics] = Field(default_factory=dict)
    not_applicable_reason: Optional[str] = None


# =============================================================================
# Equalized odds / predictive equality
# =============================================================================


class GroupRateMetrics(EmbeddedModel):
    """Classification rates for one group where ground truth exists."""

    group: str
    sample_size: int = 0
    actual_positives: int = 0
    actual_negatives: int = 0
    true_positive_rate: Optional[float] = None
    false_positive_rate: Optional[float] = None
    precision: Optional[float] = None


class AttributeRateEquality(EmbeddedModel):
    """Rate equality for one protected attribute."""

    attribute: str
    groups: dict[str, GroupRateMetrics] = Field(default_factory=dict)
    tpr_difference: Optional[float] = None
    fpr_difference: Optional[float] = None
    precision_difference: Optional[float] = None
    equality_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    not_applicable_reason: Optional[str] = None

    @property
    def is_applicable(self) -> bool:
        return self.equality_score is not None


class RateEqualityMetrics(EmbeddedModel):
    overall_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    attributes: dict[str, AttributeRateEquality] = Field(default_factory=dict)
    not_applicable_reason: Optional[str] = None


class EqualizedOddsMetrics(RateEqualityMetrics):
    """Equal true-positive and false-positive rates across groups."""


class PredictiveEqualityMetrics(RateEqualityMetrics):
    """Equal false-positive rates and precision across groups."""


# =============================================================================
# Treatment equality
# =============================================================================


class GroupTreatmentMetrics(EmbeddedModel):
    group: str
    sample_size: int = 0
    mean_decision_time: Optional[float] = None
    decision_time_cv: Optional[float] = None
    mean_resource_allocation: Optional[float] = None


class OutlierRecord(EmbeddedModel):
    subject_id: Optional[str] = None
    groups: dict[str, str] = Field(default_factory=dict)
    value: float
    z_score: float


class OutlierDetection(EmbeddedModel):
    """Decision-time outliers found by z-score."""

    detection_method: str = "z_score"
    threshold: float = 2.5
    outliers: list[OutlierRecord] = Field(default_factory=list)
    outlier_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class AttributeTreatmentMetrics(EmbeddedModel):
    """Process consistency for one protected attribute."""

    attribute: str
    groups: dict[str, GroupTreatmentMetrics] = Field(default_factory=dict)
    time_equality: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    resource_equality: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    consistency_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    equality_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    not_applicable_reason: Optional[str] = None

    @property
    def is_applicable(self) -> bool:
        return self.equality_score is not None


class TreatmentEqualityMetrics(EmbeddedModel):
    overall_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    attributes: dict[str, AttributeTreatmentMetrics] = Field(default_factory=dict)
    outlier_detection: Optional[OutlierDetection] = None
    not_applicable_reason: Optional[str] = None


# =============================================================================
# Disparate impact
# =============================================================================


class AttributeImpactMetrics(EmbeddedModel):
    """Impact ratios of each group against the highest-rate reference group."""

    attribute: str
    reference_group: Optional[str] = None
    impact_ratios: dict[str, float] = Field(default_factory=dict)
    impact_ratio: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    sample_size: int = 0
    four_fifths_compliant: Optional[bool] = None
    not_applicable_reason: Optional[str] = None

    @property
    def is_applicable(self) -> bool:
        return self.impact_ratio is not None


class DisparateImpactMetrics(EmbeddedModel):
    overall_ratio: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    four_fifths_rule_compliance: Optional[bool] = None
    attributes: dict[str, AttributeImpactMetrics] = Field(default_factory=dict)
    not_applicable_reason: Optional[str] = None

    @property
    def overall_score(self) -> Optional[float]:
        return self.overall_ratio


# =============================================================================
# Statistical significance
# =============================================================================


class ContingencyTestResult(EmbeddedModel):
    """Chi-square or Fisher's exact test on a group-by-outcome table."""

    attribute: str
    test_name: str
    statistic: Optional[float] = None
    degrees_of_freedom: Optional[int] = None
    p_value: float = Field(ge=0.0, le=1.0)
    adjusted_p_value: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    critical_value: Optional[float] = None
    is_significant: bool = False


class EffectSize(EmbeddedModel):
    attribute: str
    measure: str = "cramers_v"
    value: float = Field(ge=0.0)
    interpretation: str = "small"


class PowerAnalysisResult(EmbeddedModel):
    """Power to detect a medium effect at the configured alpha."""

    power: float = Field(ge=0.0, le=1.0)
    effect_size: float
    sample_size: int
    alpha: float
    degrees_of_freedom: int = 1
    is_adequate: bool = False


class MultipleComparisonCorrection(EmbeddedModel):
    method: str = "bonferroni"
    adjusted_alpha: float
    comparisons: int = 1


class StatisticalSignificanceMetrics(EmbeddedModel):
    """Aggregated significance results across attributes."""

    tests: dict[str, ContingencyTestResult] = Field(default_factory=dict)
    effect_sizes: dict[str, EffectSize] = Field(default_factory=dict)
    power_analysis: Optional[PowerAnalysisResult] = None
    correction: Optional[MultipleComparisonCorrection] = None
    overall_p_value: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @property
    def is_significant(self) -> bool:
        return any(t.is_significant for t in self.tests.values())


# =============================================================================
# Metrics bundle
# =============================================================================


class ComponentWeights(EmbeddedModel):
    """Weights of the five metric families in the overall score."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True, frozen=True)

    demographic_parity: float = Field(default=1.0, ge=0.0)
    equalized_odds: float = Field(default=1.0, ge=0.0)
    predictive_equality: float = Field(default=1.0, ge=0.0)
    treatment_equality: float = Field(default=1.0, ge=0.0)
    disparate_impact: float = Field(default=1.0, ge=0.0)

    @model_validator(mode="after")
    def validate_not_all_zero(self) -> "ComponentWeights":
        if sum(self.by_family().values()) <= 0:
            raise ValueError("at least one component weight must be positive")
        return self

    def by_family(self) -> dict[MetricFamily, float]:
        return {
            MetricFamily.DEMOGRAPHIC_PARITY: self.demographic_parity,
            MetricFamily.EQUALIZED_ODDS: self.equalized_odds,
            MetricFamily.PREDICTIVE_EQUALITY: self.predictive_equality,
            MetricFamily.TREATMENT_EQUALITY: self.treatment_equality,
            MetricFamily.DISPARATE_IMPACT: self.disparate_impact,
        }


class FairnessMetrics(BaseDocument):
    """
    Fairness metrics bundle for one calculation run.

    The overall score must stay within the aggregate tolerance of the
    unweighted mean of the applicable component scores; a bundle that
    breaks this cannot be constructed.
    """

    metrics_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    process_id: Optional[str] = None
    calculated_at: datetime = Field(default_factory=utcnow)
    context: FairnessContext = Field(default_factory=FairnessContext)

    demographic_parity: DemographicParityMetrics = Field(default_factory=DemographicParityMetrics)
    equalized_odds: EqualizedOddsMetrics = Field(default_factory=EqualizedOddsMetrics)
    predictive_equality: PredictiveEqualityMetrics = Field(default_factory=PredictiveEqualityMetrics)
    treatment_equality: TreatmentEqualityMetrics = Field(default_factory=TreatmentEqualityMetrics)
    disparate_impact: DisparateImpactMetrics = Field(default_factory=DisparateImpactMetrics)
    statistical_significance: StatisticalSignificanceMetrics = Field(
        default_factory=StatisticalSignificanceMetrics
    )

    overall_fairness_score: float = Field(ge=0.0, le=1.0)
    confidence_interval: Optional[ConfidenceInterval] = None
    sample_size: SampleSizeInfo = Field(default_factory=SampleSizeInfo)
    component_weights: ComponentWeights = Field(default_factory=ComponentWeights)
    validation: ValidationStatus = Field(default_factory=ValidationStatus)

    @model_validator(mode="after")
    def validate_aggregate_score(self) -> "FairnessMetrics":
        scores = [s for s in self.component_scores().values() if s is not None]
        if not scores:
            raise ValueError("at least one metric family must be applicable")
        component_mean = sum(scores) / len(scores)
        if abs(self.overall_fairness_score - component_mean) > AGGREGATE_SCORE_TOLERANCE + 1e-9:
            raise InconsistentAggregateScore(
                self.overall_fairness_score, component_mean, AGGREGATE_SCORE_TOLERANCE
            )
        return self

    def component_scores(self) -> dict[MetricFamily, Optional[float]]:
        """Family score per metric family, None where not applicable."""
        return {
            MetricFamily.DEMOGRAPHIC_PARITY: self.demographic_parity.overall_score,
            MetricFamily.EQUALIZED_ODDS: self.equalized_odds.overall_score,
            MetricFamily.PREDICTIVE_EQUALITY: self.predictive_equality.overall_score,
            MetricFamily.TREATMENT_EQUALITY: self.treatment_equality.overall_score,
            MetricFamily.DISPARATE_IMPACT: self.disparate_impact.overall_score,
        }

    @property
    def not_applicable_families(self) -> list[MetricFamily]:
        return [f for f, s in self.component_scores().items() if s is None]

    @property
    def four_fifths_rule_compliance(self) -> Optional[bool]:
        return self.disparate_impact.four_fifths_rule_compliance

    class Settings:
        """MongoDB collection settings."""

        name = "fairness_metrics"
        indexes = [
            "metrics_id",
            "process_id",
            "calculated_at",
        ]
