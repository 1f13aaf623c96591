"""
Bias detection data models for FairWatch.

Violations are produced by the detector and embedded in alerts and
monitoring results; they are never stored on their own.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from fairwatch.utils.constants import (
    BiasType,
    ComplianceStatus,
    EvaluationMode,
    MetricFamily,
    ProcessType,
    Severity,
    ViolationType,
)
from fairwatch.utils.exceptions import MissingRecommendedAction

from .base import BaseDocument, EmbeddedModel, utcnow


class Violation(EmbeddedModel):
    """A single breach of a fairness threshold for one attribute and metric family."""

    metric: MetricFamily
    attribute: str
    violation_type: ViolationType
    severity: Severity
    observed_value: float
    threshold: float
    deviation: float  # positive when the observed value is worse than threshold
    affected_groups: list[str] = Field(default_factory=list)
    description: str = ""
    recommended_action: str = ""
    detected_at: datetime = Field(default_factory=utcnow)

    @property
    def signature(self) -> tuple[str, str]:
        """Metric family and attribute; identifies repeats of the same breach."""
        return (MetricFamily(self.metric).value, self.attribute)


class BiasEvidence(EmbeddedModel):
    evidence_type: str
    description: str
    strength: float = Field(ge=0.0, le=1.0)
    source: str


class ImpactAssessment(EmbeddedModel):
    """Who is affected and what is at stake."""

    affected_population: int = 0
    severity_score: float = Field(default=0.0, ge=0.0, le=1.0)
    business_risk: str = "minimal"
    legal_risk: str = "minimal"
    reputational_risk: str = "minimal"


class DetectedBias(EmbeddedModel):
    """
    Bias classification derived from a run's violations.

    High and critical findings must carry at least one recommended action.
    """

    bias_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    bias_type: BiasType
    severity: Severity
    confidence: float = Field(ge=0.0, le=1.0)
    affected_groups: list[str] = Field(default_factory=list)
    evidence: list[BiasEvidence] = Field(default_factory=list)
    impact_assessment: ImpactAssessment = Field(default_factory=ImpactAssessment)
    recommended_actions: list[str] = Field(default_factory=list)
    detected_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def validate_actions_for_severity(self) -> "DetectedBias":
        severity = Severity(self.severity)
        if severity.rank >= Severity.HIGH.rank and not self.recommended_actions:
            raise MissingRecommendedAction(severity.value)
        return self


class MonitoringResult(BaseDocument):
    """Persisted outcome of one evaluation of a process."""

    result_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    process_id: str
    process_type: ProcessType
    stage: str
    mode: EvaluationMode = EvaluationMode.BATCH
    violations: list[Violation] = Field(default_factory=list)
    overall_severity: Optional[Severity] = None
    bias_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    fairness_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    compliance_status: ComplianceStatus = ComplianceStatus.UNDER_REVIEW
    metrics_id: Optional[str] = None
    detected_bias: Optional[DetectedBias] = None
    detected_patterns: list[str] = Field(default_factory=list)
    not_applicable: list[str] = Field(default_factory=list)
    alert_ids: list[str] = Field(default_factory=list)
    threshold_version: int = 1
    evaluated_at: datetime = Field(default_factory=utcnow)

    @property
    def violation_count(self) -> int:
        return len(self.violations)

    class Settings:
        """MongoDB collection settings."""

        name = "monitoring_results"
        indexes = [
            "result_id",
            "process_id",
            "process_type",
            "compliance_status",
            "evaluated_at",
        ]
