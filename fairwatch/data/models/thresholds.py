"""
Threshold configuration models for FairWatch.

A ThresholdConfig is an immutable, versioned snapshot. Updates always
produce a new snapshot.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fairwatch.utils.config import MonitoringSettings
from fairwatch.utils.constants import (
    DEFAULT_ALPHA,
    FOUR_FIFTHS_RATIO,
    MEDIUM_EFFECT_SIZE,
    MetricFamily,
    Severity,
)

from .base import utcnow
from .fairness import ComponentWeights


class MetricThreshold(BaseModel):
    """Warning and critical bands for one metric family."""

    model_config = ConfigDict(frozen=True)

    warning: float = Field(default=0.7, ge=0.0, le=1.0)
    critical: float = Field(default=0.5, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_order(self) -> "MetricThreshold":
        if self.critical > self.warning:
            raise ValueError(f"critical ({self.critical}) must not exceed warning ({self.warning})")
        return self


class ThresholdConfig(BaseModel):
    """Detector and calculator configuration shared by all evaluations."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    demographic_parity: MetricThreshold = MetricThreshold(warning=0.8, critical=0.6)
    equalized_odds: MetricThreshold = MetricThreshold()
    predictive_equality: MetricThreshold = MetricThreshold()
    treatment_equality: MetricThreshold = MetricThreshold()
    disparate_impact: MetricThreshold = MetricThreshold(warning=0.8, critical=0.6)

    near_threshold_margin: float = Field(default=0.1, ge=0.0, le=1.0)
    four_fifths_threshold: float = Field(default=FOUR_FIFTHS_RATIO, gt=0.0, le=1.0)
    significance_level: float = Field(default=DEFAULT_ALPHA, gt=0.0, lt=1.0)
    effect_size_threshold: float = Field(default=MEDIUM_EFFECT_SIZE, ge=0.0)
    outlier_z_threshold: float = Field(default=2.5, gt=0.0)
    min_group_sample_size: int = Field(default=5, ge=1)
    min_total_sample_size: int = Field(default=10, ge=1)
    alert_min_severity: Severity = Severity.MEDIUM
    component_weights: ComponentWeights = ComponentWeights()

    version: int = Field(default=1, ge=1)
    updated_by: str = "system"
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def validate_sample_sizes(self) -> "ThresholdConfig":
        if self.min_group_sample_size > self.min_total_sample_size:
            raise ValueError("min_group_sample_size must not exceed min_total_sample_size")
        return self

    def for_family(self, family: MetricFamily) -> MetricThreshold:
        return {
            MetricFamily.DEMOGRAPHIC_PARITY: self.demographic_parity,
            MetricFamily.EQUALIZED_ODDS: self.equalized_odds,
            MetricFamily.PREDICTIVE_EQUALITY: self.predictive_equality,
            MetricFamily.TREATMENT_EQUALITY: self.treatment_equality,
            MetricFamily.DISPARATE_IMPACT: self.disparate_impact,
        }[MetricFamily(family)]

    @classmethod
    def from_settings(cls, settings: MonitoringSettings, updated_by: Optional[str] = None) -> "ThresholdConfig":
        """Build the initial snapshot from monitoring settings."""
        default_band = MetricThreshold(
            warning=settings.warning_threshold, critical=settings.critical_threshold
        )
        parity_band = MetricThreshold(
            warning=settings.parity_warning_threshold,
            critical=settings.parity_critical_threshold,
        )
        return cls(
            demographic_parity=parity_band,
            equalized_odds=default_band,
            predictive_equality=default_band,
            treatment_equality=default_band,
            disparate_impact=parity_band,
            min_group_sample_size=settings.min_group_sample_size,
            min_total_sample_size=settings.min_total_sample_size,
            alert_min_severity=settings.alert_min_severity,
            updated_by=updated_by or "system",
        )
