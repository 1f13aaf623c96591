"""
Pydantic data models and schemas for FairWatch.

This module provides all data models used throughout the application,
including database documents, embedded models, and query schemas.
"""

# Base models
from .base import BaseDocument, EmbeddedModel, PyObjectId, TimestampMixin, utcnow

# Fairness metrics models
from .fairness import (
    AttributeImpactMetrics,
    AttributeParityMetrics,
    AttributeRateEquality,
    AttributeTreatmentMetrics,
    ComponentWeights,
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
    ProcessEventData,
    SampleSizeInfo,
    StatisticalSignificanceMetrics,
    TreatmentEqualityMetrics,
    ValidationStatus,
)

# Bias models
from .bias import (
    BiasEvidence,
    DetectedBias,
    ImpactAssessment,
    MonitoringResult,
    Violation,
)

# Alert models
from .alert import (
    Alert,
    AlertPage,
    AlertQuery,
    BiasAnalysisSummary,
    NotificationRecord,
    Resolution,
    ViolationOccurrence,
)

# Audit models
from .audit import (
    ActorInfo,
    AuditEntry,
    AuditEntryCreate,
    AuditQuery,
    AuditSummary,
    ChangeRecord,
    ResourceInfo,
    create_alert_transition_audit,
    create_detection_run_audit,
    create_threshold_update_audit,
)

# Threshold models
from .thresholds import MetricThreshold, ThresholdConfig

# Dashboard and report models
from .dashboard import (
    BiasScorePoint,
    ComplianceHistoryEntry,
    DashboardSnapshot,
    MonitoringReport,
    ProcessAnalysis,
    SummaryMetrics,
)

__all__ = [
    # Base
    "BaseDocument",
    "EmbeddedModel",
    "PyObjectId",
    "TimestampMixin",
    "utcnow",
    # Fairness
    "AttributeImpactMetrics",
    "AttributeParityMetrics",
    "AttributeRateEquality",
    "AttributeTreatmentMetrics",
    "ComponentWeights",
    "ConfidenceInterval",
    "ContingencyTestResult",
    "DemographicParityMetrics",
    "DisparateImpactMetrics",
    "EffectSize",
    "EqualizedOddsMetrics",
    "FairnessContext",
    "FairnessMetrics",
    "GroupRateMetrics",
    "GroupSelectionMetrics",
    "GroupTreatmentMetrics",
    "MultipleComparisonCorrection",
    "OutcomeRecord",
    "OutlierDetection",
    "OutlierRecord",
    "PowerAnalysisResult",
    "PredictiveEqualityMetrics",
    "ProcessEventData",
    "SampleSizeInfo",
    "StatisticalSignificanceMetrics",
    "TreatmentEqualityMetrics",
    "ValidationStatus",
    # Bias
    "BiasEvidence",
    "DetectedBias",
    "ImpactAssessment",
    "MonitoringResult",
    "Violation",
    # Alert
    "Alert",
    "AlertPage",
    "AlertQuery",
    "BiasAnalysisSummary",
    "NotificationRecord",
    "Resolution",
    "ViolationOccurrence",
    # Audit
    "ActorInfo",
    "AuditEntry",
    "AuditEntryCreate",
    "AuditQuery",
    "AuditSummary",
    "ChangeRecord",
    "ResourceInfo",
    "create_alert_transition_audit",
    "create_detection_run_audit",
    "create_threshold_update_audit",
    # Thresholds
    "MetricThreshold",
    "ThresholdConfig",
    # Dashboard
    "BiasScorePoint",
    "ComplianceHistoryEntry",
    "DashboardSnapshot",
    "MonitoringReport",
    "ProcessAnalysis",
    "SummaryMetrics",
]
