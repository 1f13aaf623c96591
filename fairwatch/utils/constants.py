"""
Application-wide constants for FairWatch.

This module contains the enums and lookup tables used throughout the
application. Every table keyed by an enum covers all of its members.
"""

from enum import Enum
from typing import Final


# =============================================================================
# Application Constants
# =============================================================================

APP_NAME: Final[str] = "fairwatch"
APP_DISPLAY_NAME: Final[str] = "FairWatch Bias Monitoring"
VERSION: Final[str] = "0.1.0"


# =============================================================================
# Enums
# =============================================================================


class Severity(str, Enum):
    """Severity of a violation, alert priority or detected bias."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return SEVERITY_RANKS[self]

    @property
    def score(self) -> float:
        return SEVERITY_SCORES[self]

    @classmethod
    def highest(cls, severities) -> "Severity | None":
        """Return the most severe member of an iterable, or None if empty."""
        members = [cls(s) for s in severities]
        if not members:
            return None
        return max(members, key=lambda s: s.rank)


class MetricFamily(str, Enum):
    """The five fairness metric families."""

    DEMOGRAPHIC_PARITY = "demographic_parity"
    EQUALIZED_ODDS = "equalized_odds"
    PREDICTIVE_EQUALITY = "predictive_equality"
    TREATMENT_EQUALITY = "treatment_equality"
    DISPARATE_IMPACT = "disparate_impact"


class ViolationType(str, Enum):
    """How a violation was established."""

    THRESHOLD = "threshold"
    STATISTICAL = "statistical"
    PRACTICAL = "practical"


class AlertStatus(str, Enum):
    """Lifecycle state of an alert."""

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class ProcessType(str, Enum):
    """Kind of hiring-process event being monitored."""

    APPLICATION_REVIEW = "application_review"
    INTERVIEW_SCHEDULING = "interview_scheduling"
    HIRING_DECISION = "hiring_decision"
    MATCHING = "matching"

    @property
    def stage(self) -> str:
        return PROCESS_STAGES[self]

    @property
    def context_type(self) -> "ContextProcessType":
        return PROCESS_CONTEXT_TYPES[self]


class ContextProcessType(str, Enum):
    """Business process a fairness calculation is scoped to."""

    HIRING = "hiring"
    PROMOTION = "promotion"
    PERFORMANCE_REVIEW = "performance_review"
    COMPENSATION = "compensation"
    MATCHING = "matching"


class BiasType(str, Enum):
    """Taxonomy of detectable bias."""

    DEMOGRAPHIC = "demographic_bias"
    CONFIRMATION = "confirmation_bias"
    AFFINITY = "affinity_bias"
    HALO_EFFECT = "halo_effect"
    HORN_EFFECT = "horn_effect"
    ANCHORING = "anchoring_bias"
    AVAILABILITY = "availability_bias"
    ATTRIBUTION = "attribution_bias"
    STEREOTYPING = "stereotyping"
    SYSTEMIC = "systemic_bias"
    ALGORITHMIC = "algorithmic_bias"
    SELECTION = "selection_bias"
    MEASUREMENT = "measurement_bias"


class ComplianceStatus(str, Enum):
    """Compliance verdict for an evaluation."""

    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    PARTIALLY_COMPLIANT = "partially_compliant"
    UNDER_REVIEW = "under_review"
    REMEDIATION_IN_PROGRESS = "remediation_in_progress"


class EthicalImpactLevel(str, Enum):
    """Ethical impact of an audited action."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return ETHICAL_IMPACT_RANKS[self]


class ComplianceFramework(str, Enum):
    """Regulatory frameworks an audit entry may bear on."""

    EEOC = "eeoc"
    GDPR = "gdpr"
    CCPA = "ccpa"
    SOX = "sox"
    ISO_27001 = "iso_27001"
    NIST = "nist"
    CUSTOM = "custom"


class AuditAction(str, Enum):
    """Types of actions that can be audited."""

    METRICS_CALCULATED = "metrics_calculated"
    DETECTION_RUN = "detection_run"
    QUICK_CHECK = "quick_check"
    ALERT_CREATED = "alert_created"
    ALERT_EVIDENCE_MERGED = "alert_evidence_merged"
    ALERT_ACKNOWLEDGED = "alert_acknowledged"
    ALERT_RESOLVED = "alert_resolved"
    RECORDS_PURGED = "records_purged"
    THRESHOLD_UPDATED = "threshold_updated"
    THRESHOLD_UPDATE_REJECTED = "threshold_update_rejected"
    CORRECTION = "correction"
    REPORT_GENERATED = "report_generated"


class ActorType(str, Enum):
    """Who performed an audited action."""

    USER = "user"
    SYSTEM = "system"
    API = "api"
    BATCH_JOB = "batch_job"


class NotificationChannel(str, Enum):
    """Channel a notification sink delivers on."""

    EMAIL = "email"
    WEBSOCKET = "websocket"
    SMS = "sms"
    LOG = "log"


class NotificationStatus(str, Enum):
    """Outcome of a notification dispatch."""

    SENT = "sent"
    FAILED = "failed"
    PENDING = "pending"


class EvaluationMode(str, Enum):
    """Full statistical evaluation or real-time quick check."""

    BATCH = "batch"
    QUICK = "quick"


class TimeRange(str, Enum):
    """Dashboard and report time windows."""

    LAST_HOUR = "1h"
    LAST_DAY = "24h"
    LAST_WEEK = "7d"
    LAST_MONTH = "30d"

    @property
    def hours(self) -> int:
        return TIME_RANGE_HOURS[self]


class ReportType(str, Enum):
    """Reports the monitoring service can generate."""

    COMPLIANCE = "compliance"
    TREND_ANALYSIS = "trend_analysis"
    VIOLATION_SUMMARY = "violation_summary"
    PROCESS_PERFORMANCE = "process_performance"


# =============================================================================
# Severity Tables
# =============================================================================

SEVERITY_RANKS: Final[dict[Severity, int]] = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

SEVERITY_SCORES: Final[dict[Severity, float]] = {
    Severity.LOW: 0.25,
    Severity.MEDIUM: 0.5,
    Severity.HIGH: 0.75,
    Severity.CRITICAL: 1.0,
}

SEVERITY_ETHICAL_IMPACT: Final[dict[Severity, EthicalImpactLevel]] = {
    Severity.LOW: EthicalImpactLevel.LOW,
    Severity.MEDIUM: EthicalImpactLevel.MEDIUM,
    Severity.HIGH: EthicalImpactLevel.HIGH,
    Severity.CRITICAL: EthicalImpactLevel.CRITICAL,
}

ETHICAL_IMPACT_RANKS: Final[dict[EthicalImpactLevel, int]] = {
    EthicalImpactLevel.NONE: 0,
    EthicalImpactLevel.LOW: 1,
    EthicalImpactLevel.MEDIUM: 2,
    EthicalImpactLevel.HIGH: 3,
    EthicalImpactLevel.CRITICAL: 4,
}

# Business, legal and reputational risk wording per severity
SEVERITY_RISKS: Final[dict[Severity, tuple[str, str, str]]] = {
    Severity.LOW: ("minimal", "minimal", "minimal"),
    Severity.MEDIUM: (
        "moderate hiring quality impact",
        "possible regulatory inquiry",
        "limited reputational exposure",
    ),
    Severity.HIGH: (
        "significant talent pool loss",
        "adverse impact claim likely",
        "public trust at risk",
    ),
    Severity.CRITICAL: (
        "severe hiring process failure",
        "disparate impact litigation exposure",
        "severe reputational damage",
    ),
}


# =============================================================================
# Process Tables
# =============================================================================

PROCESS_STAGES: Final[dict[ProcessType, str]] = {
    ProcessType.APPLICATION_REVIEW: "screening",
    ProcessType.INTERVIEW_SCHEDULING: "interview",
    ProcessType.HIRING_DECISION: "decision",
    ProcessType.MATCHING: "matching",
}

PROCESS_CONTEXT_TYPES: Final[dict[ProcessType, ContextProcessType]] = {
    ProcessType.APPLICATION_REVIEW: ContextProcessType.HIRING,
    ProcessType.INTERVIEW_SCHEDULING: ContextProcessType.HIRING,
    ProcessType.HIRING_DECISION: ContextProcessType.HIRING,
    ProcessType.MATCHING: ContextProcessType.MATCHING,
}

TIME_RANGE_HOURS: Final[dict[TimeRange, int]] = {
    TimeRange.LAST_HOUR: 1,
    TimeRange.LAST_DAY: 24,
    TimeRange.LAST_WEEK: 24 * 7,
    TimeRange.LAST_MONTH: 24 * 30,
}


# =============================================================================
# Fairness Constants
# =============================================================================

FOUR_FIFTHS_RATIO: Final[float] = 0.8
AGGREGATE_SCORE_TOLERANCE: Final[float] = 0.1
MEDIUM_EFFECT_SIZE: Final[float] = 0.3
DEFAULT_ALPHA: Final[float] = 0.05
ADEQUATE_POWER: Final[float] = 0.8
MIN_EXPECTED_CELL_COUNT: Final[float] = 5.0
SMALL_GROUP_WARNING_SIZE: Final[int] = 10
PATTERN_RATE_GAP: Final[float] = 0.2
RECENT_RESULTS_LIMIT: Final[int] = 50

# Bias type reported when a metric family leads the violations
METRIC_BIAS_TYPES: Final[dict[MetricFamily, BiasType]] = {
    MetricFamily.DEMOGRAPHIC_PARITY: BiasType.DEMOGRAPHIC,
    MetricFamily.EQUALIZED_ODDS: BiasType.MEASUREMENT,
    MetricFamily.PREDICTIVE_EQUALITY: BiasType.SELECTION,
    MetricFamily.TREATMENT_EQUALITY: BiasType.SYSTEMIC,
    MetricFamily.DISPARATE_IMPACT: BiasType.SYSTEMIC,
}

METRIC_RECOMMENDATIONS: Final[dict[MetricFamily, str]] = {
    MetricFamily.DEMOGRAPHIC_PARITY: "Review selection criteria for requirements that disadvantage specific groups",
    MetricFamily.EQUALIZED_ODDS: "Recalibrate scoring so qualified candidates advance at equal rates across groups",
    MetricFamily.PREDICTIVE_EQUALITY: "Audit false-positive decisions and reviewer calibration per group",
    MetricFamily.TREATMENT_EQUALITY: "Standardize process timing and resource allocation across groups",
    MetricFamily.DISPARATE_IMPACT: "Conduct an adverse impact analysis and document job-relatedness of criteria",
}

ESCALATION_RECOMMENDATIONS: Final[dict[Severity, tuple[str, ...]]] = {
    Severity.LOW: (),
    Severity.MEDIUM: ("Monitor the process closely over the next evaluation window",),
    Severity.HIGH: (
        "Require human review of affected decisions",
        "Implement structured interview and scoring rubrics",
    ),
    Severity.CRITICAL: (
        "Pause automated decisions for this process pending review",
        "Escalate to the compliance officer",
    ),
}


# =============================================================================
# Quick Check Rules
# =============================================================================

# (pattern, weight, category, suggestion)
QUICK_CHECK_TERM_RULES: Final[tuple[tuple[str, float, str, str], ...]] = (
    (
        r"\b(ninja|rockstar|guru|wizard)\b",
        0.2,
        "exclusionary_language",
        "Replace jargon titles with a plain description of the role",
    ),
    (
        r"\b(young|energetic|fresh)\b",
        0.3,
        "age_bias",
        "Remove age-coded wording and describe the required skills instead",
    ),
    (
        r"\b(guys|manpower|aggressive)\b",
        0.3,
        "gender_bias",
        "Use gender-neutral terms such as team, workforce or proactive",
    ),
    (
        r"\b(culture fit|beer|ping pong)\b",
        0.2,
        "cultural_bias",
        "Describe values and working practices rather than social perks",
    ),
)

QUICK_CHECK_CONFIDENCE: Final[float] = 0.8
