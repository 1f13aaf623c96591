"""
Dashboard and report models for FairWatch.

Aggregated, read-only views over monitoring results and alerts.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from fairwatch.utils.constants import ComplianceStatus, EvaluationMode, ReportType, TimeRange

from .base import utcnow
from .bias import MonitoringResult


class SummaryMetrics(BaseModel):
    """Headline numbers for a time window."""

    total_evaluations: int = 0
    violation_count: int = 0
    compliance_rate: Optional[float] = None  # None when nothing was evaluable
    average_bias_score: Optional[float] = None


class DashboardSnapshot(BaseModel):
    """Point-in-time aggregate view for a dashboard time range."""

    model_config = ConfigDict(use_enum_values=True)

    time_range: TimeRange
    start_time: datetime
    end_time: datetime
    summary: SummaryMetrics = Field(default_factory=SummaryMetrics)
    compliance_by_process_type: dict[str, Optional[float]] = Field(default_factory=dict)
    active_alerts_by_severity: dict[str, int] = Field(default_factory=dict)
    alerts_by_status: dict[str, int] = Field(default_factory=dict)
    recent_results: list[MonitoringResult] = Field(default_factory=list)
    threshold_version: int = 1
    last_updated: datetime = Field(default_factory=utcnow)


class MonitoringReport(BaseModel):
    """A generated compliance, trend, violation or process report."""

    model_config = ConfigDict(use_enum_values=True)

    report_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    report_type: ReportType
    time_range: TimeRange
    start_time: datetime
    end_time: datetime
    generated_at: datetime = Field(default_factory=utcnow)
    total_processes_monitored: int = 0
    total_violations: int = 0
    compliance_rate: Optional[float] = None
    data: dict[str, Any] = Field(default_factory=dict)


class BiasScorePoint(BaseModel):
    """One evaluation on a process's bias-score timeline."""

    model_config = ConfigDict(use_enum_values=True)

    timestamp: datetime
    bias_score: Optional[float] = None
    compliance_status: ComplianceStatus
    mode: EvaluationMode = EvaluationMode.BATCH


class ComplianceHistoryEntry(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    timestamp: datetime
    status: ComplianceStatus
    violation_count: int = 0


class ProcessAnalysis(BaseModel):
    """
    Recent monitoring history of a single process.

    Timelines are newest first. ``bias_patterns`` combines patterns the
    detector reported with breaches that recur across evaluations, and
    ``improvements`` collects the actions recommended by the latest run.
    """

    model_config = ConfigDict(use_enum_values=True)

    process_id: str
    latest_analysis: MonitoringResult
    historical_trend: list[BiasScorePoint] = Field(default_factory=list)
    bias_score_trend: str = "stable"
    bias_patterns: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    compliance_history: list[ComplianceHistoryEntry] = Field(default_factory=list)
    average_bias_score: Optional[float] = None
    last_analyzed: datetime
