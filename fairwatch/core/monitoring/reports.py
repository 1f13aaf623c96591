"""
Aggregations behind the dashboard snapshot and generated reports.

Plain functions over lists of monitoring results and alerts; nothing here
touches persistence.
"""

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import numpy as np

from fairwatch.data.models.alert import Alert
from fairwatch.data.models.bias import MonitoringResult
from fairwatch.data.models.dashboard import (
    BiasScorePoint,
    ComplianceHistoryEntry,
    ProcessAnalysis,
    SummaryMetrics,
)
from fairwatch.utils.constants import (
    AlertStatus,
    ComplianceStatus,
    EvaluationMode,
    ReportType,
    Severity,
    TimeRange,
)

# bias-score change between halves of a window that counts as a trend
TREND_DELTA = 0.05


def compliance_rate(results: list[MonitoringResult]) -> Optional[float]:
    """Share of determinate results that were compliant; None without any."""
    determinate = [
        r for r in results if ComplianceStatus(r.compliance_status) != ComplianceStatus.UNDER_REVIEW
    ]
    if not determinate:
        return None
    compliant = sum(
        1 for r in determinate if ComplianceStatus(r.compliance_status) == ComplianceStatus.COMPLIANT
    )
    return round(compliant / len(determinate), 4)


def average_bias_score(results: list[MonitoringResult]) -> Optional[float]:
    """Mean bias score of batch evaluations; quick-check scores are provisional."""
    scores = [
        r.bias_score
        for r in results
        if r.bias_score is not None and EvaluationMode(r.mode) == EvaluationMode.BATCH
    ]
    return round(float(np.mean(scores)), 4) if scores else None


def bias_score_trend(results: list[MonitoringResult]) -> str:
    """Compare the early and late halves of results by evaluation time."""
    ordered = sorted(results, key=lambda r: r.evaluated_at)
    half = len(ordered) // 2
    early, late = average_bias_score(ordered[:half]), average_bias_score(ordered[half:])
    if early is None or late is None or abs(late - early) < TREND_DELTA:
        return "stable"
    return "worsening" if late > early else "improving"


def summarize(results: list[MonitoringResult]) -> SummaryMetrics:
    return SummaryMetrics(
        total_evaluations=len(results),
        violation_count=sum(r.violation_count for r in results),
        compliance_rate=compliance_rate(results),
        average_bias_score=average_bias_score(results),
    )


def compliance_by_process_type(results: list[MonitoringResult]) -> dict[str, Optional[float]]:
    by_type: dict[str, list[MonitoringResult]] = defaultdict(list)
    for result in results:
        by_type[str(result.process_type)].append(result)
    return {process_type: compliance_rate(items) for process_type, items in sorted(by_type.items())}


def alerts_by_severity(alerts: list[Alert]) -> dict[str, int]:
    counts = Counter(Severity(a.priority).value for a in alerts)
    return {severity.value: counts.get(severity.value, 0) for severity in Severity}


def alerts_by_status(alerts: list[Alert]) -> dict[str, int]:
    counts = Counter(AlertStatus(a.status).value for a in alerts)
    return {status.value: counts.get(status.value, 0) for status in AlertStatus}


# =============================================================================
# Reports
# =============================================================================


def _compliance_report(results: list[MonitoringResult], alerts: list[Alert]) -> dict[str, Any]:
    latest: dict[str, MonitoringResult] = {}
    for result in sorted(results, key=lambda r: r.evaluated_at):
        latest[result.process_id] = result

    status_counts = Counter(str(r.compliance_status) for r in results)
    return {
        "status_counts": {s.value: status_counts.get(s.value, 0) for s in ComplianceStatus},
        "compliance_by_process_type": compliance_by_process_type(results),
        "non_compliant_processes": sorted(
            pid
            for pid, r in latest.items()
            if ComplianceStatus(r.compliance_status) == ComplianceStatus.NON_COMPLIANT
        ),
        "under_review_processes": sorted(
            pid
            for pid, r in latest.items()
            if ComplianceStatus(r.compliance_status) == ComplianceStatus.UNDER_REVIEW
        ),
        "unresolved_critical_alerts": sum(
            1 for a in alerts if a.is_open and Severity(a.priority) == Severity.CRITICAL
        ),
    }


def _violation_summary_report(results: list[MonitoringResult], alerts: list[Alert]) -> dict[str, Any]:
    violations = [v for r in results for v in r.violations]
    by_attribute = Counter(v.attribute for v in violations)
    return {
        "total": len(violations),
        "by_metric": dict(Counter(str(v.metric) for v in violations)),
        "by_severity": {
            s.value: sum(1 for v in violations if Severity(v.severity) == s) for s in Severity
        },
        "by_type": dict(Counter(str(v.violation_type) for v in violations)),
        "by_attribute": dict(by_attribute),
        "most_affected_attributes": [name for name, _ in by_attribute.most_common(5)],
        "alerts_raised": len(alerts),
        "repeat_alerts": sum(1 for a in alerts if a.occurrence_count > 1),
    }


def _process_performance_report(results: list[MonitoringResult], alerts: list[Alert]) -> dict[str, Any]:
    by_process: dict[str, list[MonitoringResult]] = defaultdict(list)
    for result in results:
        by_process[result.process_id].append(result)
    open_alerts = Counter(a.process_id for a in alerts if a.is_open)

    processes = {}
    for process_id, items in sorted(by_process.items()):
        latest = max(items, key=lambda r: r.evaluated_at)
        processes[process_id] = {
            "process_type": latest.process_type,
            "evaluations": len(items),
            "violations": sum(r.violation_count for r in items),
            "average_bias_score": average_bias_score(items),
            "latest_status": latest.compliance_status,
            "compliance_rate": compliance_rate(items),
            "open_alerts": open_alerts.get(process_id, 0),
        }
    return {"processes": processes}


def _bucket_size(time_range: TimeRange) -> timedelta:
    return timedelta(hours=1) if TimeRange(time_range).hours <= 24 else timedelta(days=1)


def _trend_analysis_report(
    results: list[MonitoringResult],
    alerts: list[Alert],
    time_range: TimeRange,
    start: datetime,
) -> dict[str, Any]:
    size = _bucket_size(time_range)
    buckets: dict[int, list[MonitoringResult]] = defaultdict(list)
    for result in results:
        buckets[int((result.evaluated_at - start) / size)].append(result)

    series = [
        {
            "bucket_start": start + size * index,
            "evaluations": len(items),
            "violations": sum(r.violation_count for r in items),
            "average_bias_score": average_bias_score(items),
            "compliance_rate": compliance_rate(items),
        }
        for index, items in sorted(buckets.items())
    ]

    return {
        "bucket_hours": size.total_seconds() / 3600,
        "series": series,
        "bias_score_trend": bias_score_trend(results),
        "alerts_created": len(alerts),
    }


_REPORT_BUILDERS: dict[ReportType, Callable[..., dict[str, Any]]] = {
    ReportType.COMPLIANCE: _compliance_report,
    ReportType.VIOLATION_SUMMARY: _violation_summary_report,
    ReportType.PROCESS_PERFORMANCE: _process_performance_report,
}


def build_report_data(
    report_type: ReportType,
    results: list[MonitoringResult],
    alerts: list[Alert],
    time_range: TimeRange,
    start: datetime,
) -> dict[str, Any]:
    """Report body for ``report_type`` over results and alerts in the window."""
    report_type = ReportType(report_type)
    if report_type == ReportType.TREND_ANALYSIS:
        return _trend_analysis_report(results, alerts, time_range, start)
    return _REPORT_BUILDERS[report_type](results, alerts)


# =============================================================================
# Per-process analysis
# =============================================================================


def recurring_breaches(results: list[MonitoringResult], min_evaluations: int = 2) -> list[str]:
    """Metric/attribute breaches seen in at least ``min_evaluations`` results."""
    seen = Counter(signature for r in results for signature in {v.signature for v in r.violations})
    return sorted(
        f"recurring_{metric}:{attribute}"
        for (metric, attribute), count in seen.items()
        if count >= min_evaluations
    )


def _improvements(latest: MonitoringResult, trend: str) -> list[str]:
    actions = [v.recommended_action for v in latest.violations if v.recommended_action]
    if latest.detected_bias is not None:
        actions.extend(latest.detected_bias.recommended_actions)
    if trend == "worsening":
        actions.append("Bias score is rising across recent evaluations; review recent process changes")
    return list(dict.fromkeys(actions))


def build_process_analysis(process_id: str, results: list[MonitoringResult]) -> Optional[ProcessAnalysis]:
    """
    Summarize the recent history of one process.

    Args:
        process_id: Process the results belong to.
        results: Monitoring results, any order; the newest is the latest analysis.

    Returns:
        ProcessAnalysis, or None when the process has no results.
    """
    if not results:
        return None

    ordered = sorted(results, key=lambda r: r.evaluated_at, reverse=True)
    latest = ordered[0]
    trend = bias_score_trend(ordered)
    patterns = {p for r in ordered for p in r.detected_patterns}
    patterns.update(recurring_breaches(ordered))

    return ProcessAnalysis(
        process_id=process_id,
        latest_analysis=latest,
        historical_trend=[
            BiasScorePoint(
                timestamp=r.evaluated_at,
                bias_score=r.bias_score,
                compliance_status=r.compliance_status,
                mode=r.mode,
            )
            for r in ordered
        ],
        bias_score_trend=trend,
        bias_patterns=sorted(patterns),
        improvements=_improvements(latest, trend),
        compliance_history=[
            ComplianceHistoryEntry(
                timestamp=r.evaluated_at,
                status=r.compliance_status,
                violation_count=r.violation_count,
            )
            for r in ordered
        ],
        average_bias_score=average_bias_score(ordered),
        last_analyzed=latest.evaluated_at,
    )
