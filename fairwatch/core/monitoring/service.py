"""
Bias monitoring service.

Facade over the fairness calculator, bias detector, alert manager and
audit trail. Collaborators are passed in explicitly; use
``build_monitoring_service`` to assemble a service from settings.
"""

import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, NamedTuple, Optional

from fairwatch.data.database import DatabaseManager, MongoDocumentStore
from fairwatch.data.models.alert import Alert, AlertPage, AlertQuery, BiasAnalysisSummary
from fairwatch.data.models.audit import (
    ActorInfo,
    AuditEntryCreate,
    ResourceInfo,
    create_detection_run_audit,
    create_threshold_update_audit,
)
from fairwatch.data.models.base import utcnow
from fairwatch.data.models.bias import DetectedBias, MonitoringResult, Violation
from fairwatch.data.models.dashboard import DashboardSnapshot, MonitoringReport, ProcessAnalysis
from fairwatch.data.models.fairness import (
    FairnessContext,
    FairnessMetrics,
    OutcomeRecord,
    ProcessEventData,
)
from fairwatch.data.models.thresholds import ThresholdConfig
from fairwatch.data.repositories import (
    AlertRepository,
    AuditRepository,
    FairnessMetricsRepository,
    MonitoringResultRepository,
)
from fairwatch.data.store import DocumentStore, InMemoryDocumentStore
from fairwatch.ml.ethics.bias_detector import BiasDetector, QuickCheckResult
from fairwatch.ml.ethics.fairness_metrics import FairnessCalculator
from fairwatch.utils.config import AppSettings, get_settings
from fairwatch.utils.constants import (
    RECENT_RESULTS_LIMIT,
    AuditAction,
    ComplianceStatus,
    EthicalImpactLevel,
    EvaluationMode,
    ProcessType,
    ReportType,
    Severity,
    TimeRange,
)
from fairwatch.utils.exceptions import (
    InsufficientSampleSize,
    PersistenceUnavailable,
    ThresholdConfigInvalid,
)
from fairwatch.utils.logger import get_logger

from . import reports
from .alert_manager import AlertManager
from .audit_trail import AuditTrailRecorder
from .locks import ProcessLockRegistry
from .notifications import NotificationDispatcher
from .thresholds import ThresholdRegistry

logger = get_logger(__name__)


class EvaluationRequest(NamedTuple):
    process_id: str
    process_type: ProcessType
    event_data: ProcessEventData


@dataclass
class MonitoringOutcome:
    """What a caller gets back from evaluating a process."""

    process_id: str
    process_type: ProcessType
    mode: EvaluationMode
    violations: list[Violation] = field(default_factory=list)
    bias_score: Optional[float] = None
    fairness_score: Optional[float] = None
    compliance_status: ComplianceStatus = ComplianceStatus.UNDER_REVIEW
    overall_severity: Optional[Severity] = None
    detected_bias: Optional[DetectedBias] = None
    detected_patterns: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    not_applicable: list[str] = field(default_factory=list)
    metrics_id: Optional[str] = None
    result_id: Optional[str] = None
    alert_ids: list[str] = field(default_factory=list)
    threshold_version: int = 1
    persisted: bool = True
    quick_check: Optional[QuickCheckResult] = None
    message: Optional[str] = None


class BiasMonitoringService:
    """
    Entry point for fairness monitoring.

    Evaluations of the same process id are serialized; different process
    ids evaluate in parallel. Each evaluation captures the threshold
    snapshot active when it starts.
    """

    def __init__(
        self,
        calculator: FairnessCalculator,
        detector: BiasDetector,
        thresholds: ThresholdRegistry,
        alert_manager: AlertManager,
        audit: AuditTrailRecorder,
        metrics_repository: FairnessMetricsRepository,
        results_repository: MonitoringResultRepository,
        locks: Optional[ProcessLockRegistry] = None,
        max_workers: int = 4,
        recent_history_size: int = 500,
    ):
        self.calculator = calculator
        self.detector = detector
        self.thresholds = thresholds
        self.alerts = alert_manager
        self.audit = audit
        self._metrics = metrics_repository
        self._results = results_repository
        self._locks = locks or ProcessLockRegistry()
        self.max_workers = max_workers
        self.recent_history_size = recent_history_size

        self._history_lock = threading.Lock()
        self._history: dict[str, deque] = {}
        self._dashboard_lock = threading.Lock()
        self._dashboards: dict[TimeRange, DashboardSnapshot] = {}

    def ensure_indexes(self) -> None:
        for repository in (self._metrics, self._results):
            repository.ensure_indexes()
        self.alerts.ensure_indexes()
        self.audit.ensure_indexes()

    # -------------------------------------------------------------------------
    # Fairness metrics
    # -------------------------------------------------------------------------

    def compute_fairness_metrics(
        self,
        outcomes: list[OutcomeRecord],
        context: Optional[FairnessContext] = None,
        process_id: Optional[str] = None,
    ) -> FairnessMetrics:
        """Calculate and persist a fairness metrics bundle."""
        config = self.thresholds.snapshot()
        metrics = self.calculator.calculate(outcomes, context, process_id, config)
        stored = self._metrics.create(metrics)
        self.audit.record(
            AuditEntryCreate(
                action=AuditAction.METRICS_CALCULATED,
                action_description=(
                    f"Fairness metrics calculated over {metrics.sample_size.total} outcomes "
                    f"(overall score {metrics.overall_fairness_score:.3f})"
                ),
                actor=ActorInfo.system(),
                resource=ResourceInfo(resource_type="fairness_metrics", resource_id=metrics.metrics_id),
                context={
                    "process_id": process_id,
                    "overall_fairness_score": metrics.overall_fairness_score,
                    "threshold_version": config.version,
                },
            )
        )
        return stored

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate_process(
        self,
        process_id: str,
        process_type: ProcessType,
        event_data: ProcessEventData,
    ) -> MonitoringOutcome:
        """
        Full statistical evaluation of a process.

        Runs the calculator and detector, raises or merges alerts, records
        the result and an audit entry. Too little data yields an
        ``under_review`` outcome without violations. Persistence failures
        propagate.
        """
        process_type = ProcessType(process_type)
        config = self.thresholds.snapshot()

        with self._locks.hold(process_id):
            context = event_data.context or FairnessContext.for_process(process_type)
            try:
                metrics = self.calculator.calculate(event_data.outcomes, context, process_id, config)
            except InsufficientSampleSize as e:
                logger.warning(f"Process {process_id} left under review: {e.message}")
                outcome = MonitoringOutcome(
                    process_id=process_id,
                    process_type=process_type,
                    mode=EvaluationMode.BATCH,
                    not_applicable=[e.message],
                    threshold_version=config.version,
                    message=e.message,
                )
                self._persist_outcome(outcome)
                self._remember(process_id, event_data.outcomes)
                return outcome

            self._metrics.create(metrics)
            detection = self.detector.detect(metrics, config, process_type)

            outcome = MonitoringOutcome(
                process_id=process_id,
                process_type=process_type,
                mode=EvaluationMode.BATCH,
                violations=detection.violations,
                bias_score=detection.bias_score,
                fairness_score=metrics.overall_fairness_score,
                compliance_status=detection.compliance_status,
                overall_severity=detection.overall_severity,
                detected_bias=detection.detected_bias,
                detected_patterns=detection.detected_patterns,
                recommendations=detection.recommendations,
                not_applicable=detection.not_applicable,
                metrics_id=metrics.metrics_id,
                threshold_version=config.version,
            )
            outcome.alert_ids = self._raise_alerts(outcome, config)
            self._persist_outcome(outcome)
            self._remember(process_id, event_data.outcomes)

        logger.info(
            f"Evaluated {process_type.value} process {process_id}: "
            f"{outcome.compliance_status.value}, {len(outcome.violations)} violation(s), "
            f"{len(outcome.alert_ids)} alert(s)"
        )
        return outcome

    def evaluate_many(self, requests: list[EvaluationRequest]) -> list[MonitoringOutcome]:
        """Evaluate independent processes on the worker pool; results keep request order."""
        if not requests:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="fairwatch-eval") as pool:
            futures = [
                pool.submit(self.evaluate_process, r.process_id, r.process_type, r.event_data)
                for r in requests
            ]
            return [future.result() for future in futures]

    def quick_check(
        self,
        process_id: str,
        process_type: ProcessType,
        event_data: ProcessEventData,
    ) -> MonitoringOutcome:
        """
        Real-time provisional check of one event against recent history.

        A persistence failure does not fail the check; the outcome is
        returned with ``persisted=False``.
        """
        process_type = ProcessType(process_type)
        config = self.thresholds.snapshot()
        result = self.detector.quick_check(event_data, self.recent_history(process_id), config)
        self._remember(process_id, event_data.outcomes)

        outcome = MonitoringOutcome(
            process_id=process_id,
            process_type=process_type,
            mode=EvaluationMode.QUICK,
            violations=result.violations,
            bias_score=result.provisional_score,
            compliance_status=result.compliance_status,
            overall_severity=result.overall_severity,
            recommendations=result.suggestions,
            threshold_version=config.version,
            quick_check=result,
        )
        try:
            with self._locks.hold(process_id):
                outcome.alert_ids = self._raise_alerts(outcome, config)
                self._persist_outcome(outcome)
        except PersistenceUnavailable as e:
            logger.warning(f"Quick check for {process_id} computed but not persisted: {e.message}")
            outcome.persisted = False
        return outcome

    def _raise_alerts(self, outcome: MonitoringOutcome, config: ThresholdConfig) -> list[str]:
        analysis = BiasAnalysisSummary(
            overall_bias_score=outcome.bias_score,
            compliance_status=outcome.compliance_status,
            detected_patterns=outcome.detected_patterns,
            mitigation_recommendations=outcome.recommendations,
            metrics_id=outcome.metrics_id,
        )
        alert_ids = []
        for violation in outcome.violations:
            alert = self.alerts.create_from_violation(
                outcome.process_id,
                outcome.process_type,
                violation,
                analysis,
                min_severity=config.alert_min_severity,
            )
            if alert is not None and alert.alert_id not in alert_ids:
                alert_ids.append(alert.alert_id)
        return alert_ids

    def _persist_outcome(self, outcome: MonitoringOutcome) -> None:
        result = self._results.create(
            MonitoringResult(
                process_id=outcome.process_id,
                process_type=outcome.process_type,
                stage=outcome.process_type.stage,
                mode=outcome.mode,
                violations=outcome.violations,
                overall_severity=outcome.overall_severity,
                bias_score=outcome.bias_score,
                fairness_score=outcome.fairness_score,
                compliance_status=outcome.compliance_status,
                metrics_id=outcome.metrics_id,
                detected_bias=outcome.detected_bias,
                detected_patterns=outcome.detected_patterns,
                not_applicable=outcome.not_applicable,
                alert_ids=outcome.alert_ids,
                threshold_version=outcome.threshold_version,
            )
        )
        outcome.result_id = result.result_id
        self.audit.record(
            create_detection_run_audit(
                process_id=outcome.process_id,
                process_type=outcome.process_type.value,
                compliance_status=outcome.compliance_status.value,
                violation_count=len(outcome.violations),
                overall_severity=outcome.overall_severity,
                bias_score=outcome.bias_score,
                metrics_id=outcome.metrics_id,
                mode=outcome.mode.value,
            )
        )

    # -------------------------------------------------------------------------
    # Recent history
    # -------------------------------------------------------------------------

    def _remember(self, process_id: str, outcomes: list[OutcomeRecord]) -> None:
        if not outcomes or self.recent_history_size <= 0:
            return
        with self._history_lock:
            history = self._history.setdefault(process_id, deque(maxlen=self.recent_history_size))
            history.extend(outcomes)

    def recent_history(self, process_id: str) -> list[OutcomeRecord]:
        with self._history_lock:
            return list(self._history.get(process_id, ()))

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    def acknowledge_alert(self, alert_id: str, actor: str) -> Alert:
        return self.alerts.acknowledge(alert_id, actor)

    def resolve_alert(self, alert_id: str, actor: str, action: str, description: str) -> Alert:
        return self.alerts.resolve(alert_id, actor, action, description)

    def list_alerts(self, query: Optional[AlertQuery] = None) -> AlertPage:
        return self.alerts.list_alerts(query)

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        return self.alerts.get_alert(alert_id)

    # -------------------------------------------------------------------------
    # Thresholds
    # -------------------------------------------------------------------------

    def get_thresholds(self) -> ThresholdConfig:
        return self.thresholds.snapshot()

    def update_thresholds(self, changes: dict[str, Any], actor: str) -> ThresholdConfig:
        """
        Activate a new threshold snapshot for subsequent evaluations.

        Raises:
            ThresholdConfigInvalid: The update was rejected; the previous
                snapshot remains active. The rejection is audited.
        """
        actor_info = ActorInfo.user(actor)
        try:
            config, changed = self.thresholds.update(changes, actor)
        except ThresholdConfigInvalid as e:
            self.audit.record(
                create_threshold_update_audit(
                    actor_info,
                    [],
                    self.thresholds.version,
                    accepted=False,
                    errors=e.details or [e.message],
                )
            )
            raise
        self.audit.record(create_threshold_update_audit(actor_info, changed, config.version))
        return config

    # -------------------------------------------------------------------------
    # Dashboards and reports
    # -------------------------------------------------------------------------

    @staticmethod
    def _window(time_range: TimeRange, now: Optional[datetime]) -> tuple[datetime, datetime]:
        end = now or utcnow()
        return end - timedelta(hours=TimeRange(time_range).hours), end

    def get_dashboard_snapshot(
        self,
        time_range: TimeRange = TimeRange.LAST_DAY,
        now: Optional[datetime] = None,
    ) -> DashboardSnapshot:
        """Aggregate monitoring results and alerts for a time range."""
        time_range = TimeRange(time_range)
        start, end = self._window(time_range, now)
        results = self._results.get_between(start, end)
        open_alerts = self.alerts.open_alerts()
        window_alerts = self.alerts.created_between(start, end)

        snapshot = DashboardSnapshot(
            time_range=time_range,
            start_time=start,
            end_time=end,
            summary=reports.summarize(results),
            compliance_by_process_type=reports.compliance_by_process_type(results),
            active_alerts_by_severity=reports.alerts_by_severity(open_alerts),
            alerts_by_status=reports.alerts_by_status(window_alerts),
            recent_results=results[:RECENT_RESULTS_LIMIT],
            threshold_version=self.thresholds.version,
        )
        with self._dashboard_lock:
            self._dashboards[time_range] = snapshot
        return snapshot

    def cached_dashboard(self, time_range: TimeRange = TimeRange.LAST_DAY) -> Optional[DashboardSnapshot]:
        with self._dashboard_lock:
            return self._dashboards.get(TimeRange(time_range))

    def refresh_dashboards(self, now: Optional[datetime] = None) -> None:
        for time_range in TimeRange:
            self.get_dashboard_snapshot(time_range, now)

    def get_process_history(self, process_id: str, limit: int = 10) -> list[MonitoringResult]:
        return self._results.get_history(process_id, limit=limit)

    def get_process_analysis(self, process_id: str, limit: int = 10) -> Optional[ProcessAnalysis]:
        """Trend, recurring patterns and recommendations over the last ``limit`` results."""
        return reports.build_process_analysis(process_id, self.get_process_history(process_id, limit))

    def generate_report(
        self,
        report_type: ReportType,
        time_range: TimeRange = TimeRange.LAST_WEEK,
        now: Optional[datetime] = None,
    ) -> MonitoringReport:
        """Build a report over the monitoring results in a time range."""
        report_type = ReportType(report_type)
        time_range = TimeRange(time_range)
        start, end = self._window(time_range, now)
        results = self._results.get_between(start, end)
        alerts = self.alerts.created_between(start, end)

        report = MonitoringReport(
            report_type=report_type,
            time_range=time_range,
            start_time=start,
            end_time=end,
            total_processes_monitored=len({r.process_id for r in results}),
            total_violations=sum(r.violation_count for r in results),
            compliance_rate=reports.compliance_rate(results),
            data=reports.build_report_data(report_type, results, alerts, time_range, start),
        )
        self.audit.record(
            AuditEntryCreate(
                action=AuditAction.REPORT_GENERATED,
                action_description=f"{report_type.value} report generated for the last {time_range.value}",
                actor=ActorInfo.system(),
                resource=ResourceInfo(resource_type="report", resource_id=report.report_id),
                context={
                    "report_type": report_type.value,
                    "time_range": time_range.value,
                    "compliance_rate": report.compliance_rate,
                },
            )
        )
        logger.info(f"Generated {report_type.value} report {report.report_id}")
        return report

    # -------------------------------------------------------------------------
    # Retention
    # -------------------------------------------------------------------------

    def purge_expired_records(self, now: Optional[datetime] = None) -> dict[str, int]:
        """Purge resolved alerts and audit entries past their retention windows."""
        now = now or utcnow()
        removed = {
            "alerts": self.alerts.purge_expired(now),
            "audit_entries": self.audit.purge_expired(now),
        }
        if any(removed.values()):
            self.audit.record(
                AuditEntryCreate(
                    action=AuditAction.RECORDS_PURGED,
                    action_description=(
                        f"Retention purge removed {removed['alerts']} alert(s) and "
                        f"{removed['audit_entries']} audit entr(ies)"
                    ),
                    actor=ActorInfo.system(),
                    ethical_impact=EthicalImpactLevel.LOW,
                    context=dict(removed),
                )
            )
        return removed


def build_monitoring_service(
    settings: Optional[AppSettings] = None,
    store: Optional[DocumentStore] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> BiasMonitoringService:
    """
    Assemble a monitoring service from settings.

    Args:
        settings: Application settings; defaults to ``get_settings()``.
        store: Document store to use instead of the configured backend.
        dispatcher: Notification dispatcher; defaults to logging only.
    """
    settings = settings or get_settings()
    monitoring = settings.monitoring

    if store is None:
        if settings.storage_backend == "memory":
            store = InMemoryDocumentStore()
        else:
            store = MongoDocumentStore(DatabaseManager(settings.database))

    config = ThresholdConfig.from_settings(monitoring)
    audit = AuditTrailRecorder(AuditRepository(store, retention_days=monitoring.audit_retention_days))
    alert_manager = AlertManager(
        AlertRepository(store),
        audit,
        dispatcher=dispatcher,
        escalation_owner=monitoring.escalation_owner,
        dedup_window_hours=monitoring.dedup_window_hours,
        retention_days=monitoring.alert_retention_days,
    )
    logger.debug(f"Building monitoring service with {type(store).__name__}")

    return BiasMonitoringService(
        calculator=FairnessCalculator(
            config,
            bootstrap_resamples=monitoring.bootstrap_resamples,
            bootstrap_max_sample_size=monitoring.bootstrap_max_sample_size,
            random_seed=monitoring.random_seed,
        ),
        detector=BiasDetector(config),
        thresholds=ThresholdRegistry(config),
        alert_manager=alert_manager,
        audit=audit,
        metrics_repository=FairnessMetricsRepository(store),
        results_repository=MonitoringResultRepository(store),
        max_workers=monitoring.max_workers,
        recent_history_size=monitoring.recent_history_size,
    )
