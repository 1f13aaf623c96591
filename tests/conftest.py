"""
Shared test fixtures for the FairWatch test suite.

Sets environment variables before any fairwatch imports so settings and
logging stay inside the test sandbox, then provides factory fixtures for
outcome records, violations and a fully wired in-memory monitoring service.
"""

import os

# === Set environment BEFORE any fairwatch imports ===
os.environ.setdefault("APP_ENVIRONMENT", "testing")
os.environ.setdefault("APP_STORAGE_BACKEND", "memory")
os.environ.setdefault("DB_NAME", "fairwatch_test")
os.environ.setdefault("LOG_FILE_OUTPUT", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any, Optional

import pytest

from fairwatch.core.monitoring import (
    AlertManager,
    AuditTrailRecorder,
    NotificationDispatcher,
    NotificationSink,
    build_monitoring_service,
)
from fairwatch.data.models import OutcomeRecord, ThresholdConfig, Violation
from fairwatch.data.repositories import AlertRepository, AuditRepository
from fairwatch.data.store import InMemoryDocumentStore
from fairwatch.ml.ethics import BiasDetector, FairnessCalculator
from fairwatch.utils.config import AppSettings, MonitoringSettings
from fairwatch.utils.constants import (
    MetricFamily,
    NotificationChannel,
    Severity,
    ViolationType,
)
from fairwatch.utils.exceptions import PersistenceUnavailable


# ---------------------------------------------------------------------------
# Outcome factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_outcomes():
    """
    Factory that builds outcome records for one protected attribute.

    ``groups`` maps group name to ``(selected, total)``. With
    ``truth="selected"`` every record's ground truth equals its decision.
    ``decision_time_hours`` maps group name to a constant decision time.
    """

    def _factory(
        groups: dict[str, tuple[int, int]],
        attribute: str = "gender",
        truth: Optional[str] = None,
        decision_time_hours: Optional[dict[str, float]] = None,
        prefix: str = "",
    ) -> list[OutcomeRecord]:
        records = []
        for group, (selected, total) in groups.items():
            for i in range(total):
                chosen = i < selected
                records.append(
                    OutcomeRecord(
                        subject_id=f"{prefix}{attribute}-{group}-{i}",
                        groups={attribute: group},
                        selected=chosen,
                        actual_positive=chosen if truth == "selected" else None,
                        decision_time_hours=(decision_time_hours or {}).get(group),
                    )
                )
        return records

    return _factory


@pytest.fixture
def biased_outcomes(make_outcomes) -> list[OutcomeRecord]:
    """90% vs 50% selection: parity ratio 0.5556, critical on both rate metrics."""
    return make_outcomes({"male": (90, 100), "female": (50, 100)})


@pytest.fixture
def fair_outcomes(make_outcomes) -> list[OutcomeRecord]:
    """50% vs 48% selection: parity ratio 0.96, no violations."""
    return make_outcomes({"male": (50, 100), "female": (48, 100)})


# ---------------------------------------------------------------------------
# Violation factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_violation():
    """Factory that returns a callable to build Violation models."""

    def _factory(
        severity: Severity = Severity.HIGH,
        metric: MetricFamily = MetricFamily.DEMOGRAPHIC_PARITY,
        attribute: str = "gender",
        observed_value: float = 0.7,
        threshold: float = 0.8,
        deviation: Optional[float] = None,
        violation_type: ViolationType = ViolationType.THRESHOLD,
        **kwargs: Any,
    ) -> Violation:
        return Violation(
            metric=metric,
            attribute=attribute,
            violation_type=violation_type,
            severity=severity,
            observed_value=observed_value,
            threshold=threshold,
            deviation=round(threshold - observed_value, 4) if deviation is None else deviation,
            affected_groups=kwargs.pop("affected_groups", ["female"]),
            description=kwargs.pop("description", f"{metric.value} below threshold"),
            recommended_action=kwargs.pop("recommended_action", "Review selection criteria"),
            **kwargs,
        )

    return _factory


# ---------------------------------------------------------------------------
# Engine components
# ---------------------------------------------------------------------------


@pytest.fixture
def thresholds() -> ThresholdConfig:
    return ThresholdConfig()


@pytest.fixture
def calculator(thresholds) -> FairnessCalculator:
    return FairnessCalculator(thresholds, bootstrap_resamples=50, random_seed=7)


@pytest.fixture
def detector(thresholds) -> BiasDetector:
    return BiasDetector(thresholds)


# ---------------------------------------------------------------------------
# Persistence and lifecycle
# ---------------------------------------------------------------------------


class FailingInsertStore(InMemoryDocumentStore):
    """In-memory store whose writes fail while ``failing`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.failing = False

    def insert_one(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        if self.failing:
            raise PersistenceUnavailable("insert_one", collection, ConnectionError("store offline"))
        return super().insert_one(collection, document)


class RecordingSink(NotificationSink):
    """Notification sink that remembers what it was sent."""

    channel = NotificationChannel.WEBSOCKET

    def __init__(self, recipient: str = "dashboard", fail: bool = False):
        super().__init__(recipient)
        self.fail = fail
        self.sent: list[str] = []

    def send(self, alert) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(alert.alert_id)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def failing_store() -> FailingInsertStore:
    return FailingInsertStore()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_sink() -> RecordingSink:
    return RecordingSink(recipient="pager", fail=True)


@pytest.fixture
def audit_recorder(store) -> AuditTrailRecorder:
    return AuditTrailRecorder(AuditRepository(store))


@pytest.fixture
def alert_manager(store, audit_recorder, recording_sink) -> AlertManager:
    return AlertManager(
        AlertRepository(store),
        audit_recorder,
        dispatcher=NotificationDispatcher([recording_sink]),
        escalation_owner="compliance-lead",
    )


@pytest.fixture
def test_settings() -> AppSettings:
    return AppSettings(
        storage_backend="memory",
        monitoring=MonitoringSettings(bootstrap_resamples=50, escalation_owner="compliance-lead"),
    )


@pytest.fixture
def service(test_settings, store, recording_sink):
    return build_monitoring_service(
        settings=test_settings,
        store=store,
        dispatcher=NotificationDispatcher([recording_sink]),
    )
