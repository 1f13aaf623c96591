"""
Repositories for fairness metrics bundles and monitoring results.
"""

from datetime import datetime
from typing import Any, Optional

from fairwatch.data.models.bias import MonitoringResult
from fairwatch.data.models.fairness import FairnessMetrics
from fairwatch.data.store import FieldRange
from fairwatch.utils.constants import ProcessType

from .base import BaseRepository


class FairnessMetricsRepository(BaseRepository[FairnessMetrics]):
    """Repository for fairness metrics bundles."""

    @property
    def collection_name(self) -> str:
        return FairnessMetrics.Settings.name

    @property
    def model_class(self) -> type[FairnessMetrics]:
        return FairnessMetrics

    @property
    def key_field(self) -> str:
        return "metrics_id"

    def get_latest_for_process(self, process_id: str) -> Optional[FairnessMetrics]:
        matches = self.find({"process_id": process_id}, limit=1, sort_by="calculated_at")
        return matches[0] if matches else None


class MonitoringResultRepository(BaseRepository[MonitoringResult]):
    """Repository for per-evaluation monitoring results."""

    @property
    def collection_name(self) -> str:
        return MonitoringResult.Settings.name

    @property
    def model_class(self) -> type[MonitoringResult]:
        return MonitoringResult

    @property
    def key_field(self) -> str:
        return "result_id"

    def get_history(self, process_id: str, limit: int = 50) -> list[MonitoringResult]:
        """Most recent results for a process, newest first."""
        return self.find({"process_id": process_id}, limit=limit, sort_by="evaluated_at")

    def get_between(
        self,
        start: datetime,
        end: datetime,
        process_type: Optional[ProcessType] = None,
        limit: int = 0,
    ) -> list[MonitoringResult]:
        """Results evaluated within a time window, newest first."""
        filters: dict[str, Any] = {"evaluated_at": FieldRange(gte=start, lte=end)}
        if process_type is not None:
            filters["process_type"] = process_type
        return self.find(filters, limit=limit, sort_by="evaluated_at")
