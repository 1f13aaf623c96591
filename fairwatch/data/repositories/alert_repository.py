"""
Alert repository for FairWatch.

Provides data access for alert documents, including the conditional
updates the alert state machine relies on.
"""

from datetime import datetime
from typing import Any, Optional

from fairwatch.data.models.alert import Alert, AlertQuery
from fairwatch.data.store import FieldRange
from fairwatch.utils.constants import AlertStatus, Severity
from fairwatch.utils.logger import get_logger

from .base import BaseRepository

logger = get_logger(__name__)

OPEN_STATUSES = [AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED]


class AlertRepository(BaseRepository[Alert]):
    """Repository for alert document operations."""

    @property
    def collection_name(self) -> str:
        return Alert.Settings.name

    @property
    def model_class(self) -> type[Alert]:
        return Alert

    @property
    def key_field(self) -> str:
        return "alert_id"

    # -------------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------------

    def transition(
        self,
        alert_id: str,
        from_statuses: list[AlertStatus],
        update_data: dict[str, Any],
    ) -> Optional[Alert]:
        """Apply an update only if the alert is still in one of the source states."""
        return self.update(alert_id, update_data, expected={"status": list(from_statuses)})

    # -------------------------------------------------------------------------
    # Query Operations
    # -------------------------------------------------------------------------

    def find_open_duplicate(
        self,
        process_id: str,
        metric: str,
        attribute: str,
        since: Optional[datetime] = None,
    ) -> Optional[Alert]:
        """Find the unresolved alert for the same process, metric and attribute."""
        filters: dict[str, Any] = {
            "process_id": process_id,
            "violation.metric": metric,
            "violation.attribute": attribute,
            "status": OPEN_STATUSES,
        }
        if since is not None:
            filters["last_detected_at"] = FieldRange(gte=since)
        matches = self.find(filters, limit=1, sort_by="created_at", sort_order=-1)
        return matches[0] if matches else None

    def get_active(self, limit: int = 100) -> list[Alert]:
        return self.find({"status": AlertStatus.ACTIVE}, limit=limit)

    def get_critical(self, limit: int = 100) -> list[Alert]:
        return self.find(
            {"priority": Severity.CRITICAL, "status": OPEN_STATUSES},
            limit=limit,
        )

    def get_by_process(self, process_id: str, limit: int = 100) -> list[Alert]:
        return self.find({"process_id": process_id}, limit=limit)

    def search(self, query_params: AlertQuery) -> tuple[list[Alert], int]:
        """Search alerts; returns one page and the total match count."""
        query = self._build_filters(query_params)
        alerts = self.find(
            query,
            skip=query_params.offset,
            limit=query_params.limit,
            sort_by="created_at",
            sort_order=-1,
        )
        return alerts, self.count(query)

    def _build_filters(self, query_params: AlertQuery) -> dict[str, Any]:
        query: dict[str, Any] = {}
        if query_params.status:
            query["status"] = query_params.status
        if query_params.severity:
            query["priority"] = query_params.severity
        if query_params.process_type:
            query["process_type"] = query_params.process_type
        if query_params.process_id:
            query["process_id"] = query_params.process_id
        if query_params.assigned_to:
            query["assigned_to"] = query_params.assigned_to
        return query

    def get_created_between(self, start: datetime, end: datetime) -> list[Alert]:
        return self.find({"created_at": FieldRange(gte=start, lte=end)}, limit=0)

    def get_open(self) -> list[Alert]:
        return self.find({"status": OPEN_STATUSES}, limit=0)

    # -------------------------------------------------------------------------
    # Retention
    # -------------------------------------------------------------------------

    def purge_expired(self, now: datetime) -> int:
        """Delete resolved alerts whose own retention window has elapsed."""
        removed = self.delete_where(
            {"status": AlertStatus.RESOLVED, "expires_at": FieldRange(lt=now)}
        )
        if removed:
            logger.info(f"Purged {removed} resolved alerts expired before {now:%Y-%m-%d}")
        return removed
