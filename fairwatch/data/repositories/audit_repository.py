"""
Audit trail repository for FairWatch.

Append-only access to audit entries. Entries can be created and queried;
they can only be deleted once their retention period has expired.
"""

from collections import Counter
from datetime import datetime
from typing import Any, Optional

from fairwatch.data.models.audit import (
    ActorInfo,
    AuditEntry,
    AuditEntryCreate,
    AuditQuery,
    AuditSummary,
)
from fairwatch.data.store import FieldRange
from fairwatch.utils.constants import EthicalImpactLevel
from fairwatch.utils.exceptions import AuditEntryImmutable
from fairwatch.utils.logger import get_logger

from .base import BaseRepository

logger = get_logger(__name__)


def _time_range(start: Optional[datetime], end: Optional[datetime]) -> Optional[FieldRange]:
    if start is None and end is None:
        return None
    return FieldRange(gte=start, lte=end)


class AuditRepository(BaseRepository[AuditEntry]):
    """Repository for audit entry operations."""

    def __init__(self, store, retention_days: int = 2555) -> None:
        super().__init__(store)
        self._retention_days = retention_days

    @property
    def collection_name(self) -> str:
        return AuditEntry.Settings.name

    @property
    def model_class(self) -> type[AuditEntry]:
        return AuditEntry

    @property
    def key_field(self) -> str:
        return "entry_id"

    # -------------------------------------------------------------------------
    # Create Operations
    # -------------------------------------------------------------------------

    def log(self, data: AuditEntryCreate) -> AuditEntry:
        """Create an audit entry from a create schema."""
        entry = AuditEntry(
            action=data.action,
            action_description=data.action_description,
            actor=data.actor or ActorInfo(),
            resource=data.resource,
            changes=data.changes,
            ethical_impact=data.ethical_impact,
            compliance_implications=data.compliance_implications,
            context=data.context,
            corrects_entry_id=data.corrects_entry_id,
            retention_period_days=self._retention_days,
        )
        return self.create(entry)

    # -------------------------------------------------------------------------
    # Immutability
    # -------------------------------------------------------------------------

    def update(self, key: str, update_data: dict[str, Any], expected=None) -> Optional[AuditEntry]:
        raise AuditEntryImmutable(key)

    def delete_where(self, filters: dict[str, Any]) -> int:
        raise AuditEntryImmutable(str(filters))

    def purge_expired(self, now: datetime) -> int:
        """
        Delete entries whose own retention period has fully elapsed.

        Each entry carries the expiry computed when it was written, so a
        shorter retention setting never removes older, longer-lived entries.
        """
        removed = self._store.delete_many(self.collection_name, {"expires_at": FieldRange(lt=now)})
        if removed:
            logger.info(f"Purged {removed} audit entries expired before {now:%Y-%m-%d}")
        return removed

    # -------------------------------------------------------------------------
    # Query Operations
    # -------------------------------------------------------------------------

    def get_corrections(self, entry_id: str) -> list[AuditEntry]:
        """Get entries that correct the given entry, oldest first."""
        return self.find(
            {"corrects_entry_id": entry_id},
            limit=0,
            sort_by="timestamp",
            sort_order=1,
        )

    def search(self, query_params: AuditQuery) -> list[AuditEntry]:
        """Search audit entries with multiple filters, newest first."""
        return self.find(
            self._build_filters(query_params),
            skip=query_params.offset,
            limit=query_params.limit,
            sort_by="timestamp",
            sort_order=-1,
        )

    def count_matching(self, query_params: AuditQuery) -> int:
        return self.count(self._build_filters(query_params))

    def _build_filters(self, query_params: AuditQuery) -> dict[str, Any]:
        query: dict[str, Any] = {}

        if query_params.action:
            query["action"] = query_params.action

        if query_params.actor_id:
            query["actor.actor_id"] = query_params.actor_id

        if query_params.actor_type:
            query["actor.actor_type"] = query_params.actor_type

        if query_params.resource_type:
            query["resource.resource_type"] = query_params.resource_type

        if query_params.resource_id:
            query["resource.resource_id"] = query_params.resource_id

        if query_params.min_ethical_impact:
            minimum = EthicalImpactLevel(query_params.min_ethical_impact)
            query["ethical_impact"] = [
                level for level in EthicalImpactLevel if level.rank >= minimum.rank
            ]

        time_range = _time_range(query_params.start_date, query_params.end_date)
        if time_range:
            query["timestamp"] = time_range

        return query

    # -------------------------------------------------------------------------
    # Aggregation Operations
    # -------------------------------------------------------------------------

    def get_summary(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> AuditSummary:
        """Get summary statistics for the audit trail."""
        query: dict[str, Any] = {}
        time_range = _time_range(start_date, end_date)
        if time_range:
            query["timestamp"] = time_range

        entries = self.find(query, limit=0, sort_by="timestamp")
        return AuditSummary(
            total_entries=len(entries),
            entries_by_action=dict(Counter(str(e.action) for e in entries)),
            entries_by_actor_type=dict(Counter(str(e.actor.actor_type) for e in entries)),
            entries_by_impact=dict(Counter(str(e.ethical_impact) for e in entries)),
            corrections_count=sum(1 for e in entries if e.is_correction),
            period_start=start_date,
            period_end=end_date,
        )
