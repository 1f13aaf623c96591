"""
Document store interface and in-memory implementation.

Repositories talk to a DocumentStore rather than to a driver. Filters are
plain dictionaries keyed by (dotted) field name where the value is:

- a scalar: equality (``None`` also matches a missing field)
- a list, tuple or set: membership
- a FieldRange: bounded comparison
"""

import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from bson import ObjectId

from fairwatch.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FieldRange:
    """Range condition on a single field. Unset bounds are ignored."""

    gte: Any = None
    gt: Any = None
    lte: Any = None
    lt: Any = None

    def matches(self, value: Any) -> bool:
        if value is None:
            return False
        if self.gte is not None and not value >= self.gte:
            return False
        if self.gt is not None and not value > self.gt:
            return False
        if self.lte is not None and not value <= self.lte:
            return False
        if self.lt is not None and not value < self.lt:
            return False
        return True


def normalize_value(value: Any) -> Any:
    """Replace enum members with their stored values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [normalize_value(v) for v in value]
    if isinstance(value, FieldRange):
        return FieldRange(
            gte=normalize_value(value.gte),
            gt=normalize_value(value.gt),
            lte=normalize_value(value.lte),
            lt=normalize_value(value.lt),
        )
    return value


class DocumentStore(ABC):
    """Persistence collaborator used by all repositories."""

    @abstractmethod
    def insert_one(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        """Insert a document and return it with its assigned ``_id``."""

    @abstractmethod
    def find_one(self, collection: str, filters: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Return the first matching document or None."""

    @abstractmethod
    def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 0,
        sort_by: Optional[str] = None,
        sort_order: int = -1,
    ) -> list[dict[str, Any]]:
        """Return matching documents; ``limit=0`` means no limit."""

    @abstractmethod
    def count(self, collection: str, filters: dict[str, Any]) -> int:
        """Count matching documents."""

    @abstractmethod
    def update_one(
        self,
        collection: str,
        filters: dict[str, Any],
        fields: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        """
        Atomically set fields on the first matching document.

        Returns the updated document, or None when nothing matched. Callers
        put the expected current state in ``filters`` to get
        compare-and-swap semantics.
        """

    @abstractmethod
    def delete_many(self, collection: str, filters: dict[str, Any]) -> int:
        """Delete matching documents and return how many were removed."""

    @abstractmethod
    def ensure_index(self, collection: str, field: str, unique: bool = False) -> None:
        """Create an index if the backend supports one."""

    @abstractmethod
    def ping(self) -> bool:
        """Check the backend is reachable."""


# =============================================================================
# In-memory implementation
# =============================================================================


def _get_path(document: dict[str, Any], path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _set_path(document: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = document
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _matches(document: dict[str, Any], filters: dict[str, Any]) -> bool:
    for path, expected in filters.items():
        actual = _get_path(document, path)
        if isinstance(expected, FieldRange):
            if not expected.matches(actual):
                return False
        elif isinstance(expected, list):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


class InMemoryDocumentStore(DocumentStore):
    """
    Thread-safe in-memory document store.

    Documents are deep-copied on the way in and out, so readers always
    work on a private snapshot and never block writers for longer than a
    single copy.
    """

    def __init__(self) -> None:
        self._collections: dict[str, list[dict[str, Any]]] = {}
        self._indexes: dict[str, set[tuple[str, bool]]] = {}
        self._lock = threading.RLock()

    def _collection(self, name: str) -> list[dict[str, Any]]:
        return self._collections.setdefault(name, [])

    def _check_unique(self, collection: str, document: dict[str, Any]) -> None:
        for field, unique in self._indexes.get(collection, set()):
            if not unique:
                continue
            value = _get_path(document, field)
            if value is None:
                continue
            if any(_get_path(doc, field) == value for doc in self._collection(collection)):
                raise ValueError(f"Duplicate value for unique field '{field}' in '{collection}'")

    def insert_one(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        stored = copy.deepcopy(normalize_value_dict(document))
        stored.setdefault("_id", ObjectId())
        with self._lock:
            self._check_unique(collection, stored)
            self._collection(collection).append(stored)
        return copy.deepcopy(stored)

    def find_one(self, collection: str, filters: dict[str, Any]) -> Optional[dict[str, Any]]:
        filters = normalize_filters(filters)
        with self._lock:
            for document in self._collection(collection):
                if _matches(document, filters):
                    return copy.deepcopy(document)
        return None

    def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 0,
        sort_by: Optional[str] = None,
        sort_order: int = -1,
    ) -> list[dict[str, Any]]:
        filters = normalize_filters(filters)
        with self._lock:
            matched = [copy.deepcopy(d) for d in self._collection(collection) if _matches(d, filters)]

        if sort_by:
            present = [d for d in matched if _get_path(d, sort_by) is not None]
            missing = [d for d in matched if _get_path(d, sort_by) is None]
            present.sort(key=lambda d: _get_path(d, sort_by), reverse=sort_order < 0)
            matched = present + missing

        matched = matched[skip:]
        if limit:
            matched = matched[:limit]
        return matched

    def count(self, collection: str, filters: dict[str, Any]) -> int:
        filters = normalize_filters(filters)
        with self._lock:
            return sum(1 for d in self._collection(collection) if _matches(d, filters))

    def update_one(
        self,
        collection: str,
        filters: dict[str, Any],
        fields: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        filters = normalize_filters(filters)
        fields = copy.deepcopy(normalize_value_dict(fields))
        with self._lock:
            for document in self._collection(collection):
                if _matches(document, filters):
                    for path, value in fields.items():
                        _set_path(document, path, value)
                    return copy.deepcopy(document)
        return None

    def delete_many(self, collection: str, filters: dict[str, Any]) -> int:
        filters = normalize_filters(filters)
        with self._lock:
            documents = self._collection(collection)
            kept = [d for d in documents if not _matches(d, filters)]
            removed = len(documents) - len(kept)
            self._collections[collection] = kept
        return removed

    def ensure_index(self, collection: str, field: str, unique: bool = False) -> None:
        with self._lock:
            self._indexes.setdefault(collection, set()).add((field, unique))

    def ping(self) -> bool:
        return True


def normalize_filters(filters: dict[str, Any]) -> dict[str, Any]:
    return {key: normalize_value(value) for key, value in (filters or {}).items()}


def normalize_value_dict(data: dict[str, Any]) -> dict[str, Any]:
    return {key: normalize_value(value) for key, value in data.items()}
